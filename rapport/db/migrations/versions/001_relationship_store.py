"""Create relationship and counter tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables: connection_requests, introduction_requests, mentor_sessions,
event_registrations, counters, counter_requests, profiles
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _record_columns() -> list[sa.Column]:
    return [
        sa.Column("id", UUID, primary_key=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
    ]


def upgrade() -> None:
    """Create relationship and counter tables."""
    # connection_requests table
    op.create_table(
        "connection_requests",
        *_record_columns(),
        sa.Column("requester_id", sa.String(255), nullable=False),
        sa.Column("recipient_id", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')", name="chk_connection_status"
        ),
        sa.CheckConstraint("requester_id <> recipient_id", name="chk_connection_distinct"),
    )
    op.create_index("idx_connections_requester", "connection_requests", ["requester_id"])
    op.create_index("idx_connections_recipient", "connection_requests", ["recipient_id"])
    # At most one open or accepted connection per unordered pair
    op.execute(
        "CREATE UNIQUE INDEX uq_connections_live_pair ON connection_requests "
        "(LEAST(requester_id, recipient_id), GREATEST(requester_id, recipient_id)) "
        "WHERE status IN ('pending', 'accepted')"
    )

    # introduction_requests table
    op.create_table(
        "introduction_requests",
        *_record_columns(),
        sa.Column("requester_id", sa.String(255), nullable=False),
        sa.Column("intermediary_id", sa.String(255), nullable=False),
        sa.Column("target_id", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'completed')",
            name="chk_introduction_status",
        ),
        sa.CheckConstraint(
            "requester_id <> intermediary_id AND requester_id <> target_id "
            "AND intermediary_id <> target_id",
            name="chk_introduction_distinct",
        ),
    )
    op.create_index("idx_introductions_requester", "introduction_requests", ["requester_id"])
    op.create_index(
        "idx_introductions_intermediary", "introduction_requests", ["intermediary_id"]
    )
    op.create_index("idx_introductions_target", "introduction_requests", ["target_id"])

    # mentor_sessions table
    op.create_table(
        "mentor_sessions",
        *_record_columns(),
        sa.Column("mentor_id", sa.String(255), nullable=False),
        sa.Column("mentee_id", sa.String(255), nullable=False),
        sa.Column("scheduled_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer, nullable=False, server_default="60"),
        sa.Column("meeting_link", sa.Text),
        sa.Column("topic", sa.String(255), nullable=False, server_default=""),
        sa.Column("description", sa.Text),
        sa.Column("status", sa.String(20), nullable=False),
        sa.CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')", name="chk_session_status"
        ),
        sa.CheckConstraint("duration > 0", name="chk_session_duration"),
        sa.CheckConstraint("mentor_id <> mentee_id", name="chk_session_distinct"),
    )
    op.create_index("idx_sessions_mentor", "mentor_sessions", ["mentor_id", "scheduled_at"])
    op.create_index("idx_sessions_mentee", "mentor_sessions", ["mentee_id", "scheduled_at"])

    # event_registrations table
    op.create_table(
        "event_registrations",
        *_record_columns(),
        sa.Column("event_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.CheckConstraint(
            "role IN ('attendee', 'speaker', 'organizer')", name="chk_registration_role"
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'registered', 'attended', 'cancelled')",
            name="chk_registration_status",
        ),
    )
    op.create_index("idx_registrations_event", "event_registrations", ["event_id"])
    op.create_index("idx_registrations_user", "event_registrations", ["user_id"])
    # One live registration per user and event
    op.execute(
        "CREATE UNIQUE INDEX uq_registrations_live ON event_registrations "
        "(event_id, user_id) WHERE status <> 'cancelled'"
    )

    # counters table
    op.create_table(
        "counters",
        sa.Column("entity_id", sa.String(255), primary_key=True),
        sa.Column("counter_name", sa.String(100), primary_key=True),
        sa.Column("value", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
        sa.CheckConstraint("value >= 0", name="chk_counter_non_negative"),
    )

    # counter_requests table (applied request ids)
    op.create_table(
        "counter_requests",
        sa.Column("request_id", sa.String(255), primary_key=True),
        sa.Column("entity_id", sa.String(255), nullable=False),
        sa.Column("counter_name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("idx_counter_requests_created", "counter_requests", ["created_at"])

    # profiles table (read-only for this service)
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("first_name", sa.String(255)),
        sa.Column("last_name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("company", sa.String(255)),
        sa.Column("profile_image_url", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
    )


def downgrade() -> None:
    """Drop relationship and counter tables."""
    op.drop_table("profiles")
    op.drop_table("counter_requests")
    op.drop_table("counters")
    op.drop_table("event_registrations")
    op.drop_table("mentor_sessions")
    op.drop_table("introduction_requests")
    op.drop_table("connection_requests")
