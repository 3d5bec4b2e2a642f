"""Unit tests for display profile models."""

from rapport.domain import ActorRole, DisplayProfile, RelationshipView
from tests.factories import ProfileFactory, RecordFactory


class TestDisplayProfile:
    """Tests for DisplayProfile."""

    def test_display_name_joins_names(self) -> None:
        profile = ProfileFactory.create(first_name="Ada", last_name="Lovelace")
        assert profile.display_name == "Ada Lovelace"

    def test_display_name_falls_back_to_id(self) -> None:
        profile = DisplayProfile(user_id="u-17")
        assert profile.display_name == "u-17"

    def test_placeholder(self) -> None:
        profile = DisplayProfile.placeholder("ghost")
        assert profile.is_placeholder is True
        assert profile.display_name == "Unknown User"
        assert profile.email is None


class TestRelationshipView:
    """Tests for RelationshipView serialization."""

    def test_dump_includes_subclass_fields(self) -> None:
        record = RecordFactory.mentor_session(topic="Fundraising")
        view = RelationshipView(
            record=record,
            participants={
                ActorRole.MENTOR: ProfileFactory.create(user_id="dave"),
                ActorRole.MENTEE: ProfileFactory.create(user_id="alice"),
            },
        )

        data = view.model_dump()

        assert data["record"]["topic"] == "Fundraising"
        assert data["record"]["mentor_id"] == "dave"
        assert set(data["participants"]) == {ActorRole.MENTOR, ActorRole.MENTEE}
