"""Profile resolution and member directory."""

from rapport.profiles.resolver import ProfileResolver, UserDirectory
from rapport.profiles.stores import InMemoryProfileStore, PostgresProfileStore

__all__ = [
    "ProfileResolver",
    "UserDirectory",
    "InMemoryProfileStore",
    "PostgresProfileStore",
]
