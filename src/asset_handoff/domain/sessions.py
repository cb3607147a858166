"""Domain models for upload sessions."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


@dataclass(frozen=True)
class SessionRecord:
    """A session document as read from or written to the store."""

    code: str
    created_at: datetime
    expires_at: datetime
    files: list[str]
    status: str = "active"


class SessionState(Enum):
    """Observable states of a session."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    WAITING_FOR_FILES = "waiting_for_files"
    HAS_FILES = "has_files"


@dataclass(frozen=True)
class SessionStatus:
    """Classified session state; filenames are only set for HAS_FILES."""

    state: SessionState
    filenames: tuple[str, ...] = ()

    @classmethod
    def not_found(cls) -> "SessionStatus":
        return cls(SessionState.NOT_FOUND)

    @classmethod
    def expired(cls) -> "SessionStatus":
        return cls(SessionState.EXPIRED)

    @classmethod
    def waiting_for_files(cls) -> "SessionStatus":
        return cls(SessionState.WAITING_FOR_FILES)

    @classmethod
    def has_files(cls, filenames: list[str] | tuple[str, ...]) -> "SessionStatus":
        return cls(SessionState.HAS_FILES, tuple(filenames))


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)
