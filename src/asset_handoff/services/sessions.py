"""Session code generation and status classification."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from asset_handoff.config import SessionLimits
from asset_handoff.domain.errors import CodeCollisionError, ConflictError
from asset_handoff.domain.sessions import SessionRecord, SessionStatus, utc_now

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Remote storage for the code counter and session documents."""

    async def increment_counter(self) -> int:
        """Bump the shared counter and return its new value."""

    async def create_session(self, code: str) -> SessionRecord:
        """Create an empty active session, raising ConflictError if taken."""

    async def get_session(self, code: str) -> SessionRecord | None:
        """Return the session for a code, or None when absent."""


def format_code(counter_value: int, limits: SessionLimits) -> str:
    """Wrap a counter value into a zero-padded fixed-width code."""
    code_number = counter_value % (limits.max_code_value + 1)
    return f"{code_number:0{limits.code_length}d}"


@dataclass
class SessionManager:
    """Mints session codes and reports session state."""

    store: SessionStore
    limits: SessionLimits = field(default_factory=SessionLimits)
    clock: Callable[[], datetime] = utc_now

    async def generate_code(self) -> str:
        """Reserve a new code and create its session document.

        The counter is not trusted to be collision-free; a taken code surfaces
        as CodeCollisionError so the caller can decide whether to ask again.
        """
        counter_value = await self.store.increment_counter()
        code = format_code(counter_value, self.limits)
        try:
            await self.store.create_session(code)
        except ConflictError as exc:
            logger.warning("Session code collision", extra={"code": code})
            raise CodeCollisionError(code) from exc
        logger.info("Created session %s", code)
        return code

    async def check_session_status(self, code: str) -> SessionStatus:
        """Classify the current state of a session."""
        session = await self.store.get_session(code)
        return classify_session(session, self.clock())


def classify_session(session: SessionRecord | None, now: datetime) -> SessionStatus:
    """Map a fetched session onto exactly one status; expiry wins over files."""
    if session is None:
        return SessionStatus.not_found()
    if session.expires_at < now:
        return SessionStatus.expired()
    if not session.files:
        return SessionStatus.waiting_for_files()
    return SessionStatus.has_files(session.files)
