"""Polling loop that waits for uploads and downloads them."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from asset_handoff.config import SessionLimits
from asset_handoff.domain.errors import AssetHandoffError
from asset_handoff.domain.sessions import SessionState
from asset_handoff.services.downloads import FileDownloader
from asset_handoff.services.sessions import SessionManager

logger = logging.getLogger(__name__)


class PollOutcome(Enum):
    """Terminal outcomes of a polling run."""

    SUCCEEDED = "succeeded"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    ERROR_BUDGET_EXHAUSTED = "error_budget_exhausted"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollResult:
    """How a polling run ended."""

    code: str
    outcome: PollOutcome
    files: tuple[str, ...] = ()
    checks: int = 0
    elapsed_seconds: float = 0.0


@dataclass
class SessionPoller:
    """Observes one session at a time until it reaches a terminal outcome.

    Each ``run`` call owns its own counters, so one poller can drive many
    sessions concurrently.
    """

    session_manager: SessionManager
    downloader: FileDownloader
    limits: SessionLimits = field(default_factory=SessionLimits)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic

    async def run(
        self,
        code: str,
        workspace_dir: Path,
        cancel_event: asyncio.Event | None = None,
    ) -> PollResult:
        """Poll until files are downloaded or the session can't progress."""
        started = self.clock()
        checks = 0
        consecutive_errors = 0

        def finish(outcome: PollOutcome, files: list[str] | None = None) -> PollResult:
            result = PollResult(
                code=code,
                outcome=outcome,
                files=tuple(files or ()),
                checks=checks,
                elapsed_seconds=self.clock() - started,
            )
            _log_outcome(result)
            return result

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return finish(PollOutcome.CANCELLED)
            if self.clock() - started > self.limits.max_poll_duration_seconds:
                return finish(PollOutcome.TIMED_OUT)

            checks += 1
            try:
                status = await self.session_manager.check_session_status(code)
            except AssetHandoffError as exc:
                consecutive_errors += 1
                logger.warning(
                    "Error checking session %s (%d/%d): %s",
                    code,
                    consecutive_errors,
                    self.limits.max_consecutive_errors,
                    exc,
                )
            else:
                if status.state is SessionState.HAS_FILES:
                    logger.info(
                        "Files found for session %s: %s", code, list(status.filenames)
                    )
                    try:
                        files = await self.downloader.fetch_all(
                            code, status.filenames, workspace_dir
                        )
                    except AssetHandoffError as exc:
                        consecutive_errors += 1
                        logger.warning("Download for session %s failed: %s", code, exc)
                    else:
                        return finish(PollOutcome.SUCCEEDED, files)
                elif status.state is SessionState.WAITING_FOR_FILES:
                    consecutive_errors = 0
                elif status.state is SessionState.EXPIRED:
                    return finish(PollOutcome.EXPIRED)
                else:
                    return finish(PollOutcome.NOT_FOUND)

            if consecutive_errors >= self.limits.max_consecutive_errors:
                return finish(PollOutcome.ERROR_BUDGET_EXHAUSTED)

            await self.sleep(self.limits.poll_interval_seconds)


def _log_outcome(result: PollResult) -> None:
    code = result.code
    if result.outcome is PollOutcome.SUCCEEDED:
        logger.info(
            "Downloaded %d files for session %s: %s",
            len(result.files),
            code,
            ", ".join(result.files),
        )
    elif result.outcome is PollOutcome.EXPIRED:
        logger.info("Session %s has expired", code)
    elif result.outcome is PollOutcome.NOT_FOUND:
        logger.info("Session %s not found", code)
    elif result.outcome is PollOutcome.CANCELLED:
        logger.info("Stopped polling session %s on request", code)
    elif result.outcome is PollOutcome.TIMED_OUT:
        logger.warning(
            "Stopped polling session %s after %.0f seconds",
            code,
            result.elapsed_seconds,
        )
    else:
        logger.error("Too many errors, stopped polling session %s", code)
