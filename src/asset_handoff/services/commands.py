"""Caller-facing entry points for starting, checking and downloading sessions."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from asset_handoff.domain.errors import (
    SessionExpiredError,
    SessionNotFoundError,
    SessionNotReadyError,
)
from asset_handoff.domain.sessions import SessionState, SessionStatus
from asset_handoff.services.downloads import FileDownloader
from asset_handoff.services.polling import PollResult, SessionPoller
from asset_handoff.services.sessions import SessionManager

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[PollResult], None]


@dataclass
class _PollingRun:
    task: "asyncio.Task[PollResult]"
    cancel_event: asyncio.Event


@dataclass
class SessionCommands:
    """Starts background polling runs and serves one-shot session requests."""

    session_manager: SessionManager
    downloader: FileDownloader
    poller: SessionPoller
    _runs: dict[str, _PollingRun] = field(default_factory=dict, init=False)
    _results: dict[str, PollResult] = field(default_factory=dict, init=False)

    async def start_session(
        self, workspace_dir: Path, on_complete: CompletionCallback | None = None
    ) -> str:
        """Mint a code and poll for its uploads in the background.

        Returns as soon as the session exists; the outcome is logged and, when
        ``on_complete`` is given, passed to it.
        """
        code = await self.session_manager.generate_code()
        self.start_polling(code, Path(workspace_dir), on_complete)
        return code

    def start_polling(
        self,
        code: str,
        workspace_dir: Path,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        """Spawn a polling run for an existing code unless one is running."""
        if self.is_polling(code):
            logger.info("Session %s is already being polled", code)
            return
        self._results.pop(code, None)
        cancel_event = asyncio.Event()
        task = asyncio.create_task(
            self.poller.run(code, workspace_dir, cancel_event),
            name=f"poll-session-{code}",
        )
        run = _PollingRun(task=task, cancel_event=cancel_event)
        self._runs[code] = run
        task.add_done_callback(
            lambda done: self._on_run_done(code, run, done, on_complete)
        )

    async def check_session(self, code: str) -> SessionStatus:
        """Return the current status of a session."""
        return await self.session_manager.check_session_status(code)

    async def download_files(self, code: str, workspace_dir: Path) -> list[str]:
        """Download a session's files now, failing unless files are present."""
        status = await self.session_manager.check_session_status(code)
        if status.state is SessionState.NOT_FOUND:
            raise SessionNotFoundError(code)
        if status.state is SessionState.EXPIRED:
            raise SessionExpiredError(code)
        if status.state is SessionState.WAITING_FOR_FILES:
            raise SessionNotReadyError(code)
        return await self.downloader.fetch_all(
            code, status.filenames, Path(workspace_dir)
        )

    def is_polling(self, code: str) -> bool:
        run = self._runs.get(code)
        return run is not None and not run.task.done()

    def poll_result(self, code: str) -> PollResult | None:
        """Return the outcome of the last finished run for a code."""
        return self._results.get(code)

    def cancel(self, code: str) -> bool:
        """Ask a running poll to stop at its next tick."""
        run = self._runs.get(code)
        if run is None or run.task.done():
            return False
        run.cancel_event.set()
        return True

    async def wait_for(self, code: str) -> PollResult | None:
        """Wait for the running poll of a code and return its outcome."""
        run = self._runs.get(code)
        if run is None:
            return self._results.get(code)
        await asyncio.wait({run.task})
        if run.task.cancelled() or run.task.exception() is not None:
            return None
        return run.task.result()

    async def shutdown(self) -> None:
        """Cancel every running poll and wait for the tasks to finish."""
        tasks = [run.task for run in self._runs.values() if not run.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_run_done(
        self,
        code: str,
        run: _PollingRun,
        task: "asyncio.Task[PollResult]",
        on_complete: CompletionCallback | None,
    ) -> None:
        if self._runs.get(code) is run:
            self._runs.pop(code)
        if task.cancelled():
            logger.info("Polling task for session %s was cancelled", code)
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Polling task for session %s crashed",
                code,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            return
        result = task.result()
        self._results[code] = result
        if on_complete is None:
            return
        try:
            on_complete(result)
        except Exception:
            logger.exception("Completion callback for session %s failed", code)
