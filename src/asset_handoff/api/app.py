"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from asset_handoff.api.models import (
    DownloadResponse,
    PollStateResponse,
    SessionCreated,
    SessionStatusResponse,
    WorkspaceRequest,
)
from asset_handoff.app_logging import configure_logging
from asset_handoff.containers import AppContainer
from asset_handoff.domain.errors import (
    AssetHandoffError,
    CodeCollisionError,
    SessionExpiredError,
    SessionNotFoundError,
    SessionNotReadyError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(AssetHandoffError)
    async def handle_session_error(
        request: Request, exc: AssetHandoffError
    ) -> JSONResponse:
        status_code = _error_status(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def start_session(body: WorkspaceRequest, request: Request) -> SessionCreated:
        """Mint a code and start polling for its uploads."""
        state_container: AppContainer = request.app.state.container
        code = await state_container.commands.start_session(Path(body.workspace_dir))
        return SessionCreated(code=code)

    @app.get("/sessions/{code}")
    async def check_session(code: str, request: Request) -> SessionStatusResponse:
        """Return the current status of a session."""
        state_container: AppContainer = request.app.state.container
        session_status = await state_container.commands.check_session(code)
        return SessionStatusResponse(
            code=code,
            state=session_status.state.value,
            files=list(session_status.filenames),
        )

    @app.post("/sessions/{code}/download")
    async def download_files(
        code: str, body: WorkspaceRequest, request: Request
    ) -> DownloadResponse:
        """Download a session's files right away."""
        state_container: AppContainer = request.app.state.container
        files = await state_container.commands.download_files(
            code, Path(body.workspace_dir)
        )
        return DownloadResponse(code=code, files=files)

    @app.get("/sessions/{code}/poll")
    async def poll_state(code: str, request: Request) -> PollStateResponse:
        """Report whether a background run is active and how the last one ended."""
        commands = request.app.state.container.commands
        result = commands.poll_result(code)
        if result is None:
            return PollStateResponse(code=code, polling=commands.is_polling(code))
        return PollStateResponse(
            code=code,
            polling=commands.is_polling(code),
            outcome=result.outcome.value,
            files=list(result.files),
            checks=result.checks,
        )

    @app.delete("/sessions/{code}/poll")
    async def cancel_poll(code: str, request: Request) -> dict[str, bool]:
        """Stop a background run at its next tick."""
        return {"cancelled": request.app.state.container.commands.cancel(code)}

    return app


def _error_status(exc: AssetHandoffError) -> int:
    """Map domain errors onto HTTP status codes."""
    if isinstance(exc, CodeCollisionError | SessionNotReadyError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, SessionNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, SessionExpiredError):
        return status.HTTP_410_GONE
    return status.HTTP_502_BAD_GATEWAY
