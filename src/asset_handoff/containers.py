"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from asset_handoff.adapters.firestore_session_store import HttpxFirestoreSessionStore
from asset_handoff.adapters.storage_blob_client import HttpxStorageBlobClient
from asset_handoff.config import SessionLimits, Settings
from asset_handoff.services.commands import SessionCommands
from asset_handoff.services.downloads import FileDownloader
from asset_handoff.services.polling import SessionPoller
from asset_handoff.services.sessions import SessionManager


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    limits: SessionLimits
    session_manager: SessionManager
    downloader: FileDownloader
    poller: SessionPoller
    commands: SessionCommands
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None, limits: SessionLimits | None = None
) -> AppContainer:
    """Create the default dependency container.

    All adapters share one httpx client; polling runs only read from it.
    """
    resolved_settings = settings or Settings()
    resolved_limits = limits or SessionLimits()
    http_client = httpx.AsyncClient()
    session_store = HttpxFirestoreSessionStore.create(
        resolved_settings, http_client, ttl=resolved_limits.ttl
    )
    blob_client = HttpxStorageBlobClient.create(resolved_settings, http_client)
    session_manager = SessionManager(session_store, limits=resolved_limits)
    downloader = FileDownloader(blob_client)
    poller = SessionPoller(
        session_manager=session_manager,
        downloader=downloader,
        limits=resolved_limits,
    )
    commands = SessionCommands(
        session_manager=session_manager,
        downloader=downloader,
        poller=poller,
    )

    async def close_resources() -> None:
        await commands.shutdown()
        await http_client.aclose()

    return AppContainer(
        settings=resolved_settings,
        limits=resolved_limits,
        session_manager=session_manager,
        downloader=downloader,
        poller=poller,
        commands=commands,
        close_resources=close_resources,
    )
