"""Tests for the caller-facing session commands."""

import asyncio

import pytest

from asset_handoff.containers import AppContainer
from asset_handoff.domain.errors import (
    SessionExpiredError,
    SessionNotFoundError,
    SessionNotReadyError,
)
from asset_handoff.domain.sessions import SessionState, SessionStatus
from asset_handoff.services.commands import SessionCommands
from asset_handoff.services.downloads import FileDownloader
from asset_handoff.services.polling import PollOutcome, PollResult, SessionPoller
from tests.conftest import (
    FAST_LIMITS,
    FakeBlobClient,
    InMemorySessionStore,
)


class CrashingSessionManager:
    async def check_session_status(self, code: str) -> SessionStatus:
        raise RuntimeError("unexpected")


def test_start_session_polls_in_background_until_download(
    container: AppContainer,
    session_store: InMemorySessionStore,
    blob_client: FakeBlobClient,
    tmp_path,
) -> None:
    blob_client.blobs["photo.jpg"] = b"jpeg"
    completed: list[PollResult] = []

    async def scenario() -> PollResult | None:
        commands = container.commands
        code = await commands.start_session(tmp_path, on_complete=completed.append)
        assert commands.is_polling(code)
        session_store.add_files(code, "photo.jpg")
        result = await commands.wait_for(code)
        await asyncio.sleep(0)
        return result

    result = asyncio.run(scenario())

    assert result is not None
    assert result.code == "001"
    assert result.outcome is PollOutcome.SUCCEEDED
    assert result.files == (str(tmp_path / "photo.jpg"),)
    assert completed == [result]
    assert container.commands.poll_result("001") == result
    assert not container.commands.is_polling("001")


def test_cancel_stops_background_poll(container: AppContainer, tmp_path) -> None:
    async def scenario() -> PollResult | None:
        code = await container.commands.start_session(tmp_path)
        assert container.commands.cancel(code)
        return await container.commands.wait_for(code)

    result = asyncio.run(scenario())

    assert result is not None
    assert result.outcome is PollOutcome.CANCELLED
    assert not container.commands.cancel("001")


def test_start_polling_ignores_duplicate_runs(
    container: AppContainer, tmp_path
) -> None:
    async def scenario() -> None:
        code = await container.commands.start_session(tmp_path)
        first = container.commands._runs[code].task
        container.commands.start_polling(code, tmp_path)
        assert container.commands._runs[code].task is first
        await container.close_resources()

    asyncio.run(scenario())

    assert not container.commands.is_polling("001")
    assert container.commands.poll_result("001") is None


def test_crashing_poll_is_contained(tmp_path) -> None:
    downloader = FileDownloader(FakeBlobClient())
    commands = SessionCommands(
        session_manager=CrashingSessionManager(),
        downloader=downloader,
        poller=SessionPoller(
            session_manager=CrashingSessionManager(),
            downloader=downloader,
            limits=FAST_LIMITS,
        ),
    )

    async def scenario() -> PollResult | None:
        commands.start_polling("123", tmp_path)
        return await commands.wait_for("123")

    assert asyncio.run(scenario()) is None
    assert commands.poll_result("123") is None
    assert not commands.is_polling("123")


def test_check_session_returns_status(
    container: AppContainer, session_store: InMemorySessionStore
) -> None:
    asyncio.run(session_store.create_session("321"))
    session_store.add_files("321", "clip.mov")

    status = asyncio.run(container.commands.check_session("321"))

    assert status.state is SessionState.HAS_FILES
    assert status.filenames == ("clip.mov",)


def test_download_files_writes_available_files(
    container: AppContainer,
    session_store: InMemorySessionStore,
    blob_client: FakeBlobClient,
    tmp_path,
) -> None:
    asyncio.run(session_store.create_session("321"))
    session_store.add_files("321", "a.png", "b.png")
    blob_client.blobs.update({"a.png": b"a", "b.png": b"b"})

    paths = asyncio.run(container.commands.download_files("321", tmp_path))

    assert paths == [str(tmp_path / "a.png"), str(tmp_path / "b.png")]


def test_download_files_requires_uploaded_files(
    container: AppContainer, session_store: InMemorySessionStore, tmp_path
) -> None:
    asyncio.run(session_store.create_session("321"))

    with pytest.raises(SessionNotReadyError):
        asyncio.run(container.commands.download_files("321", tmp_path))

    with pytest.raises(SessionNotFoundError):
        asyncio.run(container.commands.download_files("999", tmp_path))

    session_store.add_files("321", "a.png")
    session_store.expire("321")
    with pytest.raises(SessionExpiredError):
        asyncio.run(container.commands.download_files("321", tmp_path))
