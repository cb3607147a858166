"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from asset_handoff.config import SessionLimits, Settings
from asset_handoff.containers import AppContainer
from asset_handoff.domain.errors import ConflictError, TransportError
from asset_handoff.domain.sessions import SessionRecord, SessionStatus
from asset_handoff.services.commands import SessionCommands
from asset_handoff.services.downloads import BlobClient, FileDownloader
from asset_handoff.services.polling import SessionPoller
from asset_handoff.services.sessions import SessionManager, SessionStore

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

FAST_LIMITS = SessionLimits(
    poll_interval_seconds=0.01,
    max_poll_duration_seconds=5.0,
)


def fixed_clock() -> datetime:
    return FIXED_NOW


@dataclass
class InMemorySessionStore(SessionStore):
    """In-memory session store for tests."""

    counter: int = 0
    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    ttl: timedelta = timedelta(hours=1)
    clock: Callable[[], datetime] = fixed_clock
    read_errors: int = 0
    reads: int = 0

    async def increment_counter(self) -> int:
        self.counter += 1
        return self.counter

    async def create_session(self, code: str) -> SessionRecord:
        if code in self.sessions:
            raise ConflictError(f"Session {code} already exists")
        now = self.clock()
        session = SessionRecord(
            code=code, created_at=now, expires_at=now + self.ttl, files=[]
        )
        self.sessions[code] = session
        return session

    async def get_session(self, code: str) -> SessionRecord | None:
        self.reads += 1
        if self.read_errors:
            self.read_errors -= 1
            raise TransportError("store unavailable", status_code=503)
        return self.sessions.get(code)

    def add_files(self, code: str, *filenames: str) -> None:
        session = self.sessions[code]
        self.sessions[code] = SessionRecord(
            code=code,
            created_at=session.created_at,
            expires_at=session.expires_at,
            files=[*session.files, *filenames],
            status=session.status,
        )

    def expire(self, code: str) -> None:
        session = self.sessions[code]
        self.sessions[code] = SessionRecord(
            code=code,
            created_at=session.created_at,
            expires_at=self.clock() - timedelta(seconds=1),
            files=session.files,
            status=session.status,
        )


@dataclass
class FakeBlobClient(BlobClient):
    """Blob client serving bytes from memory; listed names fail."""

    blobs: dict[str, bytes] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    requests: list[tuple[str, str]] = field(default_factory=list)

    async def fetch_bytes(self, code: str, filename: str) -> bytes:
        self.requests.append((code, filename))
        if filename in self.failing or filename not in self.blobs:
            raise TransportError(f"Failed to download {filename}", status_code=404)
        return self.blobs[filename]


@dataclass
class ScriptedSessionManager:
    """Returns scripted statuses; exceptions in the script are raised."""

    script: list[SessionStatus | Exception]
    calls: int = 0

    async def check_session_status(self, code: str) -> SessionStatus:
        index = min(self.calls, len(self.script) - 1)
        self.calls += 1
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        return step


@dataclass
class FakeClock:
    """Monotonic clock that only moves when the poller sleeps."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        firebase_project_id="test-project",
        firebase_api_key="test-key",
        upload_user_id="anonymous",
    )


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def blob_client() -> FakeBlobClient:
    return FakeBlobClient()


@pytest.fixture
def container(
    settings: Settings,
    session_store: InMemorySessionStore,
    blob_client: FakeBlobClient,
) -> AppContainer:
    session_manager = SessionManager(
        session_store, limits=FAST_LIMITS, clock=fixed_clock
    )
    downloader = FileDownloader(blob_client)
    poller = SessionPoller(
        session_manager=session_manager,
        downloader=downloader,
        limits=FAST_LIMITS,
    )
    commands = SessionCommands(
        session_manager=session_manager,
        downloader=downloader,
        poller=poller,
    )

    async def close_resources() -> None:
        await commands.shutdown()

    return AppContainer(
        settings=settings,
        limits=FAST_LIMITS,
        session_manager=session_manager,
        downloader=downloader,
        poller=poller,
        commands=commands,
        close_resources=close_resources,
    )
