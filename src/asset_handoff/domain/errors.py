"""Error types raised by session and download operations."""


class AssetHandoffError(Exception):
    """Base class for all expected failures."""


class TransportError(AssetHandoffError):
    """A remote request failed or returned a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConflictError(AssetHandoffError):
    """The remote store already holds a document at the requested path."""


class CodeCollisionError(ConflictError):
    """A freshly minted code is already taken; the caller may ask again."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Session {code} already exists. Please try again.")
        self.code = code


class DecodeError(AssetHandoffError):
    """A response body could not be decoded at all."""


class NoFilesDownloadedError(AssetHandoffError):
    """Every file in a download batch failed."""


class SessionUnavailableError(AssetHandoffError):
    """The session is not in a state that allows downloading."""

    reason = "Session is unavailable"

    def __init__(self, code: str) -> None:
        super().__init__(f"{self.reason}: {code}")
        self.code = code


class SessionNotFoundError(SessionUnavailableError):
    reason = "Session not found"


class SessionExpiredError(SessionUnavailableError):
    reason = "Session has expired"


class SessionNotReadyError(SessionUnavailableError):
    reason = "No files available for this session yet"


class LocalWriteError(AssetHandoffError):
    """A downloaded file could not be written to the destination directory."""
