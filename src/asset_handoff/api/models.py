"""Pydantic request and response models for the HTTP API."""

from pydantic import BaseModel, Field


class WorkspaceRequest(BaseModel):
    """Body naming the local directory files are written into."""

    workspace_dir: str = Field(min_length=1)


class SessionCreated(BaseModel):
    """Response for a newly minted session code."""

    code: str


class SessionStatusResponse(BaseModel):
    """Current state of a session."""

    code: str
    state: str
    files: list[str] = Field(default_factory=list)


class DownloadResponse(BaseModel):
    """Local paths written by a download."""

    code: str
    files: list[str]


class PollStateResponse(BaseModel):
    """State of the background polling run for a session."""

    code: str
    polling: bool
    outcome: str | None = None
    files: list[str] = Field(default_factory=list)
    checks: int | None = None
