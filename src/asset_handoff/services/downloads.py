"""Retrieval of uploaded session files into a local directory."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from asset_handoff.domain.errors import (
    AssetHandoffError,
    LocalWriteError,
    NoFilesDownloadedError,
)

logger = logging.getLogger(__name__)


class BlobClient(Protocol):
    """Interface for reading uploaded file bytes."""

    async def fetch_bytes(self, code: str, filename: str) -> bytes:
        """Return the contents of one uploaded file."""


@dataclass
class FileDownloader:
    """Writes uploaded files for a session into a destination directory."""

    blob_client: BlobClient

    async def fetch(self, code: str, filename: str, destination_dir: Path) -> str:
        """Download one file, overwriting any existing copy, and return its path."""
        content = await self.blob_client.fetch_bytes(code, filename)
        # Only the final path component is used so names cannot escape the
        # destination directory.
        target = Path(destination_dir) / Path(filename).name
        try:
            await asyncio.to_thread(_write_file, target, content)
        except (OSError, ValueError) as exc:
            raise LocalWriteError(f"Failed to write {target}: {exc}") from exc
        return str(target)

    async def fetch_all(
        self, code: str, filenames: list[str] | tuple[str, ...], destination_dir: Path
    ) -> list[str]:
        """Download files in order, skipping failures.

        Raises NoFilesDownloadedError only when nothing could be written.
        """
        downloaded: list[str] = []
        failed: list[str] = []
        for filename in filenames:
            try:
                downloaded.append(await self.fetch(code, filename, destination_dir))
            except AssetHandoffError as exc:
                failed.append(filename)
                logger.warning(
                    "Failed to download %s for session %s: %s", filename, code, exc
                )

        if not downloaded:
            raise NoFilesDownloadedError(
                f"No files were downloaded for session {code}"
            )
        if failed:
            logger.warning(
                "Downloaded %d of %d files for session %s",
                len(downloaded),
                len(downloaded) + len(failed),
                code,
                extra={"failed_files": failed},
            )
        return downloaded


def _write_file(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
