"""Firebase Storage client for uploaded session files."""

from dataclasses import dataclass
from urllib.parse import quote

import httpx

from asset_handoff.config import Settings
from asset_handoff.domain.errors import TransportError
from asset_handoff.services.downloads import BlobClient


def upload_object_path(user_id: str, code: str, filename: str) -> str:
    """Return the escaped object name for an uploaded file."""
    return quote(f"uploads/{user_id}/{code}/{filename}", safe="")


@dataclass
class HttpxStorageBlobClient(BlobClient):
    """Blob client that reads raw object bytes over httpx."""

    api_root: str
    bucket: str
    user_id: str
    http_client: httpx.AsyncClient
    api_key: str | None = None

    @classmethod
    def create(
        cls, settings: Settings, http_client: httpx.AsyncClient
    ) -> "HttpxStorageBlobClient":
        """Create a blob client from settings using a shared httpx session."""
        return cls(
            api_root=settings.storage_api_root,
            bucket=settings.storage_bucket,
            user_id=settings.upload_user_id,
            http_client=http_client,
            api_key=settings.firebase_api_key,
        )

    async def fetch_bytes(self, code: str, filename: str) -> bytes:
        """Download the raw bytes of one uploaded file."""
        object_path = upload_object_path(self.user_id, code, filename)
        url = f"{self.api_root}/b/{self.bucket}/o/{object_path}"
        params = {"alt": "media"}
        if self.api_key:
            params["key"] = self.api_key
        try:
            response = await self.http_client.get(url, params=params, timeout=30)
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to download {filename}: {exc}") from exc
        if not response.is_success:
            raise TransportError(
                f"Failed to download {filename}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.content
