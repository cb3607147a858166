"""Firestore REST implementation of the session store."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from asset_handoff.adapters.firestore_models import (
    CommitResponse,
    FirestoreValue,
    decode_fields,
    encode_document,
)
from asset_handoff.config import SESSION_TTL_HOURS, Settings
from asset_handoff.domain.errors import ConflictError, DecodeError, TransportError
from asset_handoff.domain.sessions import SessionRecord, utc_now
from asset_handoff.services.sessions import SessionStore

logger = logging.getLogger(__name__)

_COUNTER_COLLECTION = "meta"
_COUNTER_ID = "session_counter"
_SESSIONS_COLLECTION = "sessions"


@dataclass
class HttpxFirestoreSessionStore(SessionStore):
    """Session store backed by the Firestore REST API."""

    api_root: str
    database: str
    user_id: str
    http_client: httpx.AsyncClient
    api_key: str | None = None
    ttl: timedelta = timedelta(hours=SESSION_TTL_HOURS)
    clock: Callable[[], datetime] = utc_now

    @classmethod
    def create(
        cls, settings: Settings, http_client: httpx.AsyncClient, ttl: timedelta
    ) -> "HttpxFirestoreSessionStore":
        """Create a store from settings using a shared httpx session."""
        return cls(
            api_root=settings.firestore_api_root,
            database=settings.firestore_database,
            user_id=settings.upload_user_id,
            http_client=http_client,
            api_key=settings.firebase_api_key,
            ttl=ttl,
        )

    @property
    def _documents_url(self) -> str:
        return f"{self.api_root}/{self.database}/documents"

    def _collection_path(self, collection: str) -> str:
        return f"users/{quote(self.user_id, safe='')}/{collection}"

    async def increment_counter(self) -> int:
        """Create the counter if needed, then increment it by one.

        The increment uses a server-side field transform, but callers must
        still treat the resulting code as possibly taken.
        """
        counter_collection = self._collection_path(_COUNTER_COLLECTION)
        try:
            created = await self._request(
                "POST",
                f"{self._documents_url}/{counter_collection}",
                params={"documentId": _COUNTER_ID},
                json=encode_document({"value": FirestoreValue.of_int(0)}),
            )
        except TransportError as exc:
            logger.debug("Counter create request failed: %s", exc)
        else:
            if not created.is_success:
                logger.debug(
                    "Counter create skipped",
                    extra={"status_code": created.status_code},
                )

        counter_name = (
            f"{self.database}/documents/{counter_collection}/{_COUNTER_ID}"
        )
        response = await self._request(
            "POST",
            f"{self._documents_url}:commit",
            json={
                "writes": [
                    {
                        "transform": {
                            "document": counter_name,
                            "fieldTransforms": [
                                {
                                    "fieldPath": "value",
                                    "increment": {"integerValue": "1"},
                                }
                            ],
                        }
                    }
                ]
            },
        )
        _ensure_success(response, "increment session counter")
        try:
            value = CommitResponse.model_validate(response.json()).first_integer()
        except (ValueError, ValidationError):
            value = None
        if value is None:
            logger.warning("Counter response unreadable, falling back to 1")
            return 1
        return value

    async def create_session(self, code: str) -> SessionRecord:
        """Create an active session document with an empty file list."""
        now = self.clock()
        session = SessionRecord(
            code=code,
            created_at=now,
            expires_at=now + self.ttl,
            files=[],
            status="active",
        )
        response = await self._request(
            "POST",
            f"{self._documents_url}/{self._collection_path(_SESSIONS_COLLECTION)}",
            params={"documentId": code},
            json=encode_document(
                {
                    "created_at": FirestoreValue.of_timestamp(session.created_at),
                    "expires_at": FirestoreValue.of_timestamp(session.expires_at),
                    "files": FirestoreValue.of_strings(session.files),
                    "status": FirestoreValue.of_str(session.status),
                }
            ),
        )
        if response.status_code == httpx.codes.CONFLICT or _mentions_existing(
            response
        ):
            raise ConflictError(f"Session {code} already exists")
        _ensure_success(response, f"create session {code}")
        return session

    async def get_session(self, code: str) -> SessionRecord | None:
        """Read a session, filling missing or malformed fields with defaults."""
        response = await self._request(
            "GET",
            f"{self._documents_url}/{self._collection_path(_SESSIONS_COLLECTION)}"
            f"/{quote(code, safe='')}",
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        _ensure_success(response, f"read session {code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(f"Session {code} body is not JSON") from exc
        fields = decode_fields(payload)

        # Defaults keep a half-written document pollable; a missing expiry
        # reads as a fresh TTL.
        now = self.clock()
        created_at = _timestamp_field(fields, "created_at") or now
        expires_at = _timestamp_field(fields, "expires_at") or now + self.ttl
        files_value = fields.get("files")
        files = (files_value.as_strings() if files_value else None) or []
        status_value = fields.get("status")
        status = (status_value.string_value if status_value else None) or "active"
        return SessionRecord(
            code=code,
            created_at=created_at,
            expires_at=expires_at,
            files=files,
            status=status,
        )

    async def _request(
        self, method: str, url: str, params: dict[str, str] | None = None, **kwargs
    ) -> httpx.Response:
        query = dict(params or {})
        if self.api_key:
            query["key"] = self.api_key
        try:
            return await self.http_client.request(
                method, url, params=query, timeout=10, **kwargs
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc


def _ensure_success(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    raise TransportError(
        f"Failed to {action}: HTTP {response.status_code}",
        status_code=response.status_code,
    )


def _mentions_existing(response: httpx.Response) -> bool:
    if response.is_success:
        return False
    text = response.text
    return "ALREADY_EXISTS" in text or "already exists" in text.lower()


def _timestamp_field(
    fields: dict[str, FirestoreValue], name: str
) -> datetime | None:
    value = fields.get(name)
    return value.as_timestamp() if value else None
