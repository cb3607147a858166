"""Pydantic models for Firestore REST documents and commit responses."""

import logging
import re
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asset_handoff.domain.errors import DecodeError

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")


class FirestoreValue(BaseModel):
    """Tagged value; exactly one field is expected to be set."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    integer_value: int | None = Field(default=None, alias="integerValue")
    string_value: str | None = Field(default=None, alias="stringValue")
    timestamp_value: str | None = Field(default=None, alias="timestampValue")
    array_value: "ArrayValue | None" = Field(default=None, alias="arrayValue")

    @classmethod
    def of_int(cls, value: int) -> "FirestoreValue":
        return cls(integer_value=value)

    @classmethod
    def of_str(cls, value: str) -> "FirestoreValue":
        return cls(string_value=value)

    @classmethod
    def of_timestamp(cls, value: datetime) -> "FirestoreValue":
        return cls(timestamp_value=value.astimezone(UTC).isoformat())

    @classmethod
    def of_strings(cls, values: list[str]) -> "FirestoreValue":
        return cls(array_value=ArrayValue(values=[cls.of_str(v) for v in values]))

    def as_timestamp(self) -> datetime | None:
        """Read a timestamp from either a timestamp or a string tag."""
        raw = self.timestamp_value or self.string_value
        if raw is None:
            return None
        return parse_timestamp(raw)

    def as_strings(self) -> list[str] | None:
        """Return the string entries of an array, skipping other tags."""
        if self.array_value is None:
            return None
        return [
            item.string_value
            for item in self.array_value.values
            if item.string_value is not None
        ]

    def to_wire(self) -> dict[str, object]:
        """Serialize with REST field names; int values travel as strings."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        if self.integer_value is not None:
            payload["integerValue"] = str(self.integer_value)
        if self.array_value is not None:
            payload["arrayValue"] = {
                "values": [item.to_wire() for item in self.array_value.values]
            }
        return payload


class ArrayValue(BaseModel):
    """Array payload; Firestore omits ``values`` for empty arrays."""

    values: list[FirestoreValue] = Field(default_factory=list)


FirestoreValue.model_rebuild()


class TransformResult(BaseModel):
    """Result of a single field transform in a commit."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    integer_value: int | None = Field(default=None, alias="integerValue")


class WriteResult(BaseModel):
    """Per-write result inside a commit response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transform_results: list[TransformResult] = Field(
        default_factory=list, alias="transformResults"
    )


class CommitResponse(BaseModel):
    """Response body of ``documents:commit``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    write_results: list[WriteResult] = Field(
        default_factory=list, alias="writeResults"
    )

    def first_integer(self) -> int | None:
        """Return the first integer transform result, if any."""
        for write in self.write_results:
            for result in write.transform_results:
                if result.integer_value is not None:
                    return result.integer_value
        return None


def encode_document(fields: dict[str, FirestoreValue]) -> dict[str, object]:
    """Build a document body from typed field values."""
    return {"fields": {name: value.to_wire() for name, value in fields.items()}}


def decode_fields(payload: object) -> dict[str, FirestoreValue]:
    """Decode document fields, dropping any field that does not validate."""
    if not isinstance(payload, dict):
        raise DecodeError("Document body is not a JSON object")
    raw_fields = payload.get("fields")
    if not isinstance(raw_fields, dict):
        return {}
    fields: dict[str, FirestoreValue] = {}
    for name, raw in raw_fields.items():
        try:
            fields[name] = FirestoreValue.model_validate(raw)
        except ValidationError:
            logger.debug("Ignoring malformed document field", extra={"field": name})
    return fields


def parse_timestamp(raw: str) -> datetime | None:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Fractions beyond microseconds are truncated; naive values are read as UTC.
    """
    cleaned = raw.strip()
    if cleaned.endswith(("Z", "z")):
        cleaned = f"{cleaned[:-1]}+00:00"
    cleaned = _FRACTION.sub(lambda match: "." + match.group(1)[:6], cleaned, count=1)
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
