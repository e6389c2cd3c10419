"""Envelope and header data model with JSON and CBOR wire codecs."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import cbor2
from jsonschema import Draft202012Validator

DEFAULT_CONTENT_TYPE = "application/json"

_WIRE_SCHEMA_PATH = Path(__file__).with_name("envelope.schema.json")


class EnvelopeFormatError(ValueError):
    """Raised when a serialized envelope does not match the wire shape."""


@lru_cache(maxsize=1)
def load_wire_schema() -> Mapping[str, Any]:
    """Load and cache the envelope wire schema."""

    return json.loads(_WIRE_SCHEMA_PATH.read_text("utf-8"))


@lru_cache(maxsize=1)
def _wire_validator() -> Draft202012Validator:
    return Draft202012Validator(load_wire_schema())


def check_wire_shape(payload: Any) -> None:
    """Raise :class:`EnvelopeFormatError` listing every wire-shape violation."""

    problems = sorted(_wire_validator().iter_errors(payload), key=lambda error: [str(part) for part in error.path])
    if problems:
        details = "; ".join(
            f"{'/'.join(str(part) for part in error.path) or '<root>'}: {error.message}" for error in problems
        )
        raise EnvelopeFormatError(f"Malformed envelope: {details}")


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _to_datetime(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise EnvelopeFormatError(f"Invalid header timestamp: {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


@dataclass(slots=True, frozen=True)
class Header:
    """Schema coordinates and transport metadata for one envelope."""

    schema_version: str
    schema_category: str
    schema_name: str
    schema_domain: str = ""
    timestamp: datetime = field(default_factory=_now)
    content_type: Optional[str] = None
    auth_token: Optional[str] = None

    @classmethod
    def create(
        cls,
        version: str,
        category: str,
        name: str,
        *,
        domain: str = "",
        content_type: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> "Header":
        return cls(
            schema_version=version,
            schema_category=category,
            schema_name=name,
            schema_domain=domain,
            content_type=content_type,
            auth_token=auth_token,
        )

    def identity(self) -> Tuple[str, str, str, str]:
        return (self.schema_domain, self.schema_version, self.schema_category, self.schema_name)

    def to_dict(self) -> Dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "schema_domain": self.schema_domain,
            "schema_category": self.schema_category,
            "schema_name": self.schema_name,
            "timestamp": self.timestamp.isoformat(),
            "content_type": self.content_type,
            "auth_token": self.auth_token,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Header":
        return cls(
            schema_version=payload.get("schema_version", ""),
            schema_category=payload.get("schema_category", ""),
            schema_name=payload.get("schema_name", ""),
            schema_domain=payload.get("schema_domain") or "",
            timestamp=_to_datetime(payload["timestamp"]),
            content_type=payload.get("content_type"),
            auth_token=payload.get("auth_token"),
        )


@dataclass(slots=True, frozen=True)
class Envelope:
    """Immutable wrapper pairing a :class:`Header` with opaque payload data."""

    header: Header
    data: Any
    metadata: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.metadata is not None and not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def with_metadata(cls, header: Header, data: Any, metadata: Mapping[str, Any]) -> "Envelope":
        return cls(header=header, data=data, metadata=metadata)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"header": self.header.to_dict(), "data": self.data}
        if self.metadata is not None:
            payload["metadata"] = dict(self.metadata)
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> "Envelope":
        check_wire_shape(payload)
        return cls(
            header=Header.from_dict(payload["header"]),
            data=payload["data"],
            metadata=payload.get("metadata"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> "Envelope":
        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise EnvelopeFormatError(f"Envelope is not valid JSON: {exc}") from exc
        return cls.from_dict(payload)

    def to_cbor(self) -> bytes:
        return cbor2.dumps(self.to_dict())

    @classmethod
    def from_cbor(cls, data: bytes) -> "Envelope":
        try:
            payload = cbor2.loads(data)
        except cbor2.CBORDecodeError as exc:
            raise EnvelopeFormatError(f"Envelope is not valid CBOR: {exc}") from exc
        return cls.from_dict(payload)


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "Envelope",
    "EnvelopeFormatError",
    "Header",
    "check_wire_shape",
    "load_wire_schema",
]
