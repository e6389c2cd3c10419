"""Facade combining the loader, validator and envelope construction."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, TypeVar

from .config import PactsConfig
from .envelope import DEFAULT_CONTENT_TYPE, Envelope, Header
from .loader import SchemaLoader, SchemaNotFound
from .validator import ValidationResult, Validator

T = TypeVar("T")


class ValidationFailed(Exception):
    """Raised by :meth:`PactsService.send_validated_data` for invalid payloads."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__(f"Validation failed: {result.error_message}")


class PactsService:
    """Build, validate and forward envelopes for a single schema domain."""

    def __init__(self, loader: SchemaLoader, *, validator: Optional[Validator] = None) -> None:
        self._loader = loader
        self._validator = validator or Validator(loader)

    @classmethod
    def from_config(cls, config: Optional[PactsConfig] = None) -> "PactsService":
        config = config or PactsConfig.from_env()
        loader = SchemaLoader(
            config.build_sources(),
            schema_root=config.schema_root,
            domain=config.domain,
            version=config.version,
        )
        return cls(loader)

    @property
    def loader(self) -> SchemaLoader:
        return self._loader

    @property
    def validator(self) -> Validator:
        return self._validator

    def create_envelope(
        self,
        category: str,
        name: str,
        data: Any,
        *,
        metadata: Optional[Mapping[str, Any]] = None,
        auth_token: Optional[str] = None,
    ) -> Envelope:
        header = Header.create(
            self._loader.version,
            category,
            name,
            domain=self._loader.domain,
            content_type=DEFAULT_CONTENT_TYPE,
            auth_token=auth_token,
        )
        return Envelope(header=header, data=data, metadata=metadata)

    def validate(self, envelope: Envelope) -> ValidationResult:
        return self._validator.validate(envelope)

    def validate_data(self, data: Any, category: str, name: str) -> ValidationResult:
        try:
            schema = self._loader.load(category, name)
        except SchemaNotFound as exc:
            return ValidationResult.failure([f"schema not found: {exc.key}"])
        return self._validator.validate_data(data, schema)

    def send_validated_data(
        self,
        category: str,
        name: str,
        data: Any,
        sender: Callable[[Envelope], T],
        *,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> T:
        """Validate ``data`` and hand the resulting envelope to ``sender``."""

        envelope = self.create_envelope(category, name, data, metadata=metadata)
        result = self.validate(envelope)
        if not result.valid:
            raise ValidationFailed(result)
        return sender(envelope)

    def parse_envelope(self, text: str | bytes) -> Envelope:
        return Envelope.from_json(text)

    def to_json(self, envelope: Envelope) -> str:
        return envelope.to_json()


__all__ = ["PactsService", "ValidationFailed"]
