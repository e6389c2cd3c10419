"""Shallow structural validation of envelope payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence

from .envelope import Envelope
from .loader import SchemaLoader, SchemaNotFound

DEFAULT_IDENTITY_FIELDS = ("schema_category", "schema_name", "schema_version")

_FIELD_ERRORS = {
    "schema_domain": "schema domain is required in header",
    "schema_version": "schema version is required in header",
    "schema_category": "schema category is required in header",
    "schema_name": "schema name is required in header",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "object": lambda value: isinstance(value, Mapping),
    "array": lambda value: isinstance(value, (list, tuple)),
    "string": lambda value: isinstance(value, str),
    "number": _is_number,
    "boolean": lambda value: isinstance(value, bool),
    "null": lambda value: value is None,
}


def matches_type(value: Any, expected: Any) -> bool:
    """Return ``True`` when ``value`` has the JSON kind named by ``expected``.

    Unknown type names are always satisfied.
    """

    check = _TYPE_CHECKS.get(expected) if isinstance(expected, str) else None
    return check is None or check(value)


@dataclass(slots=True)
class ValidationResult:
    """Outcome of a validation run; ``valid`` is true exactly when there are no errors."""

    errors: List[str] = field(default_factory=list)

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, errors: Sequence[str]) -> "ValidationResult":
        return cls(list(errors))

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_message(self) -> str:
        if not self.errors:
            return "Validation successful"
        return "; ".join(self.errors)


class Validator:
    """Validate envelopes against schemas served by a :class:`SchemaLoader`."""

    def __init__(
        self,
        loader: SchemaLoader,
        *,
        identity_fields: Sequence[str] = DEFAULT_IDENTITY_FIELDS,
    ) -> None:
        unknown = [name for name in identity_fields if name not in _FIELD_ERRORS]
        if unknown:
            raise ValueError(f"Unknown header identity fields: {', '.join(unknown)}")
        if not identity_fields:
            raise ValueError("At least one header identity field must be provided")
        self._loader = loader
        self._identity_fields = tuple(identity_fields)

    @property
    def loader(self) -> SchemaLoader:
        return self._loader

    @property
    def identity_fields(self) -> tuple[str, ...]:
        return self._identity_fields

    def validate(self, envelope: Envelope) -> ValidationResult:
        header = envelope.header
        values = {name: getattr(header, name) or "" for name in self._identity_fields}
        if not any(values.values()):
            return ValidationResult.failure(["header is required"])

        errors = [_FIELD_ERRORS[name] for name, value in values.items() if not value]

        category = header.schema_category
        name = header.schema_name
        if category and name:
            try:
                schema = self._loader.load(
                    category,
                    name,
                    domain=header.schema_domain or None,
                    version=header.schema_version or None,
                )
            except SchemaNotFound as exc:
                errors.append(f"schema not found: {exc.key}")
            else:
                errors.extend(self.validate_data(envelope.data, schema).errors)

        return ValidationResult(errors)

    def validate_data(self, data: Any, schema: Any) -> ValidationResult:
        """Check ``data`` against the top level of ``schema``.

        Required fields, the declared top-level type and the declared type of
        each present property are checked independently. Nested schemas are
        never descended into.
        """

        errors: List[str] = []
        if not isinstance(schema, Mapping):
            # Documents that are not objects carry no constraints.
            return ValidationResult(errors)
        is_mapping = isinstance(data, Mapping)

        required = schema.get("required")
        if isinstance(required, (list, tuple)):
            for field_name in required:
                if not isinstance(field_name, str):
                    continue
                if not is_mapping or field_name not in data:
                    errors.append(f"required field missing: {field_name}")

        if "type" in schema and not matches_type(data, schema["type"]):
            errors.append(f"invalid type, expected: {schema['type']}")

        properties = schema.get("properties")
        if is_mapping and isinstance(properties, Mapping):
            for property_name, fragment in properties.items():
                if property_name not in data or not isinstance(fragment, Mapping):
                    continue
                expected = fragment.get("type")
                if expected is not None and not matches_type(data[property_name], expected):
                    errors.append(f"invalid type for field '{property_name}', expected: {expected}")

        return ValidationResult(errors)


__all__ = [
    "DEFAULT_IDENTITY_FIELDS",
    "ValidationResult",
    "Validator",
    "matches_type",
]
