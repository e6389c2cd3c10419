"""Structural validation rules and envelope header checks."""
from __future__ import annotations

import pytest

from conftest import PLAYER_REQUEST
from pacts_kit.envelope import Envelope, Header
from pacts_kit.loader import SchemaLoader, SchemaNotFound
from pacts_kit.sources import BundledSource
from pacts_kit.validator import ValidationResult, Validator, matches_type


class _SpyLoader:
    """Loader stand-in recording every lookup."""

    def __init__(self, schemas=None) -> None:
        self.calls = []
        self._schemas = schemas or {}

    def load(self, category, name, *, domain=None, version=None):
        self.calls.append((domain, version, category, name))
        key = (domain or "bees", version or "v1", category, name)
        if key not in self._schemas:
            raise SchemaNotFound(*key)
        return self._schemas[key]


@pytest.fixture
def validator(asset_table) -> Validator:
    loader = SchemaLoader([BundledSource(assets=asset_table)], domain="bees", version="v1")
    return Validator(loader)


def _envelope(version="v1", category="player", name="player_request", data=None, domain="") -> Envelope:
    header = Header.create(version, category, name, domain=domain)
    return Envelope(header=header, data=data if data is not None else {})


# ----------------------------------------------------------------------
# validate_data
# ----------------------------------------------------------------------
def test_missing_required_field(validator: Validator) -> None:
    result = validator.validate_data({}, {"type": "object", "required": ["id"]})

    assert result.valid is False
    assert result.errors == ["required field missing: id"]


def test_present_required_field(validator: Validator) -> None:
    result = validator.validate_data({"id": "1"}, {"type": "object", "required": ["id"]})

    assert result.valid is True
    assert result.errors == []


def test_top_level_type_mismatch(validator: Validator) -> None:
    result = validator.validate_data({"id": "1"}, {"type": "array"})

    assert result.valid is False
    assert "invalid type, expected: array" in result.errors


def test_property_type_mismatch(validator: Validator) -> None:
    schema = {"type": "object", "properties": {"count": {"type": "number"}, "name": {"type": "string"}}}

    result = validator.validate_data({"count": "three", "name": "hive"}, schema)

    assert result.errors == ["invalid type for field 'count', expected: number"]


def test_property_checks_are_not_recursive(validator: Validator) -> None:
    schema = {
        "type": "object",
        "properties": {
            "attributes": {
                "type": "object",
                "required": ["colour"],
                "properties": {"colour": {"type": "string"}},
            }
        },
    }

    result = validator.validate_data({"attributes": {"colour": 42}}, schema)

    assert result.valid is True


def test_absent_properties_are_not_checked(validator: Validator) -> None:
    schema = {"type": "object", "properties": {"optional": {"type": "string"}}}

    assert validator.validate_data({}, schema).valid is True


def test_errors_accumulate_without_short_circuit(validator: Validator) -> None:
    schema = {"type": "object", "required": ["id", "name"], "properties": {"flag": {"type": "boolean"}}}

    result = validator.validate_data({"flag": "yes"}, schema)

    assert result.errors == [
        "required field missing: id",
        "required field missing: name",
        "invalid type for field 'flag', expected: boolean",
    ]


def test_non_mapping_data_lacks_every_required_field(validator: Validator) -> None:
    result = validator.validate_data(["id"], {"type": "object", "required": ["id"]})

    assert result.errors == ["required field missing: id", "invalid type, expected: object"]


@pytest.mark.parametrize("schema", [[], ["id"], "object", 7, None])
def test_non_object_schema_imposes_no_constraints(validator: Validator, schema) -> None:
    assert validator.validate_data({"id": 1}, schema).valid is True


def test_non_object_schema_document_does_not_break_envelope_validation() -> None:
    loader = SchemaLoader(
        [BundledSource(assets={"bees/v1/player/listing.json": b"[]"})], domain="bees", version="v1"
    )

    result = Validator(loader).validate(_envelope(name="listing", data={"id": 1}))

    assert result.valid is True


def test_required_entries_that_are_not_strings_are_skipped(validator: Validator) -> None:
    result = validator.validate_data({"id": 1}, {"required": [{"x": 1}, 3, "name"]})

    assert result.errors == ["required field missing: name"]


def test_required_must_be_a_list(validator: Validator) -> None:
    assert validator.validate_data({}, {"required": "id"}).valid is True


def test_unrecognised_keys_are_ignored(validator: Validator) -> None:
    schema = {"type": "string", "pattern": "^[a-z]+$", "enum": ["a"], "$ref": "#/other"}

    assert validator.validate_data("ZZZ", schema).valid is True


@pytest.mark.parametrize(
    ("value", "expected", "matches"),
    [
        ({}, "object", True),
        ([], "object", False),
        ([1, 2], "array", True),
        ((1, 2), "array", True),
        ("text", "array", False),
        ("text", "string", True),
        (1, "number", True),
        (1.5, "number", True),
        (True, "number", False),
        (False, "boolean", True),
        (0, "boolean", False),
        (None, "null", True),
        ("", "null", False),
        ("anything", "integer", True),
        (None, "uuid", True),
    ],
)
def test_type_mapping(value, expected, matches) -> None:
    assert matches_type(value, expected) is matches


# ----------------------------------------------------------------------
# validate(envelope)
# ----------------------------------------------------------------------
def test_empty_header_short_circuits_without_lookup() -> None:
    loader = _SpyLoader()
    validator = Validator(loader)  # type: ignore[arg-type]

    result = validator.validate(_envelope(version="", category="", name=""))

    assert result.valid is False
    assert result.errors == ["header is required"]
    assert loader.calls == []


def test_valid_envelope(validator: Validator) -> None:
    data = {"target_id": "player-123", "request_type": "PLAYER_JOIN", "date": "2025-01-01"}

    result = validator.validate(_envelope(data=data))

    assert result.valid is True


def test_payload_errors_are_reported(validator: Validator) -> None:
    data = {"target_id": 123, "request_type": "PLAYER_JOIN"}

    result = validator.validate(_envelope(data=data))

    assert result.errors == [
        "required field missing: date",
        "invalid type for field 'target_id', expected: string",
    ]


def test_each_missing_identity_field_is_reported() -> None:
    loader = _SpyLoader()
    validator = Validator(loader)  # type: ignore[arg-type]

    result = validator.validate(_envelope(version="v1", category="", name=""))

    assert result.errors == [
        "schema category is required in header",
        "schema name is required in header",
    ]
    assert loader.calls == []


def test_missing_version_still_validates_payload() -> None:
    loader = _SpyLoader({("bees", "v1", "player", "player_request"): PLAYER_REQUEST})
    validator = Validator(loader)  # type: ignore[arg-type]

    result = validator.validate(_envelope(version="", data={}))

    assert result.errors[0] == "schema version is required in header"
    assert "required field missing: target_id" in result.errors
    assert loader.calls == [(None, None, "player", "player_request")]


def test_unknown_schema_is_reported_once(validator: Validator) -> None:
    result = validator.validate(_envelope(name="player_unknown", data={"anything": 1}))

    assert result.errors == ["schema not found: bees/v1/player/player_unknown"]


def test_header_coordinates_drive_the_lookup() -> None:
    loader = _SpyLoader({("ants", "v2", "colony", "colony_state"): {"type": "object"}})
    validator = Validator(loader)  # type: ignore[arg-type]

    result = validator.validate(_envelope(version="v2", category="colony", name="colony_state", domain="ants"))

    assert result.valid is True
    assert loader.calls == [("ants", "v2", "colony", "colony_state")]


def test_domain_can_be_part_of_the_identity() -> None:
    loader = _SpyLoader({("bees", "v1", "player", "player_request"): {"type": "object"}})
    validator = Validator(
        loader,  # type: ignore[arg-type]
        identity_fields=("schema_domain", "schema_version", "schema_category", "schema_name"),
    )

    result = validator.validate(_envelope())

    assert result.errors == ["schema domain is required in header"]


def test_identity_fields_must_be_known() -> None:
    with pytest.raises(ValueError):
        Validator(_SpyLoader(), identity_fields=("schema_colour",))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        Validator(_SpyLoader(), identity_fields=())  # type: ignore[arg-type]


# ----------------------------------------------------------------------
# ValidationResult
# ----------------------------------------------------------------------
def test_validation_result_helpers() -> None:
    assert ValidationResult.success().valid is True
    assert ValidationResult.success().error_message == "Validation successful"

    failed = ValidationResult.failure(["a", "b"])
    assert failed.valid is False
    assert failed.has_errors is True
    assert failed.error_message == "a; b"
