"""Schema resolution and envelope validation toolkit."""

from .cache import SchemaCache, cache_key
from .sources import (
    BundledSource,
    FilesystemSource,
    RemoteArchiveSource,
    SchemaParseError,
    SchemaSource,
    SourceError,
    bundled_assets,
    load_schema_from_stream,
    load_schema_from_string,
    schema_path,
)
from .loader import LoaderState, SchemaLoader, SchemaNotFound, SchemaResolutionError
from .envelope import Envelope, EnvelopeFormatError, Header
from .validator import ValidationResult, Validator
from .config import PactsConfig
from .service import PactsService, ValidationFailed
from .transport import EnvelopePublisher, InMemoryJetStream, build_subject

__all__ = [
    "SchemaCache",
    "cache_key",
    "BundledSource",
    "FilesystemSource",
    "RemoteArchiveSource",
    "SchemaParseError",
    "SchemaSource",
    "SourceError",
    "bundled_assets",
    "load_schema_from_stream",
    "load_schema_from_string",
    "schema_path",
    "LoaderState",
    "SchemaLoader",
    "SchemaNotFound",
    "SchemaResolutionError",
    "Envelope",
    "EnvelopeFormatError",
    "Header",
    "ValidationResult",
    "Validator",
    "PactsConfig",
    "PactsService",
    "ValidationFailed",
    "EnvelopePublisher",
    "InMemoryJetStream",
    "build_subject",
]
