"""Schema sources used by the loader's fallback chain.

Every source exposes ``resolve(domain, version)`` returning a batch of
``{cache_key: document}`` pairs, or raises :class:`SourceError` when it
cannot produce anything at all. Entries that fail to parse are skipped and
recorded in the source's ``warnings`` list instead of failing the batch.
"""
from __future__ import annotations

import io
import json
import logging
import tarfile
import zipfile
from dataclasses import dataclass, field
from functools import lru_cache
from importlib.resources import files
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import IO, Any, ClassVar, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .cache import cache_key

LOGGER = logging.getLogger(__name__)

SCHEMA_EXTENSION = ".json"
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_MAX_ARCHIVE_BYTES = 50 * 1024 * 1024

_BUNDLED_PACKAGE = "pacts_kit"
_BUNDLED_DIR = "schemas"


class SourceError(RuntimeError):
    """Raised when a schema source cannot produce any schemas."""


class SchemaParseError(ValueError):
    """Raised when a schema document is not valid JSON."""


def load_schema_from_string(content: str | bytes) -> Any:
    """Parse a raw schema document."""

    try:
        return json.loads(content)
    except ValueError as exc:
        raise SchemaParseError(f"Invalid schema document: {exc}") from exc


def load_schema_from_stream(stream: IO) -> Any:
    """Parse a schema document from a readable text or binary stream."""

    return load_schema_from_string(stream.read())


def schema_path(root: str | Path, domain: str, version: str, category: str, name: str) -> Path:
    """Return ``root/domain/version/category/name.json``."""

    return Path(root, domain, version, category, f"{name}{SCHEMA_EXTENSION}")


def _asset_path(domain: str, version: str, category: str, name: str) -> str:
    return "/".join((domain, version, category, f"{name}{SCHEMA_EXTENSION}"))


def _key_from_entry(entry_name: str) -> Optional[str]:
    """Derive a cache key from the last four segments of ``entry_name``."""

    parts = [part for part in PurePosixPath(entry_name.replace("\\", "/")).parts if part != "/"]
    if len(parts) < 4:
        return None
    domain, version, category, filename = parts[-4:]
    name = filename[: -len(SCHEMA_EXTENSION)]
    if not name:
        return None
    return cache_key(domain, version, category, name)


def _skip(warnings: List[str], message: str, *args: object) -> None:
    LOGGER.warning(message, *args)
    warnings.append(message % args)


def _parse_entries(entries: Iterable[Tuple[str, bytes]], warnings: List[str], origin: str) -> Dict[str, Any]:
    batch: Dict[str, Any] = {}
    for entry_name, raw in entries:
        key = _key_from_entry(entry_name)
        if key is None:
            _skip(warnings, "%s: skipping %s, path is too shallow for a schema key", origin, entry_name)
            continue
        try:
            batch[key] = load_schema_from_string(raw)
        except SchemaParseError as exc:
            _skip(warnings, "%s: skipping %s: %s", origin, entry_name, exc)
    return batch


def _walk_assets(node, prefix: str) -> Iterator[Tuple[str, bytes]]:
    for child in node.iterdir():
        relative = f"{prefix}{child.name}"
        if child.is_dir():
            yield from _walk_assets(child, f"{relative}/")
        elif child.name.endswith(SCHEMA_EXTENSION):
            yield relative, child.read_bytes()


@lru_cache(maxsize=1)
def bundled_assets() -> Mapping[str, bytes]:
    """Return the read-only table of schema files shipped with the package."""

    root = files(_BUNDLED_PACKAGE).joinpath(_BUNDLED_DIR)
    if not root.is_dir():
        return MappingProxyType({})
    return MappingProxyType(dict(_walk_assets(root, "")))


@dataclass
class FilesystemSource:
    """Schemas laid out as ``root/domain/version/category/name.json``."""

    root: str | Path
    warnings: List[str] = field(default_factory=list, init=False, repr=False)

    kind: ClassVar[str] = "filesystem"

    def read(self, domain: str, version: str, category: str, name: str) -> Optional[Any]:
        path = schema_path(self.root, domain, version, category, name)
        if not path.is_file():
            return None
        return load_schema_from_string(path.read_bytes())

    def resolve(self, domain: str, version: str) -> Dict[str, Any]:
        self.warnings.clear()
        base = Path(self.root, domain, version)
        if not base.is_dir():
            LOGGER.debug("No schema directory at %s", base)
            return {}
        root = Path(self.root)
        entries = [
            (path.relative_to(root).as_posix(), path.read_bytes())
            for path in sorted(base.glob(f"*/*{SCHEMA_EXTENSION}"))
            if path.is_file()
        ]
        return _parse_entries(entries, self.warnings, str(base))


@dataclass
class BundledSource:
    """Schemas compiled into the package as read-only data files."""

    assets: Optional[Mapping[str, bytes]] = None
    warnings: List[str] = field(default_factory=list, init=False, repr=False)

    kind: ClassVar[str] = "bundled"

    def _table(self) -> Mapping[str, bytes]:
        return self.assets if self.assets is not None else bundled_assets()

    def read(self, domain: str, version: str, category: str, name: str) -> Optional[Any]:
        raw = self._table().get(_asset_path(domain, version, category, name))
        if raw is None:
            return None
        return load_schema_from_string(raw)

    def resolve(self, domain: str, version: str) -> Dict[str, Any]:
        self.warnings.clear()
        prefix = f"{domain}/{version}/"
        entries = sorted(
            (path, raw)
            for path, raw in self._table().items()
            if path.startswith(prefix) and path.count("/") == 3 and path.endswith(SCHEMA_EXTENSION)
        )
        return _parse_entries(entries, self.warnings, self.kind)


def _read_bounded(handle: IO[bytes], limit: int) -> Optional[bytes]:
    data = handle.read(limit + 1)
    return None if len(data) > limit else data


def _archive_entries(body: bytes, limit: int, warnings: List[str], origin: str) -> Iterator[Tuple[str, bytes]]:
    """Yield ``(name, bytes)`` for every JSON entry no larger than ``limit`` once unpacked."""

    buffer = io.BytesIO(body)
    if zipfile.is_zipfile(buffer):
        buffer.seek(0)
        with zipfile.ZipFile(buffer) as archive:
            for info in archive.infolist():
                if info.is_dir() or not info.filename.endswith(SCHEMA_EXTENSION):
                    continue
                data = None
                if info.file_size <= limit:
                    with archive.open(info) as handle:
                        data = _read_bounded(handle, limit)
                if data is None:
                    _skip(warnings, "%s: skipping %s, unpacked size exceeds %d bytes", origin, info.filename, limit)
                    continue
                yield info.filename, data
        return

    buffer.seek(0)
    with tarfile.open(fileobj=buffer, mode="r:*") as archive:
        for member in archive:
            if not member.isfile() or not member.name.endswith(SCHEMA_EXTENSION):
                continue
            if member.size > limit:
                _skip(warnings, "%s: skipping %s, unpacked size exceeds %d bytes", origin, member.name, limit)
                continue
            handle = archive.extractfile(member)
            if handle is None:
                continue
            yield member.name, handle.read()


@dataclass
class RemoteArchiveSource:
    """Download a zip or tar archive of schemas and extract it in memory.

    ``urls`` are tried in order; the first one yielding at least one schema
    wins. Every URL gets a single GET bounded by ``timeout`` seconds and
    ``max_bytes`` of body. Entries larger than ``max_bytes`` once unpacked
    are skipped. Nothing is written to disk.
    """

    urls: Sequence[str]
    timeout: float = DEFAULT_FETCH_TIMEOUT
    max_bytes: int = DEFAULT_MAX_ARCHIVE_BYTES
    client: Optional[httpx.Client] = field(default=None, repr=False)
    warnings: List[str] = field(default_factory=list, init=False, repr=False)

    kind: ClassVar[str] = "remote"

    def __post_init__(self) -> None:
        self.urls = tuple(self.urls)
        if not self.urls:
            raise ValueError("At least one archive URL must be provided")
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")

    def resolve(self, domain: str, version: str) -> Dict[str, Any]:
        # Archives carry every domain and version they were built with.
        _ = domain, version
        self.warnings.clear()
        failures: List[str] = []
        for url in self.urls:
            try:
                batch = self._extract(url, self._fetch(url))
            except SourceError as exc:
                LOGGER.warning("Schema archive %s failed: %s", url, exc)
                failures.append(f"{url}: {exc}")
                continue
            if batch:
                LOGGER.info("Loaded %d schemas from archive %s", len(batch), url)
                return batch
            LOGGER.warning("Schema archive %s contained no usable schemas", url)
            failures.append(f"{url}: no schemas")
        raise SourceError("; ".join(failures))

    def _fetch(self, url: str) -> bytes:
        if self.client is not None:
            return self._download(self.client, url)
        with httpx.Client(follow_redirects=True) as client:
            return self._download(client, url)

    def _download(self, client: httpx.Client, url: str) -> bytes:
        try:
            with client.stream("GET", url, timeout=self.timeout) as response:
                response.raise_for_status()
                declared = response.headers.get("Content-Length")
                if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
                    raise SourceError(f"archive of {declared} bytes exceeds limit of {self.max_bytes}")
                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if len(body) > self.max_bytes:
                        raise SourceError(f"archive exceeds limit of {self.max_bytes} bytes")
                return bytes(body)
        except httpx.HTTPError as exc:
            raise SourceError(f"fetch failed: {exc}") from exc

    def _extract(self, url: str, body: bytes) -> Dict[str, Any]:
        try:
            entries = list(_archive_entries(body, self.max_bytes, self.warnings, url))
        except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as exc:
            raise SourceError(f"corrupt archive: {exc}") from exc
        return _parse_entries(entries, self.warnings, url)


SchemaSource = Union[FilesystemSource, BundledSource, RemoteArchiveSource]


__all__ = [
    "BundledSource",
    "DEFAULT_FETCH_TIMEOUT",
    "DEFAULT_MAX_ARCHIVE_BYTES",
    "FilesystemSource",
    "RemoteArchiveSource",
    "SCHEMA_EXTENSION",
    "SchemaParseError",
    "SchemaSource",
    "SourceError",
    "bundled_assets",
    "load_schema_from_stream",
    "load_schema_from_string",
    "schema_path",
]
