"""Eager, fallback-ordered schema loader."""
from __future__ import annotations

import copy
import logging
import re
import threading
from enum import Enum
from typing import Any, List, Optional, Sequence

from .cache import SchemaCache, cache_key
from .sources import SchemaSource, SourceError

LOGGER = logging.getLogger(__name__)

_VERSION_PATTERN = re.compile(r"^v(\d+)$")


class LoaderState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    READY = "ready"
    FAILED = "failed"


class SchemaNotFound(KeyError):
    """Raised when a schema is not present in the loader's cache."""

    def __init__(self, domain: str, version: str, category: str, name: str) -> None:
        self.domain = domain
        self.version = version
        self.category = category
        self.name = name
        super().__init__(self.key)

    @property
    def key(self) -> str:
        return cache_key(self.domain, self.version, self.category, self.name)

    def __str__(self) -> str:
        return f"Schema not found: {self.key}"


class SchemaResolutionError(RuntimeError):
    """Raised when every source in the fallback chain failed or was empty."""

    def __init__(self, failures: Sequence[str]) -> None:
        self.failures: List[str] = list(failures)
        super().__init__("No schema source produced any schemas: " + "; ".join(self.failures))


class SchemaLoader:
    """Resolve schemas once from an ordered source chain and serve lookups.

    Resolution happens synchronously in the constructor. The first source
    that yields at least one schema populates the cache and later sources are
    never consulted. Lookups afterwards only read the cache; there is no
    per-key fetch, so :meth:`clear_cache` leaves the loader empty until a new
    loader is built.
    """

    def __init__(
        self,
        sources: Sequence[SchemaSource],
        *,
        domain: str,
        version: str,
        schema_root: str = "schemas",
    ) -> None:
        self._sources = list(sources)
        if not self._sources:
            raise ValueError("At least one schema source must be provided")
        if not domain or not version:
            raise ValueError("Schema domain and version must be specified")
        self._schema_root = schema_root
        self._domain = domain
        self._version = version
        self._cache = SchemaCache()
        self._lock = threading.Lock()
        self._state = LoaderState.UNINITIALIZED
        self._active_source: Optional[str] = None
        self._resolve()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def _resolve(self) -> None:
        self._state = LoaderState.RESOLVING
        failures: List[str] = []
        with self._lock:
            for index, source in enumerate(self._sources):
                label = f"{getattr(source, 'kind', type(source).__name__)}[{index}]"
                try:
                    batch = source.resolve(self._domain, self._version)
                except (SourceError, OSError) as exc:
                    LOGGER.warning("Schema source %s failed: %s", label, exc)
                    failures.append(f"{label}: {exc}")
                    continue
                if not batch:
                    LOGGER.debug("Schema source %s produced no schemas", label)
                    failures.append(f"{label}: no schemas")
                    continue
                for key, document in batch.items():
                    self._cache.insert(key, document)
                self._active_source = label
                self._state = LoaderState.READY
                LOGGER.info("Loaded %d schemas from %s", len(batch), label)
                return
        self._state = LoaderState.FAILED
        raise SchemaResolutionError(failures)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def load(
        self,
        category: str,
        name: str,
        *,
        domain: Optional[str] = None,
        version: Optional[str] = None,
    ) -> Any:
        """Return a copy of the cached schema for the given coordinates."""

        domain = domain or self._domain
        version = version or self._version
        with self._lock:
            document = self._cache.get(cache_key(domain, version, category, name))
        if document is None:
            raise SchemaNotFound(domain, version, category, name)
        return copy.deepcopy(document)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def schema_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._cache.keys())

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def schema_root(self) -> str:
        return self._schema_root

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def version(self) -> str:
        return self._version

    @property
    def parsed_version(self) -> Optional[int]:
        match = _VERSION_PATTERN.match(self._version)
        return int(match.group(1)) if match else None

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def active_source(self) -> Optional[str]:
        return self._active_source


__all__ = [
    "LoaderState",
    "SchemaLoader",
    "SchemaNotFound",
    "SchemaResolutionError",
]
