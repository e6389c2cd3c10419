"""Runtime configuration for the schema loader and its source chain."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .sources import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_MAX_ARCHIVE_BYTES,
    BundledSource,
    FilesystemSource,
    RemoteArchiveSource,
    SchemaSource,
)

ENV_PREFIX = "PACTS_"
_TRUE_VALUES = ("1", "true", "yes", "y", "on")
_FALSE_VALUES = ("0", "false", "no", "n", "off")


def _get_str(environ: Mapping[str, str], name: str, default: str) -> str:
    return (environ.get(ENV_PREFIX + name) or default).strip()


def _get_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _get_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc


def _split_urls(raw: str) -> Tuple[str, ...]:
    return tuple(url.strip() for url in raw.split(",") if url.strip())


@dataclass(slots=True)
class PactsConfig:
    """Where schemas come from and how remote archives are fetched."""

    schema_root: str = "schemas"
    domain: str = "bees"
    version: str = "v1"
    archive_urls: Tuple[str, ...] = ()
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    max_archive_bytes: int = DEFAULT_MAX_ARCHIVE_BYTES
    use_filesystem: bool = True
    use_bundled: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PactsConfig":
        """Build a configuration from ``PACTS_*`` environment variables."""

        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            schema_root=_get_str(env, "SCHEMA_ROOT", defaults.schema_root),
            domain=_get_str(env, "DOMAIN", defaults.domain),
            version=_get_str(env, "VERSION", defaults.version),
            archive_urls=_split_urls(env.get(ENV_PREFIX + "ARCHIVE_URLS", "")),
            fetch_timeout=_get_number(env, "FETCH_TIMEOUT", defaults.fetch_timeout, float),
            max_archive_bytes=_get_number(env, "MAX_ARCHIVE_BYTES", defaults.max_archive_bytes, int),
            use_filesystem=_get_bool(env, "USE_FILESYSTEM", defaults.use_filesystem),
            use_bundled=_get_bool(env, "USE_BUNDLED", defaults.use_bundled),
        )

    def build_sources(self) -> List[SchemaSource]:
        """Return the fallback chain: local files, remote archives, bundled defaults."""

        sources: List[SchemaSource] = []
        if self.use_filesystem:
            sources.append(FilesystemSource(self.schema_root))
        if self.archive_urls:
            sources.append(
                RemoteArchiveSource(
                    self.archive_urls,
                    timeout=self.fetch_timeout,
                    max_bytes=self.max_archive_bytes,
                )
            )
        if self.use_bundled:
            sources.append(BundledSource())
        if not sources:
            raise ValueError("At least one schema source must be enabled")
        return sources


__all__ = ["ENV_PREFIX", "PactsConfig"]
