"""In-memory schema cache keyed by schema coordinates."""
from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

KEY_SEPARATOR = "/"


def cache_key(domain: str, version: str, category: str, name: str) -> str:
    """Return the canonical cache key for a schema."""

    return KEY_SEPARATOR.join((domain, version, category, name))


class SchemaCache:
    """Plain mapping from cache key to parsed schema document.

    Entries are never replaced once inserted. Access is not synchronised;
    callers sharing one cache must serialise their access.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._entries.get(key)

    def insert(self, key: str, document: Any) -> bool:
        if key in self._entries:
            return False
        self._entries[key] = document
        return True

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["KEY_SEPARATOR", "SchemaCache", "cache_key"]
