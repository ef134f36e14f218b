"""Cache dependency accumulation for one enrichment pass."""

from __future__ import annotations

import threading
from typing import Any, Iterable

PERMANENT = -1


def merge_max_age(a: int, b: int) -> int:
    if a == PERMANENT:
        return b
    if b == PERMANENT:
        return a
    return min(a, b)


class CacheMetadata:
    """Accumulator of cache tags, contexts and max-age.

    Contributions are unions and never replace what is already collected.
    A single instance is shared by the outer response and every nested fetch
    made while enriching it, so merging is guarded by a lock.
    """

    def __init__(
        self,
        tags: Iterable[str] | None = None,
        contexts: Iterable[str] | None = None,
        max_age: int = PERMANENT,
    ) -> None:
        self._lock = threading.Lock()
        self._tags: set[str] = set(tags or ())
        self._contexts: set[str] = set(contexts or ())
        self._max_age = max_age

    @property
    def tags(self) -> list[str]:
        with self._lock:
            return sorted(self._tags)

    @property
    def contexts(self) -> list[str]:
        with self._lock:
            return sorted(self._contexts)

    @property
    def max_age(self) -> int:
        return self._max_age

    def add_tags(self, tags: Iterable[str]) -> None:
        with self._lock:
            self._tags.update(tags)

    def add_contexts(self, contexts: Iterable[str]) -> None:
        with self._lock:
            self._contexts.update(contexts)

    def merge_max_age(self, max_age: int) -> None:
        with self._lock:
            self._max_age = merge_max_age(self._max_age, max_age)

    def add_dependency(self, dependency: Any) -> None:
        """Merge the cacheability of ``dependency`` into this accumulator.

        Accepts another CacheMetadata, anything with a ``cacheability``
        attribute (responses), or anything exposing ``cache_tags``,
        ``cache_contexts`` and ``cache_max_age`` (entities, displays). Any
        other object cannot be invalidated and makes the result uncacheable.
        """
        if isinstance(dependency, CacheMetadata):
            tags, contexts, max_age = dependency.tags, dependency.contexts, dependency.max_age
        elif isinstance(getattr(dependency, "cacheability", None), CacheMetadata):
            self.add_dependency(dependency.cacheability)
            return
        elif hasattr(dependency, "cache_tags"):
            tags = list(dependency.cache_tags)
            contexts = list(getattr(dependency, "cache_contexts", ()) or ())
            max_age = getattr(dependency, "cache_max_age", PERMANENT)
        else:
            tags, contexts, max_age = [], [], 0
        with self._lock:
            self._tags.update(tags)
            self._contexts.update(contexts)
            self._max_age = merge_max_age(self._max_age, max_age)

    def to_headers(self) -> dict[str, str]:
        headers = {
            "X-Cache-Tags": " ".join(self.tags),
            "X-Cache-Contexts": " ".join(self.contexts),
        }
        if self._max_age == 0:
            headers["Cache-Control"] = "no-cache"
        elif self._max_age == PERMANENT:
            headers["Cache-Control"] = "public, max-age=31536000"
        else:
            headers["Cache-Control"] = f"public, max-age={self._max_age}"
        return headers

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"CacheMetadata(tags={self.tags!r}, contexts={self.contexts!r}, max_age={self._max_age!r})"
