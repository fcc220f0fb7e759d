"""Project id cache: maps (instance, repository path) to a numeric GitLab project id."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from gl_reader.models import DEFAULT_PROJECT_ID_CACHE_MAX_SIZE, DEFAULT_PROJECT_ID_CACHE_TTL_MS


class ProjectIdCache(ABC):
    """Capability interface for project id caches."""

    @abstractmethod
    def get_project_id(self, identity: str, repository: str) -> int | None:
        """Return the cached id, or None when absent or expired."""
        ...

    @abstractmethod
    def set_project_id(self, identity: str, repository: str, project_id: int) -> None:
        ...


@dataclass
class ProjectIdCacheEntry:
    repository_path: str
    project_id: int
    last_updated: float


class LruTtlProjectIdCache(ProjectIdCache):
    """
    Bounded LRU cache whose entries expire after ``ttl`` seconds.

    Recency is tracked by access: a hit on ``get_project_id`` promotes the
    entry, and inserting a new key at capacity evicts the least recently
    used one. Expired entries are removed when they are read.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_PROJECT_ID_CACHE_TTL_MS / 1000,
        max_size: int = DEFAULT_PROJECT_ID_CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[tuple[str, str], ProjectIdCacheEntry] = OrderedDict()
        self.logger = logging.getLogger("gl-reader")

    def get_project_id(self, identity: str, repository: str) -> int | None:
        key = (identity, repository)
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.last_updated >= self.ttl:
            del self._entries[key]
            self.logger.debug(f"Project id cache entry expired: {identity} {repository}")
            return None

        self._entries.move_to_end(key)
        return entry.project_id

    def set_project_id(self, identity: str, repository: str, project_id: int) -> None:
        key = (identity, repository)
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            self.logger.debug(f"Project id cache full, evicted: {evicted[0]} {evicted[1]}")

        self._entries[key] = ProjectIdCacheEntry(
            repository_path=repository,
            project_id=project_id,
            last_updated=self._clock(),
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Does not promote and does not check expiry.
        return key in self._entries
