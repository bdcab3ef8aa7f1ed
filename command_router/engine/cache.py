"""Route cache — bounded, time-expiring memo of resolved commands."""

from __future__ import annotations

import logging
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from command_router.engine.models import RouteContext

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class CacheEntry:
    command: str
    created_at: float


class RouteCache:
    """Insertion-ordered cache with a fixed TTL and a maximum entry count.

    Eviction on overflow drops the oldest *inserted* entry, not the least
    recently read one. Expired entries are removed lazily on ``get``;
    ``purge_expired`` sweeps them eagerly.

    Not thread-safe: one event loop owns it.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    # -- keys ---------------------------------------------------------------

    @staticmethod
    def key(message: str, context: RouteContext | None = None) -> str:
        normalized = _WHITESPACE_RE.sub(" ", message.lower()).strip()
        if context is None:
            return normalized
        if context.active_repo:
            return f"{normalized}|repo:{context.active_repo}"
        if context.active_company:
            return f"{normalized}|co:{context.active_company}"
        return normalized

    # -- access -------------------------------------------------------------

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self._ttl:
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, command: str) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            oldest, _ = self._entries.popitem(last=False)
            logger.debug("Cache full, evicted %r", oldest)
        self._entries[key] = CacheEntry(command=command, created_at=self._clock())

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.created_at >= self._ttl]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.info("Purged %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def stats(self) -> dict[str, Any]:
        return {"size": len(self._entries), "max_size": self._max_size, "ttl": self._ttl}
