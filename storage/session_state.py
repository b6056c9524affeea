"""
Session State
跨片段共享的可变状态: 重复窗口、延迟黑名单、搜索缓存
"""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Iterable, Iterator, List, Optional, Tuple

from models import QueryPlan

from .search_cache import SearchCache


logger = logging.getLogger(__name__)


class RepetitionWindow:
    """Most-recently-used identities with FIFO eviction beyond capacity."""

    def __init__(self, capacity: int = 6):
        self.capacity = max(1, int(capacity))
        self._entries: "OrderedDict[str, Optional[int]]" = OrderedDict()

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.identities())

    def identities(self) -> List[str]:
        """Newest first."""
        return list(reversed(self._entries.keys()))

    def entries(self) -> List[Tuple[str, Optional[int]]]:
        return [(identity, self._entries[identity]) for identity in self.identities()]

    def last_used(self, identity: str) -> Optional[int]:
        return self._entries.get(identity)

    def record(self, identity: str, sequence_index: Optional[int] = None) -> None:
        if identity in self._entries:
            del self._entries[identity]
        self._entries[identity] = sequence_index
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Repetition window evicted {evicted}")

    def is_blocked(self, identity: str, sequence_index: Optional[int] = None) -> bool:
        if identity not in self._entries:
            return False
        last = self._entries[identity]
        if sequence_index is None or last is None:
            return True
        return abs(sequence_index - last) <= self.capacity

    def clear(self) -> None:
        self._entries.clear()


class Blacklist:
    """Identities known to need server-side preparation. Only grows."""

    def __init__(self, identities: Iterable[str] = ()):
        self._identities = set(identities)

    def add(self, identity: str) -> None:
        if identity not in self._identities:
            logger.info(f"Blacklisted deferred asset {identity}")
        self._identities.add(identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._identities

    def __len__(self) -> int:
        return len(self._identities)

    def snapshot(self) -> List[str]:
        return sorted(self._identities)


class DiscoverySession:
    """State owned by one engine across consecutive segments."""

    def __init__(
        self,
        *,
        search_cache: Optional[SearchCache] = None,
        repetition_capacity: int = 6,
        cache_ttl: float = 1800,
        cache_max_size: int = 500,
    ):
        self.search_cache = search_cache or SearchCache(ttl=cache_ttl, max_size=cache_max_size)
        self.window = RepetitionWindow(capacity=repetition_capacity)
        self.blacklist = Blacklist()
        self.prior_plan: Optional[QueryPlan] = None
        self.lock = asyncio.Lock()

    def snapshot(self) -> dict:
        return {
            "window": self.window.entries(),
            "blacklist": self.blacklist.snapshot(),
            "cache_size": self.search_cache.size(),
            "cache_hits": self.search_cache.hits,
            "cache_misses": self.search_cache.misses,
        }
