"""
Search Cache
按查询缓存素材库搜索结果
"""
from typing import List, Optional
import logging

from .cache import MemoryCache
from catalog.base import BaseCatalogClient
from models import Candidate


logger = logging.getLogger(__name__)


def normalize_query(text: str) -> str:
    """小写 + 折叠空白"""
    return " ".join(str(text or "").split()).lower()


class SearchCache:
    """
    搜索结果缓存

    - 键为规范化后的查询文本
    - TTL 内直接返回缓存副本，不访问素材库
    - 空结果同样缓存
    """

    def __init__(self, ttl: float = 1800, max_size: int = 500, cache: Optional[MemoryCache] = None):
        self._cache = cache or MemoryCache(ttl=ttl, max_size=max_size)
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(query: str) -> str:
        return MemoryCache.make_key("search", normalize_query(query))

    def get(self, query: str) -> Optional[List[Candidate]]:
        """返回缓存副本，未命中返回 None"""
        cached = self._cache.get(self.key_for(query))
        if cached is None:
            return None
        return [candidate.model_copy(deep=True) for candidate in cached]

    def put(self, query: str, candidates: List[Candidate]) -> None:
        self._cache.set(
            self.key_for(query),
            [candidate.model_copy(deep=True) for candidate in candidates],
        )

    async def search(
        self,
        client: BaseCatalogClient,
        query: str,
        max_results: Optional[int] = None,
    ) -> List[Candidate]:
        """
        带缓存的搜索

        Args:
            client: 素材库客户端
            query: 查询文本
            max_results: 最大结果数

        Returns:
            候选列表 (总是新副本)
        """
        cached = self.get(query)
        if cached is not None:
            self.hits += 1
            logger.debug(f"Search cache hit: '{query}' ({len(cached)} results)")
            return cached

        self.misses += 1
        results = await client.search(query, max_results)
        self.put(query, results)
        return [candidate.model_copy(deep=True) for candidate in results]

    def clear(self) -> None:
        self._cache.clear()
        self.hits = 0
        self.misses = 0

    def size(self) -> int:
        return self._cache.size()
