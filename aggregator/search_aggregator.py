"""
Search Aggregator
并发执行多条查询并合并去重候选
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from .query_expansion import expand_queries
from catalog import CatalogSessionPool
from models import Candidate, Query, SemanticTarget
from storage import SearchCache, normalize_query


logger = logging.getLogger(__name__)


@dataclass
class AggregationStats:
    """一次聚合的统计信息"""
    queries_run: List[str] = field(default_factory=list)
    failed_queries: List[str] = field(default_factory=list)
    expansion_queries: List[str] = field(default_factory=list)
    excluded: int = 0
    total: int = 0

    @property
    def expanded(self) -> bool:
        return bool(self.expansion_queries)


class SearchAggregator:
    """
    搜索聚合器

    - 按 (priority, 原始顺序) 排序后分批并发 (默认每批 5 条)
    - 每批是一个屏障，结果按提交顺序合并
    - 按 identity 去重，首次出现者保留
    - 初始查询零结果时执行确定性扩展
    """

    def __init__(
        self,
        pool: CatalogSessionPool,
        cache: SearchCache,
        *,
        batch_size: int = 5,
        query_timeout: float = 20.0,
        expansion_threshold: int = 12,
        max_expansion_queries: int = 10,
        max_results_per_query: Optional[int] = None,
    ):
        """
        初始化聚合器

        Args:
            pool: 素材库会话池
            cache: 搜索缓存
            batch_size: 每批并发查询数
            query_timeout: 单条查询超时 (秒)
            expansion_threshold: 扩展阶段累计候选达到该数量即停止
            max_expansion_queries: 最多生成的扩展查询数
            max_results_per_query: 单条查询最大结果数
        """
        self.pool = pool
        self.cache = cache
        self.batch_size = max(1, int(batch_size))
        self.query_timeout = float(query_timeout)
        self.expansion_threshold = max(1, int(expansion_threshold))
        self.max_expansion_queries = max(1, int(max_expansion_queries))
        self.max_results_per_query = max_results_per_query
        self.last_stats = AggregationStats()

    async def _search_one(self, query: Query) -> List[Candidate]:
        async with self.pool.lease() as client:
            return await self.cache.search(client, query.text, self.max_results_per_query)

    async def _run_query_task(self, query: Query):
        try:
            return await asyncio.wait_for(self._search_one(query), timeout=self.query_timeout)
        except Exception as exc:
            logger.warning(f"Query '{query.text}' skipped: {exc}")
            return exc

    @staticmethod
    def _order_queries(queries: Iterable[Query]) -> List[Query]:
        """按优先级排序并去掉重复查询"""
        indexed = sorted(enumerate(queries), key=lambda pair: (pair[1].priority, pair[0]))
        ordered: List[Query] = []
        seen = set()
        for _, query in indexed:
            key = normalize_query(query.text)
            if key in seen:
                continue
            seen.add(key)
            ordered.append(query)
        return ordered

    def _merge(
        self,
        merged: Dict[str, Candidate],
        query: Query,
        results: Sequence[Candidate],
        exclude: set,
        stats: AggregationStats,
    ) -> None:
        for candidate in results:
            if candidate.identity in exclude:
                stats.excluded += 1
                continue
            if candidate.identity in merged:
                continue
            candidate.source_query = query.text
            candidate.priority = query.priority
            candidate.discovery_index = len(merged)
            merged[candidate.identity] = candidate

    async def _run_batches(
        self,
        queries: List[Query],
        merged: Dict[str, Candidate],
        exclude: set,
        stats: AggregationStats,
        stop_at: Optional[int] = None,
    ) -> None:
        for start in range(0, len(queries), self.batch_size):
            batch = queries[start:start + self.batch_size]
            results = await asyncio.gather(
                *[self._run_query_task(query) for query in batch],
                return_exceptions=True,
            )

            for query, res in zip(batch, results):
                stats.queries_run.append(query.text)
                if isinstance(res, BaseException):
                    stats.failed_queries.append(query.text)
                    continue
                self._merge(merged, query, res, exclude, stats)

            logger.info(
                f"Search batch {start // self.batch_size + 1}: "
                f"{len(batch)} queries, {len(merged)} unique candidates so far"
            )

            if stop_at is not None and len(merged) >= stop_at:
                logger.info(f"Expansion stopped early with {len(merged)} candidates")
                return

    async def aggregate(
        self,
        queries: Sequence[Query],
        target: Optional[SemanticTarget] = None,
        exclude: Iterable[str] = (),
        context_text: str = "",
    ) -> List[Candidate]:
        """
        聚合搜索

        Args:
            queries: 查询列表
            target: 语义目标 (提供时零结果会触发扩展)
            exclude: 需要排除的 identity
            context_text: 扩展时参考的原文

        Returns:
            去重后的候选列表，按 (priority, 发现顺序) 排序
        """
        stats = AggregationStats()
        self.last_stats = stats
        excluded = set(exclude)
        merged: Dict[str, Candidate] = {}

        ordered = self._order_queries(queries)
        await self._run_batches(ordered, merged, excluded, stats)

        if not merged and target is not None:
            expansion = expand_queries(
                target,
                context_text=context_text,
                already_tried=[q.text for q in ordered],
                max_queries=self.max_expansion_queries,
            )
            stats.expansion_queries = [q.text for q in expansion]
            logger.info(f"No results from {len(ordered)} queries, trying {len(expansion)} expanded queries")
            await self._run_batches(
                expansion, merged, excluded, stats, stop_at=self.expansion_threshold
            )
            if not merged:
                logger.warning("No candidates found even with expanded queries")

        candidates = sorted(merged.values(), key=lambda c: (c.priority, c.discovery_index))
        stats.total = len(candidates)
        logger.info(
            f"Aggregated {stats.total} candidates from {len(stats.queries_run)} queries "
            f"({len(stats.failed_queries)} failed, cache hits {self.cache.hits})"
        )
        return candidates

    def summary(self) -> Dict[str, Any]:
        stats = self.last_stats
        return {
            "queries_run": len(stats.queries_run),
            "failed_queries": list(stats.failed_queries),
            "expansion_queries": list(stats.expansion_queries),
            "excluded": stats.excluded,
            "total": stats.total,
            "expanded": stats.expanded,
        }
