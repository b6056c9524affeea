"""
Metadata Fetcher
缩略图预筛选 + 快速通道 + 深度元数据抓取
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence
import logging

from catalog import CatalogSessionPool
from intelligence.vision import VisionClassifier, neutral_verdict
from models import Candidate, CandidateMetadata, PersonMatch, SemanticTarget, VerdictLabel
from ranking import HybridRanker, TextScorer
from utils.exceptions import MetadataFetchError


logger = logging.getLogger(__name__)


@dataclass
class PrefilterResult:
    """预筛选结果"""
    shortlist: List[Candidate] = field(default_factory=list)
    fast_track: Optional[Candidate] = None
    pool: List[Candidate] = field(default_factory=list)


async def run_in_batches(
    items: Sequence[Any],
    worker: Callable[[Any], Awaitable[Any]],
    batch_size: int,
) -> List[Any]:
    """
    固定大小分批并发执行

    每批是一个屏障，结果按提交顺序返回；异常作为结果返回而不是抛出
    """
    results: List[Any] = []
    size = max(1, int(batch_size))
    for start in range(0, len(items), size):
        batch = items[start:start + size]
        results.extend(
            await asyncio.gather(*[worker(item) for item in batch], return_exceptions=True)
        )
    return results


class MetadataFetcher:
    """
    元数据抓取器

    流程:
    1. prefilter: 下载缩略图 -> 标题文本评分 -> 缩略图视觉分类 -> 初步混合评分
       若出现高置信候选则直接走快速通道，跳过深度抓取
    2. fetch: 并发抓取深度元数据 + 截图，单项失败不影响整批
    """

    def __init__(
        self,
        pool: CatalogSessionPool,
        vision: Optional[VisionClassifier],
        *,
        scorer: Optional[TextScorer] = None,
        ranker: Optional[HybridRanker] = None,
        prefilter_pool: int = 12,
        shortlist_size: int = 5,
        fetch_concurrency: int = 5,
        fetch_timeout: float = 25.0,
        vision_concurrency: int = 2,
        vision_timeout: float = 30.0,
        fast_track_visual: float = 75.0,
        fast_track_combined: float = 70.0,
    ):
        self.pool = pool
        self.vision = vision
        self.scorer = scorer or TextScorer()
        self.ranker = ranker or HybridRanker()
        self.prefilter_pool = max(1, int(prefilter_pool))
        self.shortlist_size = max(1, int(shortlist_size))
        self.fetch_concurrency = max(1, int(fetch_concurrency))
        self.fetch_timeout = float(fetch_timeout)
        self.vision_concurrency = max(1, int(vision_concurrency))
        self.vision_timeout = float(vision_timeout)
        self.fast_track_visual = float(fast_track_visual)
        self.fast_track_combined = float(fast_track_combined)

    async def _download_thumbnail(self, candidate: Candidate) -> Optional[bytes]:
        if not candidate.thumbnail_ref:
            return None
        try:
            async with self.pool.lease() as client:
                return await asyncio.wait_for(
                    client.fetch_image(candidate.thumbnail_ref), timeout=self.fetch_timeout
                )
        except Exception as e:
            logger.warning(f"Thumbnail download failed for {candidate.identity}: {e}")
            return None

    async def classify(
        self,
        candidates: Sequence[Candidate],
        target: SemanticTarget,
    ) -> List[Candidate]:
        """
        视觉分类 (截图优先，其次缩略图)，2 路分批

        分类器缺失或出错时写入中性结论
        """
        async def _classify_one(candidate: Candidate):
            if self.vision is None:
                return neutral_verdict("disabled")
            image = candidate.screenshot or candidate.thumbnail
            return await asyncio.wait_for(
                self.vision.classify(image, target, title=candidate.title),
                timeout=self.vision_timeout,
            )

        verdicts = await run_in_batches(list(candidates), _classify_one, self.vision_concurrency)
        for candidate, verdict in zip(candidates, verdicts):
            if isinstance(verdict, BaseException):
                logger.warning(f"Vision classification failed for {candidate.identity}: {verdict}")
                verdict = neutral_verdict("error")
            candidate.vision_verdict = verdict
        return list(candidates)

    def _is_disqualified(self, candidate: Candidate) -> bool:
        verdict = candidate.vision_verdict
        if verdict is None or not verdict.success:
            return True
        return (
            verdict.verdict == VerdictLabel.REJECT
            or candidate.wrong_location
            or candidate.person_match == PersonMatch.NOT_MATCH
        )

    def qualifies_for_fast_track(self, candidate: Candidate, target: SemanticTarget) -> bool:
        if self._is_disqualified(candidate):
            return False
        verdict = candidate.vision_verdict
        text = candidate.text_score.score if candidate.text_score else 0.0
        combined = self.ranker.blend(text, verdict, target.mode)
        return verdict.relevance_score >= self.fast_track_visual or combined >= self.fast_track_combined

    async def prefilter(self, candidates: Sequence[Candidate], target: SemanticTarget) -> PrefilterResult:
        """
        缩略图预筛选

        Args:
            candidates: 聚合后的候选 (已排序)
            target: 语义目标

        Returns:
            PrefilterResult (shortlist 或 fast_track)
        """
        pool = list(candidates[:self.prefilter_pool])
        if not pool:
            return PrefilterResult()

        thumbnails = await run_in_batches(pool, self._download_thumbnail, self.fetch_concurrency)
        for candidate, image in zip(pool, thumbnails):
            candidate.thumbnail = image if isinstance(image, (bytes, bytearray)) else None
            self.scorer.apply(candidate, target)

        await self.classify(pool, target)
        ranked = self.ranker.rank(pool, target)

        for candidate in ranked:
            if self.qualifies_for_fast_track(candidate, target):
                candidate.fast_tracked = True
                logger.info(
                    f"Fast-track: '{candidate.title[:50]}' "
                    f"(visual {candidate.vision_verdict.relevance_score:.0f}, final {candidate.final_score:.0f})"
                )
                return PrefilterResult(shortlist=[candidate], fast_track=candidate, pool=ranked)

        shortlist = ranked[:self.shortlist_size]
        logger.info(f"Prefilter kept {len(shortlist)} of {len(pool)} candidates for deep fetch")
        return PrefilterResult(shortlist=shortlist, pool=ranked)

    async def _fetch_one(self, candidate: Candidate):
        try:
            async with self.pool.lease() as client:
                return await asyncio.wait_for(
                    client.fetch_detail(candidate.identity), timeout=self.fetch_timeout
                )
        except Exception as e:
            raise MetadataFetchError(
                f"Detail fetch failed: {e}", identity=candidate.identity
            ) from e

    async def fetch(self, shortlist: Sequence[Candidate]) -> List[Candidate]:
        """
        深度抓取元数据和截图

        单项失败 -> 空元数据，不中断整批；顺序保持不变
        """
        items = list(shortlist)
        results = await run_in_batches(items, self._fetch_one, self.fetch_concurrency)

        failures = 0
        for candidate, res in zip(items, results):
            if isinstance(res, BaseException):
                failures += 1
                logger.warning(str(res))
                candidate.metadata = CandidateMetadata()
                candidate.screenshot = None
                continue
            metadata, screenshot = res
            candidate.metadata = metadata
            candidate.screenshot = screenshot

        logger.info(f"Deep fetch: {len(items) - failures}/{len(items)} succeeded")
        return items
