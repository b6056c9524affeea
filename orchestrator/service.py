"""Clip discovery engine: plan, search, score, rank and acquire."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from acquisition import AcquisitionOrchestrator, CancellationToken
from aggregator import SearchAggregator, fallback_plan
from catalog import CatalogSessionPool, HttpCatalogClient
from config import Settings, get_settings
from fetcher import MetadataFetcher
from intelligence import LLMQueryPlanner, LLMVisionClassifier, QueryPlanner, VisionClassifier, get_llm
from models import AcquisitionResult, Candidate, QueryPlan, SemanticTarget
from ranking import HybridRanker, RepetitionGuard, TextScorer
from storage import DiscoverySession, SearchCache
from utils.exceptions import PlannerError

from .events import ProgressChannel


logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Read-only outcome of one discover() call."""

    ranked: List[Candidate]
    target: SemanticTarget
    plan: QueryPlan
    fast_tracked: bool = False
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def best(self) -> Optional[Candidate]:
        return self.ranked[0] if self.ranked else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.model_dump(mode="json"),
            "queries": [q.text for q in self.plan.queries],
            "from_fallback": self.plan.from_fallback,
            "fast_tracked": self.fast_tracked,
            "ranked": [c.summary() for c in self.ranked],
            "stats": dict(self.stats),
        }


class ClipDiscoveryEngine:
    """Owns one DiscoverySession; discover() is read-only, acquire_best() marks usage."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        catalog_pool: Optional[CatalogSessionPool] = None,
        planner: Optional[QueryPlanner] = None,
        vision: Optional[VisionClassifier] = None,
        session: Optional[DiscoverySession] = None,
        progress: Optional[ProgressChannel] = None,
    ) -> None:
        self.settings = settings or get_settings()
        cfg = self.settings

        self.pool = catalog_pool or CatalogSessionPool(
            lambda: HttpCatalogClient(cfg.catalog),
            size=cfg.catalog.session_pool_size,
        )
        self.planner = planner
        self.vision = vision
        self.progress = progress or ProgressChannel()
        self.session = session or DiscoverySession(
            search_cache=SearchCache(ttl=cfg.search.cache_ttl, max_size=cfg.search.cache_max_size),
            repetition_capacity=cfg.ranking.repetition_capacity,
        )

        self.scorer = TextScorer()
        self.ranker = HybridRanker()
        self.guard = RepetitionGuard(self.session.window)
        self.aggregator = SearchAggregator(
            self.pool,
            self.session.search_cache,
            batch_size=cfg.search.batch_size,
            query_timeout=cfg.search.query_timeout,
            expansion_threshold=cfg.search.expansion_threshold,
            max_expansion_queries=cfg.search.max_expansion_queries,
            max_results_per_query=cfg.catalog.max_results_per_query,
        )
        self.fetcher = MetadataFetcher(
            self.pool,
            self.vision,
            scorer=self.scorer,
            ranker=self.ranker,
            prefilter_pool=cfg.fetch.prefilter_pool,
            shortlist_size=cfg.fetch.shortlist_size,
            fetch_concurrency=cfg.fetch.fetch_concurrency,
            fetch_timeout=cfg.fetch.fetch_timeout,
            vision_concurrency=cfg.vision.concurrency,
            vision_timeout=cfg.vision.timeout,
            fast_track_visual=cfg.vision.fast_track_visual,
            fast_track_combined=cfg.vision.fast_track_combined,
        )
        self.acquirer = AcquisitionOrchestrator(
            self.pool,
            self.session.blacklist,
            progress=self.progress,
            min_acceptable_score=cfg.acquisition.min_acceptable_score,
            emergency_floor=cfg.acquisition.emergency_floor,
            wait_timeout=cfg.acquisition.wait_timeout,
            poll_interval=cfg.acquisition.poll_interval,
            poll_chunks=cfg.acquisition.poll_chunks,
            acquire_timeout=cfg.acquisition.acquire_timeout,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "ClipDiscoveryEngine":
        """Wire the Gemini-backed planner and vision classifier from configuration."""
        cfg = settings or get_settings()
        llm = get_llm(provider=cfg.llm.provider, model=cfg.llm.model_name)
        kwargs.setdefault("planner", LLMQueryPlanner(llm, timeout=cfg.llm.timeout))
        if cfg.vision.enabled:
            kwargs.setdefault(
                "vision",
                LLMVisionClassifier(llm, timeout=cfg.vision.timeout, max_api_errors=cfg.vision.max_api_errors),
            )
        return cls(cfg, **kwargs)

    def _emit(self, stage: str, percentage: float, message: str, sequence_index: Optional[int], **data: Any) -> None:
        self.progress.emit(stage, percentage, message, sequence_index=sequence_index, **data)

    async def _plan(self, headline: str, text: str, sequence_index: Optional[int]) -> QueryPlan:
        self._emit("planning", 5, "Planning search queries", sequence_index)
        if self.planner is None:
            return fallback_plan(headline, text)
        try:
            return await self.planner.plan(headline, text, self.session.prior_plan)
        except PlannerError as exc:
            logger.warning("Planner failed, using fallback queries: %s", exc)
            self._emit("planning", 8, "Planner unavailable, using keyword fallback", sequence_index)
            return fallback_plan(headline, text)

    async def discover(
        self,
        headline: str,
        text: str,
        sequence_index: Optional[int] = None,
        exclude_identities: Iterable[str] = (),
    ) -> DiscoveryResult:
        """Find and rank candidates for one segment. Nothing is marked used."""
        if self.vision is not None:
            self.vision.reset()

        plan = await self._plan(headline, text, sequence_index)
        target = plan.target

        excluded = set(exclude_identities) | set(self.session.blacklist.snapshot())
        self._emit("search", 15, f"Searching {len(plan.queries)} queries", sequence_index)
        candidates = await self.aggregator.aggregate(
            plan.queries,
            target=target,
            exclude=excluded,
            context_text=f"{headline} {text}",
        )
        stats: Dict[str, Any] = {"search": self.aggregator.summary()}
        self._emit("search", 25, f"Found {len(candidates)} candidates", sequence_index, count=len(candidates))

        if not candidates:
            async with self.session.lock:
                self.session.prior_plan = plan
            self._emit("ranking", 85, "No candidates found", sequence_index)
            return DiscoveryResult(ranked=[], target=target, plan=plan, stats=stats)

        self._emit("prefilter", 35, "Checking thumbnails", sequence_index)
        pre = await self.fetcher.prefilter(candidates, target)

        if pre.fast_track is not None:
            fast = pre.fast_track
            ranked = [fast] + [c for c in pre.pool if c is not fast]
            self._emit(
                "prefilter", 85, f"Fast-track: '{fast.title[:50]}'", sequence_index, identity=fast.identity
            )
            stats["prefilter_pool"] = len(pre.pool)
            async with self.session.lock:
                self.session.prior_plan = plan
            return DiscoveryResult(ranked=ranked, target=target, plan=plan, fast_tracked=True, stats=stats)

        self._emit("fetch", 50, f"Fetching details for {len(pre.shortlist)} candidates", sequence_index)
        shortlist = await self.fetcher.fetch(pre.shortlist)

        for candidate in shortlist:
            self.scorer.apply(candidate, target)

        self._emit("vision", 65, "Validating screenshots", sequence_index)
        await self.fetcher.classify(shortlist, target)

        ranked = self.ranker.rank(shortlist, target)
        stats["prefilter_pool"] = len(pre.pool)
        stats["shortlist"] = len(shortlist)
        self._emit(
            "ranking",
            85,
            f"Best match {ranked[0].final_score:.0f}: '{ranked[0].title[:50]}'",
            sequence_index,
            identity=ranked[0].identity,
        )

        async with self.session.lock:
            self.session.prior_plan = plan
        return DiscoveryResult(ranked=ranked, target=target, plan=plan, stats=stats)

    def select(self, ranked: Sequence[Candidate], sequence_index: Optional[int] = None) -> Optional[Candidate]:
        """Best candidate not used in nearby segments."""
        return self.guard.select(list(ranked), sequence_index)

    async def acquire_best(
        self,
        ranked: Sequence[Candidate],
        cancel: Optional[CancellationToken] = None,
        sequence_index: Optional[int] = None,
        wait_for_best: Optional[bool] = None,
    ) -> AcquisitionResult:
        """Acquire the best available candidate and mark it used on success.

        The session lock covers the repetition-guard read and write only,
        so a long readiness wait does not block other segments.
        """
        wait = self.settings.acquisition.wait_for_best if wait_for_best is None else bool(wait_for_best)
        async with self.session.lock:
            ordered = self.guard.filter_available(list(ranked), sequence_index)
        result = await self.acquirer.acquire_best(
            ordered,
            cancel=cancel,
            wait_for_best=wait,
            sequence_index=sequence_index,
        )
        if result.success and result.candidate is not None:
            async with self.session.lock:
                self.guard.mark_used(result.candidate.identity, sequence_index)
        return result

    async def close(self) -> None:
        await self.pool.close()
        self.progress.close()

    async def __aenter__(self) -> "ClipDiscoveryEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
