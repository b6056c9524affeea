"""In-memory fakes for catalog, planner and vision."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence

from catalog import BaseCatalogClient, CatalogSessionPool
from intelligence import QueryPlanner, VisionClassifier
from intelligence.vision import neutral_verdict
from models import (
    AcquireResponse,
    AcquisitionOutcome,
    Candidate,
    CandidateMetadata,
    QueryPlan,
    SemanticTarget,
    VisionVerdict,
)
from storage import normalize_query
from utils.exceptions import CatalogError, PlannerError


def make_candidate(identity: str, title: str = "", final_score: float = 50.0, **kwargs) -> Candidate:
    return Candidate(identity=identity, title=title or identity, final_score=final_score, **kwargs)


class FakeCatalogClient(BaseCatalogClient):
    """In-memory catalog: search results per query, details, acquire behaviour."""

    def __init__(
        self,
        results: Optional[Dict[str, Sequence[tuple]]] = None,
        *,
        details: Optional[Dict[str, CandidateMetadata]] = None,
        failing_queries: Iterable[str] = (),
        failing_details: Iterable[str] = (),
        deferred: Iterable[str] = (),
        ready_after_polls: Optional[Dict[str, int]] = None,
        failing_acquire: Iterable[str] = (),
        flaky_acquire: Iterable[str] = (),
        search_delay: float = 0.0,
    ):
        super().__init__()
        self.results = {normalize_query(q): list(items) for q, items in (results or {}).items()}
        self.details = dict(details or {})
        self.failing_queries = {normalize_query(q) for q in failing_queries}
        self.failing_details = set(failing_details)
        self.deferred = set(deferred)
        self.ready_after_polls = dict(ready_after_polls or {})
        self.failing_acquire = set(failing_acquire)
        # fail on the first acquire only
        self.flaky_acquire = set(flaky_acquire)
        self.search_delay = search_delay
        self.search_calls: List[str] = []
        self.detail_calls: List[str] = []
        self.image_calls: List[str] = []
        self.acquire_calls: List[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "FakeCatalog"

    async def search(self, query: str, max_results: Optional[int] = None) -> List[Candidate]:
        self.search_calls.append(query)
        if self.search_delay:
            await asyncio.sleep(self.search_delay)
        key = normalize_query(query)
        if key in self.failing_queries:
            raise CatalogError(f"search failed for {query}")
        items = [
            Candidate(identity=identity, title=title, thumbnail_ref=f"thumb://{identity}")
            for identity, title in self.results.get(key, [])
        ]
        return items[:max_results] if max_results else items

    async def fetch_detail(self, identity: str):
        self.detail_calls.append(identity)
        if identity in self.failing_details:
            raise CatalogError(f"detail failed for {identity}")
        metadata = self.details.get(identity, CandidateMetadata(title=identity, description="footage"))
        return metadata, f"shot:{identity}".encode()

    async def fetch_image(self, ref: str) -> Optional[bytes]:
        self.image_calls.append(ref)
        return f"img:{ref}".encode()

    async def acquire(self, identity: str) -> AcquireResponse:
        self.acquire_calls.append(identity)
        if identity in self.failing_acquire:
            raise CatalogError(f"acquire failed for {identity}")
        if identity in self.flaky_acquire:
            self.flaky_acquire.discard(identity)
            raise CatalogError(f"transient acquire failure for {identity}")
        if identity in self.ready_after_polls:
            remaining = self.ready_after_polls[identity]
            if remaining > 0:
                self.ready_after_polls[identity] = remaining - 1
                return AcquireResponse(status=AcquisitionOutcome.DEFERRED)
        elif identity in self.deferred:
            return AcquireResponse(status=AcquisitionOutcome.DEFERRED)
        return AcquireResponse(
            status=AcquisitionOutcome.READY,
            asset_handle=f"file://{identity}.mp4",
            attribution_text=f"Credit: {identity}",
        )

    async def close(self):
        self.closed = True


class FakeVision(VisionClassifier):
    """Returns a fixed verdict per candidate title, neutral otherwise."""

    def __init__(self, verdicts: Optional[Dict[str, VisionVerdict]] = None, default: Optional[VisionVerdict] = None):
        self.verdicts = dict(verdicts or {})
        self.default = default
        self.calls: List[Optional[str]] = []
        self.resets = 0

    async def classify(self, image, target: SemanticTarget, title: Optional[str] = None) -> VisionVerdict:
        self.calls.append(title)
        for key, verdict in self.verdicts.items():
            if title and key in title:
                return verdict.model_copy()
        if self.default is not None:
            return self.default.model_copy()
        return neutral_verdict("no opinion")

    def reset(self) -> None:
        self.resets += 1


class FakePlanner(QueryPlanner):
    def __init__(self, plan: Optional[QueryPlan] = None, error: Optional[Exception] = None):
        self._plan = plan
        self._error = error
        self.calls: List[tuple] = []

    async def plan(self, headline: str, body_text: str, prior_context: Optional[QueryPlan] = None) -> QueryPlan:
        self.calls.append((headline, body_text, prior_context))
        if self._error is not None:
            raise self._error
        if self._plan is None:
            raise PlannerError("no plan configured")
        return self._plan.model_copy(deep=True)


def pool_for(client: BaseCatalogClient, size: int = 5) -> CatalogSessionPool:
    return CatalogSessionPool.from_client(client, size=size)
