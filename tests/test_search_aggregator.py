"""Tests for concurrent search aggregation."""

import asyncio

import pytest

from aggregator import SearchAggregator, expand_queries
from catalog import CatalogSessionPool
from fakes import FakeCatalogClient, pool_for
from models import Query, SemanticTarget
from storage import SearchCache


def _aggregator(client, **kwargs) -> SearchAggregator:
    return SearchAggregator(pool_for(client), SearchCache(), **kwargs)


@pytest.mark.asyncio
async def test_dedup_keeps_first_occurrence_and_priority_order():
    client = FakeCatalogClient({
        "low priority": [("https://c/v/3", "c"), ("https://c/v/1", "dup")],
        "high priority": [("https://c/v/1", "a"), ("https://c/v/2", "b")],
    })
    aggregator = _aggregator(client)

    result = await aggregator.aggregate([
        Query(text="low priority", priority=5),
        Query(text="high priority", priority=0),
    ])

    assert [c.identity for c in result] == ["https://c/v/1", "https://c/v/2", "https://c/v/3"]
    assert result[0].title == "a"
    assert result[0].source_query == "high priority"
    assert result[2].priority == 5
    assert len({c.identity for c in result}) == len(result)


@pytest.mark.asyncio
async def test_repeated_aggregation_with_warm_cache_is_idempotent():
    client = FakeCatalogClient({
        "a": [("https://c/v/1", "one")],
        "b": [("https://c/v/2", "two"), ("https://c/v/1", "one")],
    })
    aggregator = _aggregator(client)
    queries = [Query(text="a"), Query(text="b", priority=1)]

    first = await aggregator.aggregate(queries)
    calls_after_first = len(client.search_calls)
    second = await aggregator.aggregate(queries)

    assert [c.identity for c in first] == [c.identity for c in second]
    assert len(client.search_calls) == calls_after_first


@pytest.mark.asyncio
async def test_duplicate_queries_run_once():
    client = FakeCatalogClient({"tank convoy": [("https://c/v/1", "t")]})
    aggregator = _aggregator(client)

    await aggregator.aggregate([Query(text="Tank convoy"), Query(text="tank  convoy", priority=1)])

    assert client.search_calls == ["Tank convoy"]


@pytest.mark.asyncio
async def test_failing_queries_are_skipped():
    client = FakeCatalogClient(
        {"ok": [("https://c/v/1", "fine")]},
        failing_queries=["broken"],
    )
    aggregator = _aggregator(client)

    result = await aggregator.aggregate([Query(text="broken"), Query(text="ok", priority=1)])

    assert [c.identity for c in result] == ["https://c/v/1"]
    assert aggregator.last_stats.failed_queries == ["broken"]


@pytest.mark.asyncio
async def test_query_timeout_is_isolated():
    slow = FakeCatalogClient({"slow": [("https://c/v/9", "late")]}, search_delay=0.5)
    aggregator = _aggregator(slow, query_timeout=0.05)

    result = await aggregator.aggregate([Query(text="slow")])

    assert result == []
    assert aggregator.last_stats.failed_queries == ["slow"]


@pytest.mark.asyncio
async def test_excluded_identities_are_dropped():
    client = FakeCatalogClient({"q": [("https://c/v/1", "a"), ("https://c/v/2", "b")]})
    aggregator = _aggregator(client)

    result = await aggregator.aggregate([Query(text="q")], exclude=["https://c/v/1"])

    assert [c.identity for c in result] == ["https://c/v/2"]


@pytest.mark.asyncio
async def test_batches_never_exceed_configured_width():
    in_flight = 0
    peak = 0

    class _Tracking(FakeCatalogClient):
        async def search(self, query, max_results=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return []

    client = _Tracking()
    aggregator = SearchAggregator(
        CatalogSessionPool.from_client(client, size=10), SearchCache(), batch_size=3
    )

    await aggregator.aggregate([Query(text=f"q{i}", priority=i) for i in range(7)])

    assert peak <= 3
    assert len(client.search_calls) == 7


@pytest.mark.asyncio
async def test_zero_results_trigger_expansion_that_stops_early():
    target = SemanticTarget(country="Iran", subject="military drills near the coast")
    initial = [Query(text=f"obscure query {i}", priority=i) for i in range(5)]
    planned = [q.text for q in expand_queries(target, already_tried=[q.text for q in initial])]
    first, second, third = planned[:3]

    client = FakeCatalogClient({
        first: [(f"https://c/v/{i}", f"Iran clip {i}") for i in range(8)],
        second: [(f"https://c/v/{i}", f"Iran military {i}") for i in range(8, 16)],
        third: [("https://c/v/99", "never reached")],
    })
    aggregator = _aggregator(client, batch_size=2, expansion_threshold=12)

    result = await aggregator.aggregate(initial, target=target)

    stats = aggregator.last_stats
    assert stats.expanded
    assert len(result) >= 12
    # stops after the batch that crossed the threshold
    assert third not in client.search_calls
    assert len(stats.queries_run) == 5 + 2
