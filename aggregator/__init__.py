"""
Aggregator Module
搜索聚合与查询扩展
"""
from .query_expansion import (
    capitalized_runs,
    expand_queries,
    fallback_plan,
    fallback_queries,
    significant_words,
)
from .search_aggregator import AggregationStats, SearchAggregator

__all__ = [
    "SearchAggregator",
    "AggregationStats",
    "expand_queries",
    "fallback_queries",
    "fallback_plan",
    "significant_words",
    "capitalized_runs",
]
