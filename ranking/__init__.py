"""
Ranking Module
文本评分 + 混合排序 + 防重复
"""
from .rules import DEFAULT_RULES, DOMAIN_KEYWORDS, MARQUEE_KEYWORDS, ScoringContext, ScoringRule
from .text_scorer import TextScorer
from .hybrid_ranker import HybridRanker
from .repetition_guard import RepetitionGuard

__all__ = [
    "ScoringRule",
    "ScoringContext",
    "DEFAULT_RULES",
    "DOMAIN_KEYWORDS",
    "MARQUEE_KEYWORDS",
    "TextScorer",
    "HybridRanker",
    "RepetitionGuard",
]
