"""Deterministic query expansion and planner-free fallback queries."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models import Query, QueryPlan, SemanticTarget, TargetMode


_STOPWORDS = {
    "this", "that", "with", "from", "have", "been", "were", "said", "will",
    "would", "their", "there", "about", "after", "before", "into", "over",
    "says", "they", "them", "than", "then", "what", "when", "where", "which",
    "while", "also", "more", "most", "some", "such", "only", "other",
}

# trigger words -> (country-qualified suffixes, generic queries)
_DOMAIN_HEURISTICS: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]] = {
    "military": (
        ("military", "army", "defense", "troops", "soldiers"),
        ("troops", "soldiers", "weapons"),
        (),
    ),
    "aviation": (
        ("aircraft", "jet", "plane", "air force"),
        ("aircraft", "air force", "fighter jet"),
        ("military aircraft", "fighter jet footage"),
    ),
    "naval": (
        ("ship", "naval", "navy", "carrier"),
        ("navy", "warship", "naval"),
        ("warship footage", "naval footage"),
    ),
    "conflict": (
        ("war", "conflict", "attack", "strike"),
        (),
        ("military conflict footage", "war footage"),
    ),
    "exercise": (
        ("drill", "exercise", "training"),
        (),
        ("military exercise", "military drill"),
    ),
    "diplomacy": (
        ("meeting", "summit", "talks", "diplomat"),
        ("summit", "officials meeting"),
        ("diplomatic meeting", "international summit"),
    ),
    "protest": (
        ("protest", "rally", "demonstration", "march"),
        ("protest", "demonstrators"),
        ("street protest footage",),
    ),
    "disaster": (
        ("earthquake", "flood", "wildfire", "hurricane", "storm"),
        ("disaster", "rescue"),
        ("natural disaster footage",),
    ),
    "economy": (
        ("economy", "trade", "tariff", "market", "inflation"),
        ("economy", "trade"),
        ("stock market footage",),
    ),
}

_CATEGORY_SUFFIXES = ("news footage", "footage")


def significant_words(text: str, *, min_length: int = 4) -> List[str]:
    """Lowercase words longer than three chars, stopwords removed, order kept."""
    words: List[str] = []
    seen = set()
    for word in re.findall(r"[A-Za-z0-9][A-Za-z0-9'-]*", str(text or "")):
        lowered = word.lower().strip("'-")
        if len(lowered) < min_length or lowered in _STOPWORDS or lowered in seen:
            continue
        seen.add(lowered)
        words.append(lowered)
    return words


def capitalized_runs(text: str, *, limit: int = 3) -> List[str]:
    """Runs of capitalized words (names, places, organizations)."""
    runs: List[str] = []
    for match in re.finditer(r"(?:\b[A-Z][a-zA-Z'-]+(?:\s+|$)){1,3}", str(text or "")):
        run = " ".join(match.group(0).split())
        if len(run) < 3 or run.lower() in _STOPWORDS:
            continue
        if run not in runs:
            runs.append(run)
        if len(runs) >= limit:
            break
    return runs


def _dedupe(texts: Iterable[str], *, exclude: Sequence[str] = ()) -> List[str]:
    seen = {" ".join(str(t).split()).lower() for t in exclude}
    out: List[str] = []
    for text in texts:
        cleaned = " ".join(str(text or "").split())
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        out.append(cleaned)
    return out


def _to_queries(texts: Sequence[str], *, start_priority: int = 0) -> List[Query]:
    return [Query(text=text, priority=start_priority + idx) for idx, text in enumerate(texts)]


def expand_queries(
    target: SemanticTarget,
    *,
    context_text: str = "",
    already_tried: Sequence[str] = (),
    max_queries: int = 10,
) -> List[Query]:
    """Broader queries for a target whose initial queries returned nothing."""
    country = (target.country or "").strip()
    category = (target.category or "").strip()
    haystack = " ".join(
        [target.subject, category, context_text, " ".join(target.key_visuals)]
    ).lower()

    texts: List[str] = []

    if target.mode == TargetMode.PERSON and target.person_name:
        parts = target.person_name.split()
        surname = parts[-1] if parts else ""
        if country:
            texts.append(f"{target.person_name} {country}")
        if surname and len(surname) >= 3:
            texts.append(surname)
            texts.append(f"{surname} speech")

    if country:
        texts.append(f"{country} news footage")
        if category:
            texts.append(f"{country} {category}")

    for triggers, country_suffixes, generic in _DOMAIN_HEURISTICS.values():
        if not any(trigger in haystack for trigger in triggers):
            continue
        if country:
            texts.extend(f"{country} {suffix}" for suffix in country_suffixes)
        texts.extend(generic)

    for visual in target.key_visuals[:3]:
        if country:
            texts.append(f"{country} {visual}")
        texts.append(f"{visual} footage")

    for keyword in significant_words(target.subject)[:3]:
        if country:
            texts.append(f"{country} {keyword}")
        texts.append(f"{keyword} news")

    if category:
        texts.extend(f"{category} {suffix}" for suffix in _CATEGORY_SUFFIXES)
    if country:
        texts.append(f"{country} footage")
    texts.append("news footage")

    limit = max(1, int(max_queries))
    return _to_queries(_dedupe(texts, exclude=already_tried)[:limit], start_priority=100)


def fallback_queries(headline: str, text: str = "", *, theme: Optional[str] = None) -> List[Query]:
    """Keyword queries derived from headline and body when no planner result exists."""
    headline = " ".join(str(headline or "").split())
    head_words = [w for w in headline.split() if len(w) > 3]

    texts: List[str] = []
    if headline:
        texts.append(headline)
    if head_words:
        texts.append(" ".join(head_words[:3]))
    texts.extend(capitalized_runs(f"{headline}. {text}"))
    if head_words:
        texts.append(head_words[0])
    else:
        body_words = significant_words(text)
        if body_words:
            texts.append(" ".join(body_words[:3]))
    texts.append(theme or "news footage")

    return _to_queries(_dedupe(texts))


def fallback_plan(headline: str, text: str = "") -> QueryPlan:
    """Deterministic FOOTAGE plan used when the planner fails."""
    subject_words = [w for w in str(headline or "").split() if len(w) > 3][:4]
    target = SemanticTarget(
        mode=TargetMode.FOOTAGE,
        subject=" ".join(subject_words) or " ".join(significant_words(text)[:4]),
    )
    return QueryPlan(target=target, queries=fallback_queries(headline, text), from_fallback=True)
