"""Declarative text-relevance rules for candidate metadata."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from models import CandidateMetadata, SemanticTarget, TargetMode


RuleOutcome = Tuple[float, Optional[str]]

# 主题相关的领域关键词簇
DOMAIN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "military": (
        "missile", "drone", "convoy", "military", "weapon", "armed", "forces", "tank",
        "soldier", "troops", "artillery", "bombing", "strike", "attack", "defense",
    ),
    "disaster": (
        "earthquake", "flood", "tsunami", "hurricane", "tornado", "wildfire", "fire",
        "rescue", "survivors", "debris", "destruction", "damage", "emergency",
    ),
    "protest": (
        "protest", "demonstration", "rally", "march", "riot", "clash", "police",
        "tear gas", "crowd", "banner", "activists",
    ),
    "economy": (
        "trade", "tariff", "economy", "market", "stock", "inflation", "gdp", "export",
        "import", "deal", "agreement", "summit",
    ),
    "politics": (
        "election", "vote", "parliament", "congress", "senate", "minister", "president",
        "government", "policy", "law", "bill",
    ),
}

# 标题中出现但与主题无关时扣分的热门关键词
MARQUEE_KEYWORDS: Tuple[str, ...] = (
    "zelensky", "ukraine", "russia", "putin", "biden", "trump", "gaza", "israel", "iran", "china",
)

DOMAIN_BONUS_PER_WORD = 5.0
DOMAIN_BONUS_CAP = 25.0
MIN_TITLE_LENGTH = 5


@dataclass(frozen=True)
class ScoringContext:
    """Lowercased views of one candidate's text plus the target."""

    title: str
    content: str
    target: SemanticTarget

    @property
    def subject(self) -> str:
        return (self.target.subject or "").lower()

    @property
    def related_text(self) -> str:
        parts = [self.target.subject, self.target.person_name or "", self.target.country or ""]
        return " ".join(parts).lower()

    @classmethod
    def build(cls, metadata: CandidateMetadata, target: SemanticTarget) -> "ScoringContext":
        title = (metadata.title or "").strip().lower()
        return cls(title=title, content=metadata.content_text().lower(), target=target)


@dataclass(frozen=True)
class ScoringRule:
    name: str
    evaluate: Callable[[ScoringContext], RuleOutcome]


def _words(text: str, min_len: int = 4) -> List[str]:
    return [w for w in str(text or "").lower().split() if len(w) >= min_len]


def _subject_overlap(ctx: ScoringContext) -> RuleOutcome:
    if ctx.target.mode != TargetMode.FOOTAGE or not ctx.subject:
        return 0.0, None
    matches = sum(1 for word in _words(ctx.subject) if word in ctx.content)
    if matches >= 3:
        return 40.0, f"subject:{matches}"
    if matches == 2:
        return 25.0, "subject:2"
    if matches == 1:
        return 10.0, "subject:1"
    return 0.0, None


def _location(ctx: ScoringContext) -> RuleOutcome:
    country = (ctx.target.country or "").strip().lower()
    if not country or country not in ctx.content:
        return 0.0, None
    if country in ctx.title:
        return 30.0, "country:title"
    return 20.0, "country"


def _phrase_credit(
    phrases: Sequence[str],
    content: str,
    *,
    full: float,
    partial: Callable[[int, int], float],
) -> Tuple[float, int]:
    points = 0.0
    matched = 0
    for phrase in phrases:
        lowered = str(phrase or "").strip().lower()
        if not lowered:
            continue
        if lowered in content:
            points += full
            matched += 1
            continue
        words = _words(lowered)
        hits = sum(1 for w in words if w in content)
        points += partial(hits, len(words))
    return points, matched


def _key_visuals(ctx: ScoringContext) -> RuleOutcome:
    points, matched = _phrase_credit(
        ctx.target.key_visuals,
        ctx.content,
        full=20.0,
        partial=lambda hits, _total: 8.0 * hits,
    )
    return points, (f"visuals:{matched}" if points else None)


def _must_show(ctx: ScoringContext) -> RuleOutcome:
    points, matched = _phrase_credit(
        ctx.target.must_show,
        ctx.content,
        full=30.0,
        partial=lambda hits, _total: 20.0 if hits >= 2 else (10.0 if hits == 1 else 0.0),
    )
    return points, (f"must_show:{matched}" if points else None)


def person_text_match(ctx: ScoringContext) -> Optional[str]:
    """Return 'full', 'surname', 'partial' or None."""
    name = (ctx.target.person_name or "").strip().lower()
    if not name:
        return None
    if name in ctx.content:
        return "full"
    parts = [p for p in name.split() if len(p) >= 2]
    if len(parts) > 1 and len(parts[-1]) >= 3 and parts[-1] in ctx.content:
        return "surname"
    if any(len(p) >= 3 and p in ctx.content for p in parts):
        return "partial"
    return None


def _person(ctx: ScoringContext) -> RuleOutcome:
    if ctx.target.mode != TargetMode.PERSON or not ctx.target.person_name:
        return 0.0, None
    match = person_text_match(ctx)
    if match == "full":
        return 60.0, "person:full"
    if match == "surname":
        return 50.0, "person:surname"
    if match == "partial":
        return 40.0, "person:partial"
    return -20.0, "person:missing"


def _domain_cluster(ctx: ScoringContext) -> RuleOutcome:
    if not ctx.subject:
        return 0.0, None
    bonus = 0.0
    for keywords in DOMAIN_KEYWORDS.values():
        for keyword in keywords:
            if keyword in ctx.content and keyword in ctx.subject:
                bonus += DOMAIN_BONUS_PER_WORD
    bonus = min(bonus, DOMAIN_BONUS_CAP)
    return bonus, ("domain" if bonus else None)


def _off_topic(ctx: ScoringContext) -> RuleOutcome:
    related = ctx.related_text
    subject_words = ctx.subject.split()
    anchor = subject_words[0] if subject_words else ""
    penalty = 0.0
    hits = []
    for keyword in MARQUEE_KEYWORDS:
        if keyword not in ctx.title or keyword in related:
            continue
        if anchor and anchor in ctx.content:
            continue
        penalty -= 25.0
        hits.append(keyword)
    return penalty, (f"off_topic:{','.join(hits)}" if hits else None)


def _avoid(ctx: ScoringContext) -> RuleOutcome:
    hits = [
        term for term in (str(t).strip().lower() for t in ctx.target.avoid)
        if term and term in ctx.title
    ]
    return -10.0 * len(hits), (f"avoid:{len(hits)}" if hits else None)


def _missing_title(ctx: ScoringContext) -> RuleOutcome:
    if len(ctx.title) < MIN_TITLE_LENGTH:
        return -15.0, "missing_title"
    return 0.0, None


DEFAULT_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule("subject_overlap", _subject_overlap),
    ScoringRule("location", _location),
    ScoringRule("key_visuals", _key_visuals),
    ScoringRule("must_show", _must_show),
    ScoringRule("person", _person),
    ScoringRule("domain_cluster", _domain_cluster),
    ScoringRule("off_topic", _off_topic),
    ScoringRule("avoid", _avoid),
    ScoringRule("missing_title", _missing_title),
)
