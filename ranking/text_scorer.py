"""Deterministic text relevance scoring."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from models import Candidate, CandidateMetadata, SemanticTarget, TextScore

from .rules import DEFAULT_RULES, ScoringContext, ScoringRule, person_text_match


logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, float(value)))


class TextScorer:
    """Sum of rule points, clamped to 0..100."""

    def __init__(self, rules: Optional[Sequence[ScoringRule]] = None):
        self.rules = tuple(rules if rules is not None else DEFAULT_RULES)

    @staticmethod
    def metadata_for(candidate: Candidate) -> CandidateMetadata:
        metadata = candidate.metadata
        if metadata is None or metadata.is_empty:
            return CandidateMetadata(title=candidate.title)
        if not metadata.title:
            return metadata.model_copy(update={"title": candidate.title})
        return metadata

    def score(
        self,
        subject: Union[Candidate, CandidateMetadata],
        target: SemanticTarget,
    ) -> TextScore:
        metadata = self.metadata_for(subject) if isinstance(subject, Candidate) else subject
        ctx = ScoringContext.build(metadata, target)

        raw = 0.0
        flags = []
        for rule in self.rules:
            points, flag = rule.evaluate(ctx)
            raw += points
            if flag:
                flags.append(flag)

        if person_text_match(ctx) is not None:
            flags.append("person_text_match")

        return TextScore(score=round(_clamp(raw)), raw=raw, flags=flags)

    def apply(self, candidate: Candidate, target: SemanticTarget) -> Candidate:
        candidate.text_score = self.score(candidate, target)
        logger.debug(f"Text score {candidate.text_score.score:.0f} for '{candidate.title[:50]}'")
        return candidate
