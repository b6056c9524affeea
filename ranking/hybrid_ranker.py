"""Blend text and vision signals into a final score and ordering."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from models import Candidate, PersonMatch, SemanticTarget, TargetMode, VerdictLabel, VisionVerdict


logger = logging.getLogger(__name__)


# (text weight, vision weight)
_BLEND_WEIGHTS: Dict[TargetMode, Tuple[float, float]] = {
    TargetMode.PERSON: (0.3, 0.7),
    TargetMode.FOOTAGE: (0.6, 0.4),
}

# REJECT below this visual score counts as a strong rejection
STRONG_REJECT_BELOW = 30.0

_PERSON_TIER = {
    PersonMatch.CONFIRMED: 0,
    PersonMatch.POSSIBLE: 1,
}


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, float(value)))


def _usable(verdict: Optional[VisionVerdict]) -> bool:
    return verdict is not None and verdict.success


class HybridRanker:
    """Mode-dependent blend plus person/location overlays."""

    def __init__(self, weights: Optional[Dict[TargetMode, Tuple[float, float]]] = None):
        self.weights = dict(weights or _BLEND_WEIGHTS)

    def blend(self, text_score: float, verdict: Optional[VisionVerdict], mode: TargetMode) -> float:
        if not _usable(verdict):
            return float(text_score)
        text_w, vision_w = self.weights[mode]
        return text_w * float(text_score) + vision_w * float(verdict.relevance_score)

    def _person_overlay(self, candidate: Candidate) -> float:
        bonus = 0.0
        verdict = candidate.vision_verdict
        match = candidate.person_match
        if match == PersonMatch.CONFIRMED:
            bonus += 30.0
        elif match == PersonMatch.POSSIBLE:
            bonus += 5.0
        elif match == PersonMatch.NOT_MATCH:
            bonus -= 50.0
            if (
                verdict is not None
                and verdict.verdict == VerdictLabel.REJECT
                and verdict.relevance_score < STRONG_REJECT_BELOW
            ):
                bonus -= 20.0

        if candidate.text_score and "person_text_match" in candidate.text_score.flags:
            bonus += 15.0
        return bonus

    @staticmethod
    def _footage_overlay(candidate: Candidate) -> float:
        verdict = candidate.vision_verdict
        if not _usable(verdict):
            return 0.0
        bonus = 0.0
        if verdict.wrong_location:
            bonus -= 60.0
        elif verdict.relevance_score >= 80:
            bonus += 20.0
        elif verdict.relevance_score >= 65:
            bonus += 10.0
        elif verdict.relevance_score < 40:
            bonus -= 30.0
        return bonus

    def score(self, candidate: Candidate, target: SemanticTarget) -> float:
        text = candidate.text_score.score if candidate.text_score else 0.0
        verdict = candidate.vision_verdict
        value = self.blend(text, verdict, target.mode)

        if target.mode == TargetMode.PERSON:
            value += self._person_overlay(candidate)
        else:
            value += self._footage_overlay(candidate)

        if _usable(verdict) and verdict.is_graphics_only:
            value -= 25.0

        candidate.final_score = float(round(_clamp(value)))
        return candidate.final_score

    @staticmethod
    def sort_key(candidate: Candidate, mode: TargetMode):
        if mode == TargetMode.PERSON:
            return (_PERSON_TIER.get(candidate.person_match, 2), -candidate.final_score)
        return (1 if candidate.wrong_location else 0, -candidate.final_score)

    def rank(self, candidates: List[Candidate], target: SemanticTarget) -> List[Candidate]:
        for candidate in candidates:
            self.score(candidate, target)
        ranked = sorted(candidates, key=lambda c: self.sort_key(c, target.mode))
        if ranked:
            top = ranked[0]
            logger.info(
                f"Ranked {len(ranked)} candidates ({target.mode.value}); "
                f"best {top.final_score:.0f} '{top.title[:50]}'"
            )
        return ranked
