"""Tests for hybrid text/vision ranking."""

import pytest

from fakes import make_candidate
from models import PersonMatch, SemanticTarget, TargetMode, TextScore, VerdictLabel, VisionVerdict
from ranking import HybridRanker


ranker = HybridRanker()

PERSON = SemanticTarget(mode=TargetMode.PERSON, person_name="Vladimir Putin")
FOOTAGE = SemanticTarget(country="Iran", subject="naval drills")


def _scored(identity, text, verdict=None, flags=()):
    candidate = make_candidate(identity, title=identity)
    candidate.text_score = TextScore(score=text, raw=text, flags=list(flags))
    candidate.vision_verdict = verdict
    return candidate


def test_confirmed_person_ranks_first_with_high_score():
    confirmed = _scored(
        "https://c/v/1",
        80,
        VisionVerdict(relevance_score=85, person_match=PersonMatch.CONFIRMED, success=True),
    )
    impostor = _scored(
        "https://c/v/2",
        90,
        VisionVerdict(relevance_score=30, person_match=PersonMatch.NOT_MATCH, success=True),
    )

    ranked = ranker.rank([impostor, confirmed], PERSON)

    assert ranked[0] is confirmed
    assert confirmed.final_score >= 90
    assert impostor.final_score == 0


def _not_match(identity, relevance, label, flags=()):
    return _scored(
        identity,
        100,
        VisionVerdict(
            relevance_score=relevance,
            person_match=PersonMatch.NOT_MATCH,
            verdict=label,
            confidence=0.9,
            success=True,
        ),
        flags=flags,
    )


def test_strong_rejection_needs_reject_and_low_visual_score():
    review = _not_match("https://c/v/1", 28, VerdictLabel.REVIEW, flags=["person_text_match"])
    rejected = _not_match("https://c/v/2", 28, VerdictLabel.REJECT, flags=["person_text_match"])

    ranker.rank([review, rejected], PERSON)

    assert review.final_score == 15
    assert rejected.final_score == 0


def test_reject_with_high_visual_score_is_not_strong():
    review = _not_match("https://c/v/1", 100, VerdictLabel.REVIEW)
    rejected = _not_match("https://c/v/2", 100, VerdictLabel.REJECT)

    ranker.rank([review, rejected], PERSON)

    assert review.final_score == 50
    assert rejected.final_score == 50


def test_possible_match_ranks_before_unknown():
    possible = _scored(
        "https://c/v/1",
        10,
        VisionVerdict(relevance_score=20, person_match=PersonMatch.POSSIBLE, success=True),
    )
    unknown = _scored("https://c/v/2", 90, flags=["person_text_match"])

    ranked = ranker.rank([unknown, possible], PERSON)

    assert [c.identity for c in ranked] == ["https://c/v/1", "https://c/v/2"]


def test_wrong_location_sorts_after_everything_else():
    wrong = _scored(
        "https://c/v/1",
        90,
        VisionVerdict(relevance_score=90, wrong_location=True, success=True),
    )
    plain = _scored("https://c/v/2", 10, VisionVerdict(relevance_score=40, success=True))

    ranked = ranker.rank([wrong, plain], FOOTAGE)

    assert ranked[-1] is wrong
    assert wrong.final_score == 30
    assert plain.final_score == 22


def test_wrong_location_replaces_relevance_bonus():
    wrong = _scored(
        "https://c/v/1",
        50,
        VisionVerdict(relevance_score=85, wrong_location=True, success=True),
    )

    assert ranker.score(wrong, FOOTAGE) == 4


@pytest.mark.parametrize(
    "relevance, expected",
    [(85, 84), (70, 68), (50, 50), (30, 12)],
)
def test_footage_relevance_tiers(relevance, expected):
    candidate = _scored("https://c/v/1", 50, VisionVerdict(relevance_score=relevance, success=True))

    assert ranker.score(candidate, FOOTAGE) == expected


def test_unsuccessful_verdict_uses_text_only():
    candidate = _scored("https://c/v/1", 42, VisionVerdict(relevance_score=99, success=False))

    assert ranker.score(candidate, FOOTAGE) == 42


def test_graphics_only_penalty():
    candidate = _scored(
        "https://c/v/1",
        50,
        VisionVerdict(relevance_score=70, is_graphics_only=True, success=True),
    )

    assert ranker.score(candidate, FOOTAGE) == 43


def test_scores_stay_within_bounds():
    high = _scored(
        "https://c/v/1",
        100,
        VisionVerdict(relevance_score=100, person_match=PersonMatch.CONFIRMED, success=True),
        flags=["person_text_match"],
    )
    low = _scored(
        "https://c/v/2",
        0,
        VisionVerdict(relevance_score=0, wrong_location=True, is_graphics_only=True, success=True),
    )

    assert ranker.score(high, PERSON) == 100
    assert ranker.score(low, FOOTAGE) == 0


def test_ties_keep_input_order():
    first = _scored("https://c/v/1", 40)
    second = _scored("https://c/v/2", 40)

    ranked = ranker.rank([first, second], FOOTAGE)

    assert ranked == [first, second]
