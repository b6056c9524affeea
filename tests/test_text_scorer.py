"""Tests for rule-based text scoring."""

import pytest

from models import Candidate, CandidateMetadata, SemanticTarget, TargetMode
from ranking import TextScorer


scorer = TextScorer()


def test_country_in_title_scores_higher_than_in_body():
    target = SemanticTarget(country="Iran")

    in_title = scorer.score(CandidateMetadata(title="Iran military parade"), target)
    in_body = scorer.score(
        CandidateMetadata(title="Military parade in the capital", description="Footage from Iran"),
        target,
    )

    assert in_title.score == 30
    assert in_body.score == 20


def test_full_person_name_match():
    target = SemanticTarget(mode=TargetMode.PERSON, person_name="Vladimir Putin")

    result = scorer.score(CandidateMetadata(title="Vladimir Putin speech at forum"), target)

    assert result.score == 60
    assert "person:full" in result.flags
    assert "person_text_match" in result.flags


def test_surname_only_match():
    target = SemanticTarget(mode=TargetMode.PERSON, person_name="Vladimir Putin")

    result = scorer.score(CandidateMetadata(title="Putin arrives in Beijing"), target)

    assert result.score == 50
    assert "person:surname" in result.flags


def test_missing_person_is_penalised_and_clamped():
    target = SemanticTarget(mode=TargetMode.PERSON, person_name="Vladimir Putin")

    result = scorer.score(CandidateMetadata(title="Press conference in Moscow"), target)

    assert result.raw == -20
    assert result.score == 0
    assert "person_text_match" not in result.flags


def test_score_is_clamped_to_hundred():
    target = SemanticTarget(
        country="Iran",
        subject="missile launch test drone",
        key_visuals=["missile launch"],
        must_show=["drone"],
    )
    metadata = CandidateMetadata(
        title="Iran missile launch test",
        description="A drone flies over the missile launch test site",
    )

    result = scorer.score(metadata, target)

    assert result.raw > 100
    assert result.score == 100


def test_short_title_penalty():
    result = scorer.score(CandidateMetadata(title="abc"), SemanticTarget())

    assert result.raw == -15
    assert result.score == 0
    assert "missing_title" in result.flags


def test_unrelated_marquee_keyword_in_title_is_penalised():
    target = SemanticTarget(subject="flood damage in Brazil")

    result = scorer.score(CandidateMetadata(title="Trump rally speech"), target)

    assert result.raw == -25
    assert any(flag.startswith("off_topic") for flag in result.flags)


def test_marquee_keyword_tolerated_when_subject_present():
    target = SemanticTarget(subject="flood damage in Brazil")

    result = scorer.score(CandidateMetadata(title="Trump tours flood damage"), target)

    assert not any(flag.startswith("off_topic") for flag in result.flags)
    assert result.score > 0


def test_avoid_terms_in_title():
    target = SemanticTarget(subject="harbour", avoid=["animation", "map"])

    result = scorer.score(CandidateMetadata(title="Harbour animation with map"), target)

    assert "avoid:2" in result.flags


def test_apply_falls_back_to_title_without_metadata():
    candidate = Candidate(identity="https://c/v/1", title="Iran navy exercise in the Gulf")

    scorer.apply(candidate, SemanticTarget(country="Iran"))

    assert candidate.text_score is not None
    assert candidate.text_score.score == 30


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Naval drills in coastal waters", 40),
        ("Naval drills announced", 25),
        ("Naval parade", 10),
        ("Harbour at dawn", 0),
    ],
)
def test_subject_overlap_tiers(title, expected):
    target = SemanticTarget(subject="naval drills coastal waters")

    assert scorer.score(CandidateMetadata(title=title), target).score == expected


def test_key_visual_full_and_partial_credit():
    target = SemanticTarget(key_visuals=["fighter jets"])

    full = scorer.score(CandidateMetadata(title="Fighter jets take off"), target)
    partial = scorer.score(CandidateMetadata(title="Fighter pilots brief"), target)

    assert full.score == 20
    assert "visuals:1" in full.flags
    assert partial.score == 8
    assert "visuals:0" in partial.flags


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Burning oil tanker at sea", 30),
        ("Burning tanker adrift", 20),
        ("Tanker docks in port", 10),
    ],
)
def test_must_show_full_and_partial_credit(title, expected):
    target = SemanticTarget(must_show=["burning oil tanker"])

    assert scorer.score(CandidateMetadata(title=title), target).score == expected


def test_domain_cluster_bonus_per_keyword():
    target = SemanticTarget(mode=TargetMode.PERSON, subject="missile drone launch")

    result = scorer.score(CandidateMetadata(title="missile drone launch"), target)

    assert result.score == 10
    assert "domain" in result.flags


def test_domain_cluster_bonus_is_capped():
    subject = "missile drone tank artillery strike attack"
    target = SemanticTarget(mode=TargetMode.PERSON, subject=subject)

    result = scorer.score(CandidateMetadata(title=f"{subject} footage"), target)

    assert result.score == 25
    assert "domain" in result.flags
