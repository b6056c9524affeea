"""Tests for the LLM-backed query planner and vision classifier."""

import asyncio
import json

import pytest

from intelligence import LLMQueryPlanner, LLMVisionClassifier
from intelligence.llm import BaseLLM, LLMResponse
from intelligence.parsing import extract_json_dict
from models import PersonMatch, QueryPlan, SemanticTarget, TargetMode, VerdictLabel
from utils.exceptions import LLMError, PlannerError


class ScriptedLLM(BaseLLM):
    """Replays canned replies; an Exception entry is raised instead."""

    def __init__(self, *replies, delay: float = 0.0):
        super().__init__(model="scripted")
        self.replies = list(replies)
        self.delay = delay
        self.prompts = []

    @property
    def provider(self) -> str:
        return "scripted"

    async def acomplete(self, messages, **kwargs):
        self.prompts.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(content=reply, model=self.model)


PLAN_JSON = json.dumps({
    "mode": "PERSON",
    "person_name": "Vladimir Putin",
    "country": "Russia",
    "subject": "Putin speech at economic forum",
    "category": "politics",
    "must_show": ["Putin"],
    "key_visuals": ["podium"],
    "avoid": ["null"],
    "queries": [f"query {i}" for i in range(10)],
})

TARGET = SemanticTarget(country="Iran", subject="naval drills")


@pytest.mark.asyncio
async def test_planner_parses_fenced_json_and_truncates_queries():
    planner = LLMQueryPlanner(ScriptedLLM(f"Here you go:\n```json\n{PLAN_JSON}\n```"))

    plan = await planner.plan("Putin speaks", "The president addressed the forum.")

    assert plan.target.mode == TargetMode.PERSON
    assert plan.target.person_name == "Vladimir Putin"
    assert len(plan.queries) == 8
    assert [q.priority for q in plan.queries] == list(range(8))
    assert not plan.from_fallback


@pytest.mark.asyncio
async def test_person_mode_without_name_becomes_footage():
    reply = json.dumps({"mode": "person", "person_name": "", "queries": ["crowd"]})
    planner = LLMQueryPlanner(ScriptedLLM(reply))

    plan = await planner.plan("Leader speaks", "")

    assert plan.target.mode == TargetMode.FOOTAGE


@pytest.mark.asyncio
async def test_planner_includes_previous_segment_in_prompt():
    llm = ScriptedLLM(PLAN_JSON)
    planner = LLMQueryPlanner(llm)
    prior = QueryPlan(target=SemanticTarget(country="Russia", subject="forum"))

    await planner.plan("More from the forum", "", prior_context=prior)

    user_message = llm.prompts[0][-1].content
    assert "PREVIOUS SEGMENT" in user_message
    assert "country=Russia" in user_message


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["not json at all", json.dumps({"mode": "footage", "queries": []})])
async def test_planner_raises_on_unusable_reply(reply):
    planner = LLMQueryPlanner(ScriptedLLM(reply))

    with pytest.raises(PlannerError):
        await planner.plan("Headline", "Body")


@pytest.mark.asyncio
async def test_planner_timeout_raises_planner_error():
    planner = LLMQueryPlanner(ScriptedLLM(PLAN_JSON, delay=0.5), timeout=0.05)

    with pytest.raises(PlannerError):
        await planner.plan("Headline", "Body")


@pytest.mark.asyncio
async def test_planner_wraps_llm_error():
    planner = LLMQueryPlanner(ScriptedLLM(LLMError("quota exceeded", provider="scripted")))

    with pytest.raises(PlannerError) as excinfo:
        await planner.plan("Headline", "Body")

    assert isinstance(excinfo.value.__cause__, LLMError)


@pytest.mark.asyncio
async def test_vision_parses_fenced_verdict():
    reply = (
        "```json\n"
        '{"relevance_score": 140, "verdict": "ACCEPT", "person_match": "NOT MATCH",'
        ' "wrong_location": true, "confidence": 0.9, "scene_type": "graphics"}\n'
        "```"
    )
    classifier = LLMVisionClassifier(ScriptedLLM(reply))

    verdict = await classifier.classify(b"jpeg", TARGET, title="clip")

    assert verdict.success
    assert verdict.relevance_score == 100
    assert verdict.verdict == VerdictLabel.ACCEPT
    assert verdict.person_match == PersonMatch.NOT_MATCH
    assert verdict.wrong_location
    assert verdict.is_graphics_only


@pytest.mark.asyncio
async def test_vision_without_image_skips_the_model():
    llm = ScriptedLLM("{}")
    classifier = LLMVisionClassifier(llm)

    verdict = await classifier.classify(None, TARGET)

    assert not verdict.success
    assert verdict.relevance_score == 30
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_vision_invalid_json_is_neutral_and_not_an_api_error():
    classifier = LLMVisionClassifier(ScriptedLLM("I cannot tell"))

    verdict = await classifier.classify(b"jpeg", TARGET)

    assert not verdict.success
    assert classifier.consecutive_errors == 0


@pytest.mark.asyncio
async def test_vision_disables_after_consecutive_errors_and_reset_reenables():
    llm = ScriptedLLM(RuntimeError("quota exceeded"))
    classifier = LLMVisionClassifier(llm, max_api_errors=5)

    for _ in range(5):
        verdict = await classifier.classify(b"jpeg", TARGET)
        assert not verdict.success
    assert classifier.disabled

    await classifier.classify(b"jpeg", TARGET)
    assert len(llm.prompts) == 5

    classifier.reset()
    llm.replies = ['{"relevance_score": 80, "verdict": "accept"}']
    verdict = await classifier.classify(b"jpeg", TARGET)
    assert verdict.success
    assert verdict.relevance_score == 80


@pytest.mark.asyncio
async def test_vision_success_resets_error_counter():
    llm = ScriptedLLM(RuntimeError("flaky"), '{"relevance_score": 50}')
    classifier = LLMVisionClassifier(llm, max_api_errors=2)

    await classifier.classify(b"jpeg", TARGET)
    assert classifier.consecutive_errors == 1
    await classifier.classify(b"jpeg", TARGET)

    assert classifier.consecutive_errors == 0
    assert not classifier.disabled


def test_extract_json_dict_handles_surrounding_text():
    assert extract_json_dict('noise {"a": {"b": 1}} trailing') == {"a": {"b": 1}}
    assert extract_json_dict("nothing here") is None
