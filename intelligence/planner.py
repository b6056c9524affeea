"""
Query Planner
把新闻片段转成语义目标 + 搜索查询
"""
from abc import ABC, abstractmethod
import asyncio
from typing import Any, List, Optional
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from .llm import BaseLLM
from .parsing import extract_json_dict
from models import Query, QueryPlan, SemanticTarget, TargetMode
from utils.exceptions import PlannerError


logger = logging.getLogger(__name__)


MAX_PLANNED_QUERIES = 8
MIN_PLANNED_QUERIES = 6


_PLANNER_SYSTEM_PROMPT = """You plan stock-footage searches for a news video editor.
Given a news segment, decide whether the footage must show a specific PERSON
(someone speaking or appearing) or general FOOTAGE of an event/place.

Return ONLY a JSON object:
{
  "mode": "person" | "footage",
  "person_name": "full name or null",
  "country": "country or main location, or null",
  "subject": "short description of what the clip must be about",
  "category": "war | protest | economy | politics | disaster | diplomacy | other",
  "must_show": ["elements that must be visible"],
  "key_visuals": ["concrete visual elements"],
  "avoid": ["things that would make a clip wrong"],
  "queries": ["6 to 8 catalog search queries, most specific first, last one generic"]
}
Queries are short (2-5 words), use specific names and places, and never rely on
obscure model numbers. The final query must be a generic footage query."""


class PlannerReply(BaseModel):
    """规划模型的 JSON 回复"""
    mode: TargetMode = TargetMode.FOOTAGE
    person_name: Optional[str] = None
    country: Optional[str] = None
    subject: str = ""
    category: Optional[str] = None
    must_show: List[str] = Field(default_factory=list)
    key_visuals: List[str] = Field(default_factory=list)
    avoid: List[str] = Field(default_factory=list)
    queries: List[str] = Field(..., min_length=1)

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> str:
        text = str(value or "footage").strip().lower()
        return "person" if text.startswith("person") else "footage"

    @field_validator("person_name", "country", "category", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        if not text or text.lower() in {"null", "none", "n/a"}:
            return None
        return text

    @field_validator("must_show", "key_visuals", "avoid", "queries", mode="before")
    @classmethod
    def _clean_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(item).strip() for item in value if str(item or "").strip()]

    def to_plan(self) -> QueryPlan:
        mode = self.mode
        if mode == TargetMode.PERSON and not self.person_name:
            mode = TargetMode.FOOTAGE

        target = SemanticTarget(
            mode=mode,
            person_name=self.person_name,
            country=self.country,
            subject=self.subject,
            category=self.category,
            must_show=self.must_show,
            key_visuals=self.key_visuals,
            avoid=self.avoid,
        )
        queries = [
            Query(text=text, priority=idx)
            for idx, text in enumerate(self.queries[:MAX_PLANNED_QUERIES])
        ]
        return QueryPlan(target=target, queries=queries, from_fallback=False)


class QueryPlanner(ABC):
    """查询规划器接口"""

    @abstractmethod
    async def plan(
        self,
        headline: str,
        body_text: str,
        prior_context: Optional[QueryPlan] = None,
    ) -> QueryPlan:
        """
        生成查询计划

        Args:
            headline: 片段标题
            body_text: 片段正文
            prior_context: 上一片段的计划 (连续性)

        Returns:
            QueryPlan

        Raises:
            PlannerError: 规划失败 (调用方应使用确定性回退)
        """
        pass


class LLMQueryPlanner(QueryPlanner):
    """
    基于 LLM 的查询规划器

    - 提示词要求严格 JSON
    - 回复经 pydantic 校验
    - 超时 / 非法 JSON / 校验失败统一抛出 PlannerError
    """

    def __init__(self, llm: BaseLLM, timeout: float = 45.0):
        self.llm = llm
        self.timeout = float(timeout)

    @staticmethod
    def build_prompt(headline: str, body_text: str, prior_context: Optional[QueryPlan] = None) -> str:
        lines = [
            f"HEADLINE: {headline.strip()}",
            f"TEXT: {body_text.strip()}",
        ]
        if prior_context is not None:
            previous = [q.text for q in prior_context.queries]
            lines.extend([
                "",
                f"PREVIOUS SEGMENT: {prior_context.target.describe()}",
                f"PREVIOUS QUERIES: {previous}",
                "If this segment continues the same story, keep the same person/country "
                "but write different query variants so a different clip is found.",
            ])
        lines.append("")
        lines.append("Return the JSON plan.")
        return "\n".join(lines)

    async def plan(
        self,
        headline: str,
        body_text: str,
        prior_context: Optional[QueryPlan] = None,
    ) -> QueryPlan:
        prompt = self.build_prompt(headline, body_text, prior_context)
        try:
            response = await asyncio.wait_for(
                self.llm.achat(prompt, system_prompt=_PLANNER_SYSTEM_PROMPT),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise PlannerError(f"Planner timed out after {self.timeout:.0f}s") from e
        except Exception as e:
            raise PlannerError(f"Planner call failed: {e}") from e

        payload = extract_json_dict(response)
        if payload is None:
            raise PlannerError("Planner reply is not valid JSON", details={"reply": str(response)[:200]})

        try:
            reply = PlannerReply.model_validate(payload)
        except ValidationError as e:
            raise PlannerError(f"Planner reply failed validation: {e.error_count()} errors") from e

        plan = reply.to_plan()
        if len(plan.queries) < MIN_PLANNED_QUERIES:
            logger.warning(f"Planner returned only {len(plan.queries)} queries")
        logger.info(f"Planned {len(plan.queries)} queries ({plan.target.describe()})")
        return plan
