"""
Vision Classifier
缩略图 / 截图视觉验证
"""
from abc import ABC, abstractmethod
import asyncio
from typing import Any, Dict, Optional
import logging

from .llm import BaseLLM, ImagePart
from .parsing import clamp, extract_json_dict
from models import PersonMatch, SemanticTarget, TargetMode, VerdictLabel, VisionVerdict


logger = logging.getLogger(__name__)


_PERSON_MATCH_ALIASES = {
    "confirmed": PersonMatch.CONFIRMED,
    "yes": PersonMatch.CONFIRMED,
    "possible": PersonMatch.POSSIBLE,
    "likely": PersonMatch.POSSIBLE,
    "not_match": PersonMatch.NOT_MATCH,
    "unlikely": PersonMatch.NOT_MATCH,
    "no": PersonMatch.NOT_MATCH,
    "no_person": PersonMatch.NO_PERSON,
}

_VERDICT_ALIASES = {
    "accept": VerdictLabel.ACCEPT,
    "review": VerdictLabel.REVIEW,
    "reject": VerdictLabel.REJECT,
}


def neutral_verdict(reason: str = "unavailable") -> VisionVerdict:
    """视觉不可用时的中性结论 (REVIEW, 30 分)"""
    return VisionVerdict(
        relevance_score=30.0,
        verdict=VerdictLabel.REVIEW,
        person_match=PersonMatch.UNKNOWN,
        confidence=0.0,
        issues=[f"vision {reason}"],
        success=False,
    )


def verdict_from_payload(payload: Dict[str, Any]) -> VisionVerdict:
    """把模型 JSON 转成 VisionVerdict (数值钳制到合法范围)"""
    person_raw = str(payload.get("person_match") or "").strip().lower().replace(" ", "_")
    verdict_raw = str(payload.get("verdict") or payload.get("recommendation") or "").strip().lower()
    scene = str(payload.get("scene_type") or "").strip().lower()

    is_graphics_only = bool(payload.get("is_graphics_only"))
    if scene == "graphics" or payload.get("is_real_footage") is False:
        is_graphics_only = True

    return VisionVerdict(
        relevance_score=clamp(payload.get("relevance_score"), 0.0, 100.0, 30.0),
        verdict=_VERDICT_ALIASES.get(verdict_raw, VerdictLabel.REVIEW),
        person_match=_PERSON_MATCH_ALIASES.get(person_raw, PersonMatch.UNKNOWN),
        wrong_location=bool(payload.get("wrong_location")),
        is_graphics_only=is_graphics_only,
        confidence=clamp(payload.get("confidence"), 0.0, 1.0, 0.0),
        detected_elements=[str(x) for x in (payload.get("detected_elements") or []) if str(x).strip()],
        issues=[str(x) for x in (payload.get("issues") or []) if str(x).strip()],
        success=True,
    )


class VisionClassifier(ABC):
    """视觉分类器接口 (失败时必须返回中性结论，不抛异常)"""

    @abstractmethod
    async def classify(
        self,
        image: Optional[bytes],
        target: SemanticTarget,
        title: Optional[str] = None,
    ) -> VisionVerdict:
        pass

    def reset(self) -> None:
        """重置内部状态 (新一轮发现开始时调用)"""
        return None


class LLMVisionClassifier(VisionClassifier):
    """
    基于多模态 LLM 的视觉分类器

    特性:
    - 超时 / API 错误 / 非法 JSON 均返回 neutral_verdict()
    - 连续 max_api_errors 次 API 错误后自动停用 (熔断)，reset() 恢复
    """

    def __init__(
        self,
        llm: BaseLLM,
        timeout: float = 30.0,
        max_api_errors: int = 5,
    ):
        self.llm = llm
        self.timeout = float(timeout)
        self.max_api_errors = max(1, int(max_api_errors))
        self.consecutive_errors = 0
        self.disabled = False

    def reset(self) -> None:
        self.consecutive_errors = 0
        self.disabled = False

    @staticmethod
    def build_prompt(target: SemanticTarget, title: Optional[str] = None) -> str:
        lines = ["You are a visual analyst checking a frame from a news video.", ""]
        if target.mode == TargetMode.PERSON and target.person_name:
            lines.append(f"LOOKING FOR PERSON: {target.person_name}")
        lines.append(f"SUBJECT: {target.subject or 'news footage'}")
        if target.country:
            lines.append(f"LOCATION: {target.country}")
        if target.must_show:
            lines.append(f"MUST SHOW: {', '.join(target.must_show)}")
        if target.key_visuals:
            lines.append(f"KEY VISUALS: {', '.join(target.key_visuals)}")
        if target.avoid:
            lines.append(f"AVOID: {', '.join(target.avoid)}")
        if title:
            lines.append(f"VIDEO TITLE: {title}")
        lines.extend([
            "",
            "Answer ONLY with JSON:",
            '{"relevance_score": 0-100, "verdict": "ACCEPT|REVIEW|REJECT",',
            ' "person_match": "CONFIRMED|POSSIBLE|NOT_MATCH|NO_PERSON",',
            ' "wrong_location": true/false, "is_graphics_only": true/false,',
            ' "confidence": 0.0-1.0, "detected_elements": [], "issues": []}',
            "ACCEPT (70-100) clearly shows the target; REVIEW (40-69) unclear; "
            "REJECT (0-39) unrelated, wrong place, or only graphics/text.",
        ])
        return "\n".join(lines)

    def _record_api_error(self, error: Exception) -> None:
        self.consecutive_errors += 1
        logger.warning(f"Vision API error ({self.consecutive_errors}/{self.max_api_errors}): {error}")
        if self.consecutive_errors >= self.max_api_errors and not self.disabled:
            self.disabled = True
            logger.error("Vision classifier disabled after repeated API errors; using text scores only")

    async def classify(
        self,
        image: Optional[bytes],
        target: SemanticTarget,
        title: Optional[str] = None,
    ) -> VisionVerdict:
        if self.disabled:
            return neutral_verdict("disabled")
        if not image:
            return neutral_verdict("no image")

        prompt = self.build_prompt(target, title)
        try:
            reply = await asyncio.wait_for(
                self.llm.achat(prompt, images=[ImagePart(data=image)]),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self._record_api_error(e)
            return neutral_verdict("timeout")
        except Exception as e:
            self._record_api_error(e)
            return neutral_verdict("api error")

        self.consecutive_errors = 0
        payload = extract_json_dict(reply)
        if payload is None:
            logger.warning("Vision reply is not valid JSON")
            return neutral_verdict("parse error")
        return verdict_from_payload(payload)
