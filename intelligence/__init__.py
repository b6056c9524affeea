"""
Intelligence Module
智能层 - LLM 抽象 + 查询规划 + 视觉分类
"""
from .llm import (
    BaseLLM,
    GeminiLLM,
    ImagePart,
    Message,
    get_llm,
)
from .parsing import extract_json_dict
from .planner import LLMQueryPlanner, PlannerReply, QueryPlanner
from .vision import (
    LLMVisionClassifier,
    VisionClassifier,
    neutral_verdict,
    verdict_from_payload,
)

__all__ = [
    # LLM
    "BaseLLM",
    "GeminiLLM",
    "ImagePart",
    "Message",
    "get_llm",
    "extract_json_dict",
    # Planner
    "QueryPlanner",
    "LLMQueryPlanner",
    "PlannerReply",
    # Vision
    "VisionClassifier",
    "LLMVisionClassifier",
    "neutral_verdict",
    "verdict_from_payload",
]
