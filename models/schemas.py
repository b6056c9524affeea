"""
Data Models / Schemas
定义统一的数据结构
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator


class TargetMode(str, Enum):
    """匹配模式"""
    PERSON = "person"
    FOOTAGE = "footage"


class PersonMatch(str, Enum):
    """视觉人物匹配结论"""
    CONFIRMED = "confirmed"
    POSSIBLE = "possible"
    NOT_MATCH = "not_match"
    NO_PERSON = "no_person"
    UNKNOWN = "unknown"


class VerdictLabel(str, Enum):
    """视觉分类建议"""
    ACCEPT = "accept"
    REVIEW = "review"
    REJECT = "reject"


class AcquisitionOutcome(str, Enum):
    """单个候选获取结果"""
    READY = "ready"
    DEFERRED = "deferred"
    FAILED = "failed"


class Query(BaseModel):
    """搜索查询 (priority 越小越优先)"""
    text: str = Field(..., description="查询文本")
    priority: int = Field(default=0, description="优先级")

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        text = " ".join(str(value or "").split())
        if not text:
            raise ValueError("query text is required")
        return text

    @property
    def normalized(self) -> str:
        return self.text.lower()


class SemanticTarget(BaseModel):
    """语义目标 - 一次发现过程内固定"""
    mode: TargetMode = Field(default=TargetMode.FOOTAGE, description="匹配模式")
    person_name: Optional[str] = Field(None, description="人物姓名 (PERSON 模式)")
    country: Optional[str] = Field(None, description="国家/地点")
    subject: str = Field(default="", description="主题描述")
    category: Optional[str] = Field(None, description="事件类别 (war, protest, economy...)")
    must_show: List[str] = Field(default_factory=list, description="必须出现的元素")
    key_visuals: List[str] = Field(default_factory=list, description="关键视觉元素")
    avoid: List[str] = Field(default_factory=list, description="需要避免的元素")

    def describe(self) -> str:
        """单行描述 (用于提示词和日志)"""
        parts = [f"mode={self.mode.value}"]
        if self.person_name:
            parts.append(f"person={self.person_name}")
        if self.country:
            parts.append(f"country={self.country}")
        if self.subject:
            parts.append(f"subject={self.subject}")
        return ", ".join(parts)


class QueryPlan(BaseModel):
    """查询计划"""
    target: SemanticTarget = Field(default_factory=SemanticTarget)
    queries: List[Query] = Field(default_factory=list)
    from_fallback: bool = Field(default=False, description="是否来自确定性回退")


class CandidateMetadata(BaseModel):
    """候选视频的深度元数据 (空实例表示抓取失败)"""
    title: str = ""
    description: str = ""
    video_info: str = ""
    shot_list: str = ""
    location: str = ""
    published: Optional[str] = None
    duration: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    mandatory_credit: Optional[str] = None
    screenshot_ref: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not any([self.title, self.description, self.video_info, self.shot_list, self.location])

    def content_text(self) -> str:
        """拼接所有文本字段"""
        return " ".join(
            part for part in [
                self.title,
                self.description,
                self.video_info,
                self.shot_list,
                self.location,
                " ".join(self.tags),
            ] if part
        )


class VisionVerdict(BaseModel):
    """视觉分类结果"""
    relevance_score: float = Field(default=30.0, ge=0, le=100)
    verdict: VerdictLabel = VerdictLabel.REVIEW
    person_match: PersonMatch = PersonMatch.UNKNOWN
    wrong_location: bool = False
    is_graphics_only: bool = False
    confidence: float = Field(default=0.0, ge=0, le=1)
    detected_elements: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    success: bool = False


class TextScore(BaseModel):
    """文本规则评分结果"""
    score: float = Field(default=0.0, ge=0, le=100)
    raw: float = 0.0
    flags: List[str] = Field(default_factory=list)


class Candidate(BaseModel):
    """候选素材"""
    identity: str = Field(..., description="素材唯一标识 (catalog URL)")
    title: str = Field(default="", description="标题")
    thumbnail_ref: Optional[str] = Field(None, description="缩略图地址")
    source_query: str = Field(default="", description="发现该候选的查询")
    priority: int = Field(default=0, description="来源查询优先级")
    discovery_index: int = Field(default=0, description="发现顺序")
    metadata: Optional[CandidateMetadata] = None
    thumbnail: Optional[bytes] = Field(None, description="缩略图数据")
    screenshot: Optional[bytes] = Field(None, description="截图数据")
    text_score: Optional[TextScore] = None
    vision_verdict: Optional[VisionVerdict] = None
    final_score: float = Field(default=0.0, ge=0, le=100)
    fast_tracked: bool = False

    @property
    def wrong_location(self) -> bool:
        return bool(self.vision_verdict and self.vision_verdict.success and self.vision_verdict.wrong_location)

    @property
    def person_match(self) -> PersonMatch:
        if self.vision_verdict is None or not self.vision_verdict.success:
            return PersonMatch.UNKNOWN
        return self.vision_verdict.person_match

    def summary(self) -> Dict[str, Any]:
        """精简视图 (CLI / 进度事件)"""
        return {
            "identity": self.identity,
            "title": self.title,
            "source_query": self.source_query,
            "final_score": self.final_score,
            "text_score": self.text_score.score if self.text_score else None,
            "visual_score": (
                self.vision_verdict.relevance_score
                if self.vision_verdict and self.vision_verdict.success
                else None
            ),
            "wrong_location": self.wrong_location,
            "person_match": self.person_match.value,
            "fast_tracked": self.fast_tracked,
        }


class AcquireResponse(BaseModel):
    """单次 acquire 调用的返回"""
    status: AcquisitionOutcome
    asset_handle: Optional[str] = None
    attribution_text: Optional[str] = None


class AcquisitionAttempt(BaseModel):
    """单个候选的获取记录"""
    candidate: Candidate
    outcome: AcquisitionOutcome
    attempts_used: int = 0
    reason: Optional[str] = None


class SkippedCandidate(BaseModel):
    """被跳过的候选及原因"""
    identity: str
    rank: int
    reason: str


class AcquisitionResult(BaseModel):
    """acquire_best 的结果"""
    asset: Optional[str] = None
    attribution_text: Optional[str] = None
    candidate_rank: Optional[int] = None
    candidate: Optional[Candidate] = None
    skipped: List[SkippedCandidate] = Field(default_factory=list)
    attempts: List[AcquisitionAttempt] = Field(default_factory=list)
    used_emergency_fallback: bool = False

    @property
    def success(self) -> bool:
        return self.asset is not None

    def to_dict(self) -> Dict[str, Any]:
        """JSON 安全视图 (候选只保留 summary, 不含图片字节)"""
        return {
            "success": self.success,
            "asset": self.asset,
            "attribution_text": self.attribution_text,
            "candidate_rank": self.candidate_rank,
            "candidate": self.candidate.summary() if self.candidate else None,
            "skipped": [s.model_dump(mode="json") for s in self.skipped],
            "attempts": [
                {
                    "candidate": a.candidate.summary(),
                    "outcome": a.outcome.value,
                    "attempts_used": a.attempts_used,
                    "reason": a.reason,
                }
                for a in self.attempts
            ],
            "used_emergency_fallback": self.used_emergency_fallback,
        }


class ProgressEvent(BaseModel):
    """进度事件"""
    stage: str
    percentage: float = Field(default=0.0, ge=0, le=100)
    message: str = ""
    sequence_index: Optional[int] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    data: Dict[str, Any] = Field(default_factory=dict)
