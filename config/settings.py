"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class CatalogSettings(BaseSettings):
    """素材库 (stock-footage catalog) API 配置"""
    base_url: str = Field(default="https://api.viory.video/v1", description="Catalog API 根地址")
    api_key: Optional[str] = Field(default=None, description="Catalog API Key")
    request_timeout: float = Field(default=30.0, description="单次请求超时(秒)")
    max_results_per_query: int = Field(default=15, description="每个查询最大返回结果数")
    session_pool_size: int = Field(default=5, description="会话池大小")
    requests_per_second: float = Field(default=5.0, description="每个会话的请求频率上限")

    class Config:
        env_prefix = "CATALOG_"


class SearchSettings(BaseSettings):
    """搜索聚合配置"""
    batch_size: int = Field(default=5, description="每批并发查询数")
    query_timeout: float = Field(default=20.0, description="单个查询超时(秒)")
    cache_ttl: int = Field(default=1800, description="查询缓存过期时间(秒)")
    cache_max_size: int = Field(default=500, description="查询缓存最大条目数")
    expansion_threshold: int = Field(default=12, description="扩展查询提前停止的结果数")
    max_expansion_queries: int = Field(default=10, description="扩展查询数量上限")

    class Config:
        env_prefix = "SEARCH_"


class FetchSettings(BaseSettings):
    """元数据抓取配置"""
    prefilter_pool: int = Field(default=12, description="缩略图预筛选候选数")
    shortlist_size: int = Field(default=5, description="深度抓取候选数")
    fetch_concurrency: int = Field(default=5, description="每批并发抓取数")
    fetch_timeout: float = Field(default=25.0, description="单个候选抓取超时(秒)")

    class Config:
        env_prefix = "FETCH_"


class VisionSettings(BaseSettings):
    """视觉分类配置"""
    enabled: bool = Field(default=True, description="是否启用视觉验证")
    concurrency: int = Field(default=2, description="每批并发视觉调用数")
    timeout: float = Field(default=30.0, description="单次视觉调用超时(秒)")
    max_api_errors: int = Field(default=5, description="连续错误达到此数后禁用视觉验证")
    fast_track_visual: float = Field(default=75.0, description="快速通道视觉置信度阈值")
    fast_track_combined: float = Field(default=70.0, description="快速通道文本+视觉综合阈值")

    class Config:
        env_prefix = "VISION_"


class RankingSettings(BaseSettings):
    """排序与防重复配置"""
    repetition_capacity: int = Field(default=6, description="防重复滑动窗口大小")

    class Config:
        env_prefix = "RANKING_"


class AcquisitionSettings(BaseSettings):
    """素材获取配置"""
    min_acceptable_score: float = Field(default=15.0, description="最低可接受分数")
    emergency_floor: float = Field(default=10.0, description="紧急回退最低分数")
    wait_for_best: bool = Field(default=False, description="最佳候选需处理时是否等待")
    wait_timeout: float = Field(default=240.0, description="等待处理完成的超时(秒)")
    poll_interval: float = Field(default=5.0, description="就绪轮询间隔(秒)")
    poll_chunks: int = Field(default=5, description="每个轮询间隔拆分的取消检查次数")
    acquire_timeout: float = Field(default=60.0, description="单次获取请求超时(秒)")

    class Config:
        env_prefix = "ACQUISITION_"


class LLMSettings(BaseSettings):
    """LLM 配置 (查询规划 + 视觉分类)"""
    provider: str = Field(default="gemini", description="LLM提供商: gemini")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    temperature: float = Field(default=0.3, description="生成温度")
    max_tokens: int = Field(default=2048, description="最大生成token数")
    timeout: float = Field(default=45.0, description="LLM 调用超时(秒)")

    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")

    class Config:
        env_prefix = "LLM_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    vision: VisionSettings = Field(default_factory=VisionSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    acquisition: AcquisitionSettings = Field(default_factory=AcquisitionSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            catalog=CatalogSettings(),
            search=SearchSettings(),
            fetch=FetchSettings(),
            vision=VisionSettings(),
            ranking=RankingSettings(),
            acquisition=AcquisitionSettings(),
            llm=LLMSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


# 便捷访问
def get_catalog_settings() -> CatalogSettings:
    return get_settings().catalog


def get_search_settings() -> SearchSettings:
    return get_settings().search


def get_acquisition_settings() -> AcquisitionSettings:
    return get_settings().acquisition


def get_llm_settings() -> LLMSettings:
    return get_settings().llm
