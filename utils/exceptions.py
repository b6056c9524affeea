"""
Custom Exceptions
自定义异常类
"""


class ClipMatcherError(Exception):
    """素材匹配引擎基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ClipMatcherError):
    """配置错误"""
    pass


class CatalogError(ClipMatcherError):
    """素材库调用错误"""

    def __init__(self, message: str, source: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source


class CatalogTransientError(CatalogError):
    """素材库临时错误 (超时、限流、5xx)，可重试"""
    pass


class PlannerError(ClipMatcherError):
    """查询规划失败，可通过确定性回退查询恢复"""
    pass


class MetadataFetchError(ClipMatcherError):
    """单个候选的元数据抓取失败"""

    def __init__(self, message: str, identity: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.identity = identity


class AcquisitionError(ClipMatcherError):
    """单个候选的获取失败"""

    def __init__(self, message: str, identity: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.identity = identity


class AcquisitionCancelled(ClipMatcherError):
    """用户取消 - 不视为失败"""
    pass


class LLMError(ClipMatcherError):
    """LLM 调用错误"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider
