"""
LLM Factory
工厂函数 - 根据配置自动创建 LLM 实例
"""
from typing import Optional
import logging

from .base import BaseLLM
from .gemini_llm import GeminiLLM
from utils.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


# 默认模型配置
DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    获取 LLM 实例

    自动从 .env 读取配置，也可手动指定

    Args:
        provider: LLM 供应商 (gemini)
        model: 模型名称 (不传则使用默认)
        **kwargs: 额外参数 (temperature, max_tokens, timeout 等)

    Returns:
        BaseLLM 实例

    Example:
        llm = get_llm()
        llm = get_llm(model="gemini-1.5-pro", temperature=0.1)
    """
    from config import get_llm_settings

    settings = get_llm_settings()

    provider = provider or settings.provider
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "gemini": settings.gemini_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "timeout": settings.timeout,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    if provider == "gemini":
        if not api_key:
            logger.warning("LLM_GEMINI_API_KEY is not set; Gemini calls will fail")
        return GeminiLLM(
            model=model,
            api_key=api_key,
            **kwargs,
        )
    raise ConfigurationError(f"Unsupported LLM provider: {provider}", details={"provider": provider})
