"""
Utils Module
通用工具函数
"""
from .logger import setup_logger, get_logger, configure_package_logging
from .exceptions import (
    ClipMatcherError,
    ConfigurationError,
    CatalogError,
    CatalogTransientError,
    PlannerError,
    MetadataFetchError,
    AcquisitionError,
    AcquisitionCancelled,
    LLMError,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "configure_package_logging",
    "ClipMatcherError",
    "ConfigurationError",
    "CatalogError",
    "CatalogTransientError",
    "PlannerError",
    "MetadataFetchError",
    "AcquisitionError",
    "AcquisitionCancelled",
    "LLMError",
]
