"""
Configuration Management Module
统一配置管理，实现API配置解耦
"""
from .settings import (
    Settings,
    CatalogSettings,
    SearchSettings,
    FetchSettings,
    VisionSettings,
    RankingSettings,
    AcquisitionSettings,
    LLMSettings,
    get_settings,
    get_catalog_settings,
    get_search_settings,
    get_acquisition_settings,
    get_llm_settings,
)

__all__ = [
    "Settings",
    "CatalogSettings",
    "SearchSettings",
    "FetchSettings",
    "VisionSettings",
    "RankingSettings",
    "AcquisitionSettings",
    "LLMSettings",
    "get_settings",
    "get_catalog_settings",
    "get_search_settings",
    "get_acquisition_settings",
    "get_llm_settings",
]
