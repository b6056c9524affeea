"""
Storage Module
存储模块 - 搜索缓存和会话状态
"""
from .cache import (
    BaseCache,
    MemoryCache,
)
from .search_cache import SearchCache, normalize_query
from .session_state import Blacklist, DiscoverySession, RepetitionWindow

__all__ = [
    # Cache
    "BaseCache",
    "MemoryCache",
    "SearchCache",
    "normalize_query",
    # Session
    "RepetitionWindow",
    "Blacklist",
    "DiscoverySession",
]
