"""
Catalog Module
素材库客户端
"""
from .base import BaseCatalogClient, RateLimitedCatalogClient
from .http_client import HttpCatalogClient, video_id_from_identity
from .session_pool import CatalogSessionPool

__all__ = [
    "BaseCatalogClient",
    "RateLimitedCatalogClient",
    "HttpCatalogClient",
    "video_id_from_identity",
    "CatalogSessionPool",
]
