"""
Fetcher Module
候选元数据抓取
"""
from .metadata_fetcher import MetadataFetcher, PrefilterResult, run_in_batches

__all__ = [
    "MetadataFetcher",
    "PrefilterResult",
    "run_in_batches",
]
