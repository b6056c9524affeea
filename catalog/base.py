"""
Base Catalog Client
素材库客户端抽象基类
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
import asyncio
import logging
import time

from models import AcquireResponse, Candidate, CandidateMetadata


logger = logging.getLogger(__name__)


class BaseCatalogClient(ABC):
    """
    素材库客户端抽象基类
    一次调用对应一次 search / detail / acquire 请求
    """

    def __init__(self):
        self._session = None

    @property
    @abstractmethod
    def name(self) -> str:
        """返回客户端名称"""
        pass

    @abstractmethod
    async def search(self, query: str, max_results: Optional[int] = None) -> List[Candidate]:
        """
        搜索接口

        Args:
            query: 搜索关键词
            max_results: 最大返回结果数

        Returns:
            候选列表 (按素材库返回顺序)
        """
        pass

    @abstractmethod
    async def fetch_detail(self, identity: str) -> Tuple[CandidateMetadata, Optional[bytes]]:
        """
        获取单个素材的深度元数据和一张截图

        Args:
            identity: 素材标识 (catalog URL)

        Returns:
            (元数据, 截图数据)
        """
        pass

    @abstractmethod
    async def fetch_image(self, ref: str) -> Optional[bytes]:
        """下载缩略图/截图"""
        pass

    @abstractmethod
    async def acquire(self, identity: str) -> AcquireResponse:
        """
        请求直接获取素材

        Returns:
            READY (附带 asset_handle) 或 DEFERRED (服务端需要预处理)
        """
        pass

    def is_configured(self) -> bool:
        """
        检查是否已正确配置
        子类可以覆盖此方法来检查必要的API密钥等
        """
        return True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """清理资源"""
        if self._session:
            await self._session.close()
            self._session = None

    def _log_search(self, query: str, count: int):
        logger.info(f"[{self.name}] Search '{query}' returned {count} results")

    def _log_error(self, message: str, error: Exception):
        logger.error(f"[{self.name}] {message}: {error}")


class RateLimitedCatalogClient(BaseCatalogClient):
    """
    带速率限制的客户端基类
    """

    def __init__(self, requests_per_second: float = 1.0):
        super().__init__()
        self._rate_limit = requests_per_second
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def _wait_for_rate_limit(self):
        """等待满足速率限制"""
        if self._rate_limit <= 0:
            return
        async with self._lock:
            current_time = time.monotonic()
            time_since_last = current_time - self._last_request_time
            min_interval = 1.0 / self._rate_limit

            if time_since_last < min_interval:
                await asyncio.sleep(min_interval - time_since_last)

            self._last_request_time = time.monotonic()
