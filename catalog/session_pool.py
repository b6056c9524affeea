"""
Catalog Session Pool
有界会话池 - 控制对素材库的并发连接数
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List
import logging

from .base import BaseCatalogClient


logger = logging.getLogger(__name__)


class CatalogSessionPool:
    """
    素材库会话池

    Usage:
        pool = CatalogSessionPool(HttpCatalogClient, size=5)
        async with pool.lease() as client:
            await client.search("Putin speech")
    """

    def __init__(self, factory: Callable[[], BaseCatalogClient], size: int = 5):
        self.size = max(1, int(size))
        self._clients: List[BaseCatalogClient] = [factory() for _ in range(self.size)]
        self._available: asyncio.Queue = asyncio.Queue()
        for client in self._clients:
            self._available.put_nowait(client)

    @classmethod
    def from_client(cls, client: BaseCatalogClient, size: int = 1) -> "CatalogSessionPool":
        """用同一个客户端实例构造池 (测试和单会话场景)"""
        return cls(lambda: client, size=size)

    @property
    def clients(self) -> List[BaseCatalogClient]:
        return list(self._clients)

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[BaseCatalogClient]:
        """借出一个客户端，用完归还"""
        client = await self._available.get()
        try:
            yield client
        finally:
            self._available.put_nowait(client)

    async def close(self):
        """关闭所有客户端"""
        closed = set()
        for client in self._clients:
            if id(client) in closed:
                continue
            closed.add(id(client))
            await client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
