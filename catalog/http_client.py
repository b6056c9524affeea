"""
HTTP Catalog Client
基于 aiohttp 的素材库 REST 客户端

接口约定:
- GET  {base}/videos?q=...&limit=...   -> {"items": [{url, title, thumbnail}, ...]}
- GET  {base}/videos/{id}              -> 元数据 + screenshot
- POST {base}/videos/{id}/download     -> {"status": "ready", "asset_url", "mandatory_credit"}
                                          或 {"status": "processing"}
"""
import asyncio
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse
import logging

import aiohttp
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import RateLimitedCatalogClient
from config import CatalogSettings, get_settings
from models import AcquireResponse, AcquisitionOutcome, Candidate, CandidateMetadata
from utils.exceptions import CatalogError, CatalogTransientError


logger = logging.getLogger(__name__)

# 视为临时错误的 HTTP 状态码
TRANSIENT_STATUS = {408, 425, 429, 500, 502, 503, 504}

# 服务端表示"需要预处理"的状态
DEFERRED_STATUSES = {"processing", "pending", "queued", "preparing", "deferred"}


def video_id_from_identity(identity: str) -> str:
    """从素材 URL 提取视频 ID (路径最后一段)"""
    text = str(identity or "").strip()
    path = urlparse(text).path if "://" in text else text
    segments = [seg for seg in path.split("/") if seg]
    if not segments:
        raise CatalogError(f"Cannot derive video id from identity '{identity}'")
    return segments[-1]


class HttpCatalogClient(RateLimitedCatalogClient):
    """
    素材库 HTTP 客户端

    特性:
    - 每个客户端持有一个 aiohttp 会话 (由 CatalogSessionPool 管理并发)
    - search / detail 对临时错误自动重试 (tenacity)
    - acquire 不重试，交给 AcquisitionOrchestrator 的状态机处理
    """

    def __init__(self, settings: Optional[CatalogSettings] = None):
        self._catalog_settings = settings or get_settings().catalog
        super().__init__(requests_per_second=self._catalog_settings.requests_per_second)
        self.base_url = self._catalog_settings.base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "Catalog"

    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        """获取或创建 HTTP 会话"""
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self._catalog_settings.api_key:
                headers["Authorization"] = f"Bearer {self._catalog_settings.api_key}"
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._catalog_settings.request_timeout),
            )
        return self._session

    async def _request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        await self._wait_for_rate_limit()
        session = await self._get_session()
        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status in TRANSIENT_STATUS:
                    raise CatalogTransientError(
                        f"{method} {url} returned {response.status}",
                        source=self.name,
                        status=response.status,
                    )
                if response.status >= 400:
                    raise CatalogError(
                        f"{method} {url} returned {response.status}",
                        source=self.name,
                        status=response.status,
                    )
                return await response.json(content_type=None)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise CatalogTransientError(f"{method} {url} failed: {e}", source=self.name) from e
        except aiohttp.ClientError as e:
            raise CatalogError(f"{method} {url} failed: {e}", source=self.name) from e

    @retry(
        retry=retry_if_exception_type(CatalogTransientError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def search(self, query: str, max_results: Optional[int] = None) -> List[Candidate]:
        """
        搜索素材库

        Args:
            query: 搜索关键词
            max_results: 最大结果数

        Returns:
            候选列表
        """
        if max_results is None:
            max_results = self._catalog_settings.max_results_per_query

        data = await self._request_json(
            "GET",
            f"{self.base_url}/videos",
            params={"q": query, "limit": str(max_results)},
        )
        candidates = self._convert_search_payload(data, query)[:max_results]
        self._log_search(query, len(candidates))
        return candidates

    @retry(
        retry=retry_if_exception_type(CatalogTransientError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def fetch_detail(self, identity: str) -> Tuple[CandidateMetadata, Optional[bytes]]:
        """获取素材详情和截图"""
        video_id = video_id_from_identity(identity)
        data = await self._request_json("GET", f"{self.base_url}/videos/{video_id}")
        metadata = self._convert_detail(data)

        screenshot = None
        if metadata.screenshot_ref:
            screenshot = await self.fetch_image(metadata.screenshot_ref)
        return metadata, screenshot

    async def fetch_image(self, ref: str) -> Optional[bytes]:
        """下载图片，失败返回 None"""
        if not ref:
            return None
        await self._wait_for_rate_limit()
        session = await self._get_session()
        try:
            async with session.get(ref) as response:
                response.raise_for_status()
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._log_error(f"Image download failed for {ref}", e)
            return None

    async def acquire(self, identity: str) -> AcquireResponse:
        """请求下载素材"""
        video_id = video_id_from_identity(identity)
        data = await self._request_json("POST", f"{self.base_url}/videos/{video_id}/download")
        return self._convert_acquire(data)

    @staticmethod
    def _convert_search_payload(data: Any, query: str) -> List[Candidate]:
        """转换搜索响应为候选列表"""
        items = data.get("items", []) if isinstance(data, dict) else (data or [])
        candidates: List[Candidate] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            identity = str(item.get("url") or "").strip()
            if not identity:
                continue
            candidates.append(
                Candidate(
                    identity=identity,
                    title=str(item.get("title") or "").strip(),
                    thumbnail_ref=item.get("thumbnail") or None,
                    source_query=query,
                )
            )
        return candidates

    @staticmethod
    def _convert_detail(data: Dict[str, Any]) -> CandidateMetadata:
        """转换详情响应为元数据"""
        if not isinstance(data, dict):
            return CandidateMetadata()

        tags = data.get("tags") or []
        published = data.get("published") or data.get("date")
        duration = data.get("duration")
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]

        return CandidateMetadata(
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            video_info=str(data.get("video_info") or data.get("info") or ""),
            shot_list=str(data.get("shot_list") or ""),
            location=str(data.get("location") or ""),
            published=str(published) if published is not None else None,
            duration=str(duration) if duration is not None else None,
            tags=[str(t) for t in tags],
            mandatory_credit=data.get("mandatory_credit") or None,
            screenshot_ref=data.get("screenshot") or None,
        )

    @staticmethod
    def _convert_acquire(data: Dict[str, Any]) -> AcquireResponse:
        """转换下载响应"""
        status = str((data or {}).get("status") or "").strip().lower()
        if status == "ready" and data.get("asset_url"):
            return AcquireResponse(
                status=AcquisitionOutcome.READY,
                asset_handle=data["asset_url"],
                attribution_text=data.get("mandatory_credit") or None,
            )
        if status in DEFERRED_STATUSES:
            return AcquireResponse(status=AcquisitionOutcome.DEFERRED)
        raise CatalogError(f"Unexpected acquire status '{status or 'missing'}'", source="Catalog")
