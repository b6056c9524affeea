"""
Cache
缓存模块
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
import hashlib
import logging
import time


logger = logging.getLogger(__name__)


class BaseCache(ABC):
    """
    缓存抽象基类
    """

    def __init__(self, ttl: Optional[float] = None):
        """
        初始化缓存

        Args:
            ttl: 缓存过期时间 (秒), None = 永不过期
        """
        self.ttl = ttl

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """获取缓存值"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """设置缓存值"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """删除缓存"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """清空缓存"""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """检查键是否存在"""
        pass

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl: Optional[float] = None,
    ) -> Any:
        """
        获取缓存，不存在则通过 factory 创建

        Args:
            key: 缓存键
            factory: 值工厂函数
            ttl: 过期时间

        Returns:
            缓存值或新创建的值
        """
        value = self.get(key)
        if value is not None:
            return value

        value = factory()
        self.set(key, value, ttl)
        return value

    @staticmethod
    def make_key(*args, **kwargs) -> str:
        """
        根据参数生成缓存键

        Args:
            *args: 位置参数
            **kwargs: 关键字参数

        Returns:
            缓存键
        """
        key_parts = [str(arg) for arg in args]
        key_parts.extend([f"{k}={v}" for k, v in sorted(kwargs.items())])
        key_string = ":".join(key_parts)
        return hashlib.md5(key_string.encode()).hexdigest()


class MemoryCache(BaseCache):
    """
    内存缓存
    字典 + 单调时钟，进程内有效
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        初始化内存缓存

        Args:
            ttl: 默认过期时间 (秒)
            max_size: 最大缓存条目数
            clock: 时钟函数 (测试时可注入)
        """
        super().__init__(ttl)
        self.max_size = max_size
        self._clock = clock
        self._cache: Dict[str, Dict] = {}

    def _is_expired(self, entry: Dict) -> bool:
        """检查是否过期"""
        if entry.get("expires_at") is None:
            return False
        return self._clock() >= entry["expires_at"]

    def _cleanup(self):
        """清理过期条目"""
        expired_keys = [
            k for k, v in self._cache.items()
            if self._is_expired(v)
        ]
        for key in expired_keys:
            del self._cache[key]

        # 如果仍然超过限制，删除最旧的
        if len(self._cache) >= self.max_size:
            sorted_keys = sorted(
                self._cache.keys(),
                key=lambda k: self._cache[k]["created_at"],
            )
            for key in sorted_keys[:len(self._cache) - self.max_size + 1]:
                del self._cache[key]

    def get(self, key: str) -> Optional[Any]:
        """获取缓存值"""
        entry = self._cache.get(key)
        if entry is None:
            return None

        if self._is_expired(entry):
            del self._cache[key]
            return None

        return entry["value"]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """设置缓存值"""
        if key not in self._cache:
            self._cleanup()

        ttl = ttl or self.ttl
        now = self._clock()
        self._cache[key] = {
            "value": value,
            "created_at": now,
            "expires_at": now + ttl if ttl else None,
        }

    def delete(self, key: str) -> None:
        """删除缓存"""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """清空缓存"""
        self._cache.clear()

    def exists(self, key: str) -> bool:
        """检查键是否存在"""
        return self.get(key) is not None

    def size(self) -> int:
        """返回缓存大小"""
        return len(self._cache)
