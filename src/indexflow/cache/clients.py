"""缓存客户端实现模块.

提供别名存在性缓存所依赖的键值缓存协作方：
- CacheClient: 缓存客户端抽象基类
- InMemoryCacheClient: 进程内缓存（默认）
- RedisCacheClient: 基于 redis.asyncio 的分布式缓存
- NullCacheClient: 禁用缓存
- ScopedCacheClient: 为任意客户端加上命名空间前缀
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..core.utils import normalize_datetime, utc_now
from ..typing import NowFunc
from .exceptions import CacheBackendError
from .models import CacheEntry

logger = logging.getLogger(__name__)


class CacheClient(ABC):
    """缓存客户端抽象基类."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, expires_at: datetime | None = None) -> None:
        """写入缓存.

        Args:
            key: 缓存键
            value: 缓存值
            expires_at: 过期时间（UTC），None 表示永不过期
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass

    @abstractmethod
    async def remove_by_prefix(self, prefix: str) -> int:
        """删除所有以 prefix 开头的键.

        Returns:
            删除的键数量
        """
        pass

    async def remove_all(self) -> int:
        return await self.remove_by_prefix("")


class InMemoryCacheClient(CacheClient):
    """进程内缓存客户端.

    过期检查在读取时进行，过期条目读取时即被清除。

    Args:
        now_func: 自定义获取当前时间的函数，主要用于测试
    """

    def __init__(self, now_func: NowFunc | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._now_func = now_func or utc_now

    async def exists(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(normalize_datetime(self._now_func())):
            del self._entries[key]
            return False
        return True

    async def set(self, key: str, value: Any, expires_at: datetime | None = None) -> None:
        if expires_at is not None:
            expires_at = normalize_datetime(expires_at)
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def remove_by_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self._entries)


class NullCacheClient(CacheClient):
    """禁用缓存：永远未命中，写入无效果."""

    async def exists(self, key: str) -> bool:
        return False

    async def set(self, key: str, value: Any, expires_at: datetime | None = None) -> None:
        return None

    async def remove(self, key: str) -> None:
        return None

    async def remove_by_prefix(self, prefix: str) -> int:
        return 0


class RedisCacheClient(CacheClient):
    """基于 redis.asyncio 的分布式缓存客户端.

    过期时间通过 ``SET ... EXAT`` 交给 Redis 处理，按前缀删除使用 ``SCAN``。

    Args:
        redis: redis.asyncio.Redis 客户端实例
        prefix: 所有键的全局前缀，用于与其他应用隔离

    Examples:
        >>> from redis.asyncio import Redis
        >>> client = RedisCacheClient(Redis.from_url("redis://localhost:6379/0"))
    """

    def __init__(self, redis: Redis, prefix: str = "indexflow") -> None:
        if redis is None:
            raise ValueError("redis 不能为 None")
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._redis.exists(self._key(key)))
        except RedisError as e:
            raise CacheBackendError(f"检查缓存键 '{key}' 失败: {str(e)}") from e

    async def set(self, key: str, value: Any, expires_at: datetime | None = None) -> None:
        try:
            if expires_at is None:
                await self._redis.set(self._key(key), value)
            else:
                await self._redis.set(
                    self._key(key), value, exat=int(normalize_datetime(expires_at).timestamp())
                )
        except RedisError as e:
            raise CacheBackendError(f"写入缓存键 '{key}' 失败: {str(e)}") from e

    async def remove(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as e:
            raise CacheBackendError(f"删除缓存键 '{key}' 失败: {str(e)}") from e

    async def remove_by_prefix(self, prefix: str) -> int:
        removed = 0
        try:
            async for key in self._redis.scan_iter(match=f"{self._key(prefix)}*"):
                removed += await self._redis.delete(key)
        except RedisError as e:
            raise CacheBackendError(f"按前缀 '{prefix}' 删除缓存失败: {str(e)}") from e
        return removed


class ScopedCacheClient(CacheClient):
    """为缓存客户端加上作用域前缀.

    所有键会被改写为 ``{scope}:{key}``；remove_all 只清除本作用域内的键。

    Args:
        client: 被包装的缓存客户端
        scope: 作用域名称
    """

    def __init__(self, client: CacheClient, scope: str) -> None:
        if not scope:
            raise ValueError("scope 不能为空")
        self._client = client
        self.scope = scope

    def _key(self, key: str) -> str:
        return f"{self.scope}:{key}"

    async def exists(self, key: str) -> bool:
        return await self._client.exists(self._key(key))

    async def set(self, key: str, value: Any, expires_at: datetime | None = None) -> None:
        await self._client.set(self._key(key), value, expires_at)

    async def remove(self, key: str) -> None:
        await self._client.remove(self._key(key))

    async def remove_by_prefix(self, prefix: str) -> int:
        return await self._client.remove_by_prefix(self._key(prefix))
