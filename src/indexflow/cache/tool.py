"""别名存在性缓存."""

import logging
from datetime import datetime

from ..core.constants import ALIAS_CACHE_SCOPE, MAX_DATETIME
from ..core.utils import normalize_datetime, utc_now
from ..typing import NowFunc
from .clients import CacheClient, InMemoryCacheClient, ScopedCacheClient
from .exceptions import CacheBackendError

logger = logging.getLogger(__name__)


class AliasExistenceCache:
    """别名存在性缓存.

    在别名存在性查询之前加一层带过期时间的缓存，避免每次写入文档都向搜索引擎
    确认分桶别名是否存在。缓存条目的过期时间与分桶的保留截止时间一致。

    缓存只是性能优化：未命中一律回退到权威查询，缓存后端故障按未命中处理。

    Args:
        cache_client: 缓存客户端，默认使用进程内缓存
        scope: 缓存作用域，默认 "alias"
        now_func: 自定义获取当前时间的函数，主要用于测试

    Examples:
        >>> cache = AliasExistenceCache()
        >>> await cache.remember("events-2024.01.05", expires_at=deadline)
        >>> await cache.exists("events-2024.01.05")
        True
    """

    def __init__(
        self,
        cache_client: CacheClient | None = None,
        scope: str = ALIAS_CACHE_SCOPE,
        now_func: NowFunc | None = None,
    ) -> None:
        self._now_func = now_func or utc_now
        if cache_client is None:
            cache_client = InMemoryCacheClient(now_func=self._now_func)
        self._client = ScopedCacheClient(cache_client, scope)

    async def exists(self, alias: str) -> bool:
        try:
            hit = await self._client.exists(alias)
        except CacheBackendError as e:
            logger.warning(f"别名缓存读取失败，按未命中处理: {str(e)}")
            return False
        if hit:
            logger.debug(f"别名缓存命中: '{alias}'")
        return hit

    async def remember(self, alias: str, expires_at: datetime | None = None) -> None:
        """记录别名存在.

        Args:
            alias: 别名名称
            expires_at: 过期时间；None 或 MAX_DATETIME 表示永不过期，
                已过去的时间不写入缓存
        """
        if expires_at is not None:
            expires_at = normalize_datetime(expires_at)
        if expires_at == MAX_DATETIME:
            expires_at = None
        if expires_at is not None and expires_at <= normalize_datetime(self._now_func()):
            logger.debug(f"别名 '{alias}' 的过期时间已过，不写入缓存")
            return

        try:
            await self._client.set(alias, alias, expires_at)
        except CacheBackendError as e:
            logger.warning(f"别名缓存写入失败: {str(e)}")

    async def forget(self, alias: str) -> None:
        try:
            await self._client.remove(alias)
        except CacheBackendError as e:
            logger.warning(f"别名缓存删除失败: {str(e)}")

    async def forget_all(self) -> None:
        try:
            removed = await self._client.remove_all()
        except CacheBackendError as e:
            logger.warning(f"别名缓存清空失败: {str(e)}")
            return
        logger.debug(f"已清空别名缓存，共 {removed} 个条目")
