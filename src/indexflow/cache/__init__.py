"""别名存在性缓存模块.

主要组件:
    - AliasExistenceCache: 带过期时间的别名存在性缓存
    - CacheClient: 缓存客户端抽象基类
    - InMemoryCacheClient / RedisCacheClient / NullCacheClient / ScopedCacheClient

使用示例:
    from redis.asyncio import Redis
    from indexflow.cache import AliasExistenceCache, RedisCacheClient

    cache = AliasExistenceCache(RedisCacheClient(Redis.from_url("redis://localhost")))
"""

from .clients import (
    CacheClient,
    InMemoryCacheClient,
    NullCacheClient,
    RedisCacheClient,
    ScopedCacheClient,
)
from .exceptions import CacheBackendError, CacheError
from .models import CacheEntry
from .tool import AliasExistenceCache

__all__ = [
    # 核心类
    "AliasExistenceCache",
    # 缓存客户端
    "CacheClient",
    "InMemoryCacheClient",
    "RedisCacheClient",
    "NullCacheClient",
    "ScopedCacheClient",
    # 数据模型
    "CacheEntry",
    # 异常
    "CacheError",
    "CacheBackendError",
]
