"""缓存模块异常定义模块."""

from ..exceptions import IndexflowError


class CacheError(IndexflowError):
    """缓存基础异常类."""

    pass


class CacheBackendError(CacheError):
    """缓存后端不可用异常.

    分布式缓存（如 Redis）读写失败时抛出。别名存在性缓存会将其视为缓存未命中，
    不影响正确性。
    """

    pass
