"""indexflow 异常定义模块."""


class IndexflowError(Exception):
    """indexflow 基础异常类."""

    pass


class IndexConfigError(IndexflowError):
    """索引配置异常.

    当索引名称、版本号、保留时间等配置参数不合法时抛出。
    """

    pass


class MigrationStateError(IndexflowError):
    """迁移状态异常.

    物理索引名称无法解析出版本号或日期时抛出，例如别名下所有索引名称均不合法。
    """

    pass


class IndexWindowExceededError(IndexflowError):
    """索引时间窗口已过期异常.

    调用方试图写入已超过保留期限的时间分桶时抛出。

    Attributes:
        expiration: 该分桶的过期时间
    """

    def __init__(self, message: str, expiration=None) -> None:
        super().__init__(message)
        self.expiration = expiration


class BucketResolutionError(IndexflowError):
    """分桶解析异常.

    无法从目标对象（日期、文档 ID、原始文档）推导出分桶日期时抛出。
    """

    pass
