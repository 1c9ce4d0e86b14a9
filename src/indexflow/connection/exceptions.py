"""ES 客户端工厂异常定义模块."""

from ..exceptions import IndexflowError


class ESClientFactoryError(IndexflowError):
    """客户端工厂基础异常类."""

    pass


class ConnectionConfigError(ESClientFactoryError):
    """连接配置校验异常.

    当 hosts 为空、connections_per_node 小于 1、认证方式冲突等配置不合法时抛出。
    """

    pass


class ClusterNotFoundError(ESClientFactoryError):
    """请求的集群角色在工厂中不存在时抛出."""

    pass
