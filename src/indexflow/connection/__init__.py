"""ES 客户端工厂模块 - 统一管理 AsyncElasticsearch 客户端的创建和生命周期.

主要组件:
    - ESClientFactory: 客户端工厂，支持读写分离和异步上下文管理
    - ClusterConfig: 集群配置模型
    - ConnectionConfig: 连接池配置模型
    - ClusterRole: 集群角色枚举

使用示例:
    from indexflow.connection import ClusterConfig, ESClientFactory

    async with ESClientFactory([ClusterConfig(hosts=["http://localhost:9200"])]) as factory:
        manager = factory.create_index_manager()
"""

from .exceptions import ClusterNotFoundError, ConnectionConfigError, ESClientFactoryError
from .models import ClusterConfig, ClusterRole, ConnectionConfig
from .tool import ESClientFactory

__all__ = [
    # 工厂
    "ESClientFactory",
    # 模型
    "ClusterConfig",
    "ConnectionConfig",
    "ClusterRole",
    # 异常
    "ESClientFactoryError",
    "ConnectionConfigError",
    "ClusterNotFoundError",
]
