"""indexflow - 版本化、按时间分区的 Elasticsearch 索引生命周期管理.

客户端始终通过一个稳定的逻辑名称访问数据，indexflow 负责把逻辑名称通过别名
映射到带版本号（以及日期）的物理索引，并在 schema 版本升级时安全地迁移数据。

主要功能:
    - VersionedIndex: 版本化索引，按版本重建索引并切换别名
    - DailyIndex / MonthlyIndex: 按天 / 按月分区的版本化索引，分桶按需创建、到期删除
    - MaintenanceCoordinator: 定期维护，重新分配别名、清理过期索引
    - IndexManager: AsyncElasticsearch 的索引 / 别名 / 重建索引封装
    - ESClientFactory: AsyncElasticsearch 客户端工厂

使用示例:
    from elasticsearch import AsyncElasticsearch
    from indexflow import DailyIndex, IndexManager, TimeSeriesConfig

    manager = IndexManager(AsyncElasticsearch("http://localhost:9200"))
    events = DailyIndex(manager, TimeSeriesConfig(name="events", version=2, max_index_age="30d"))
    events.rename_field_script(2, "user", "userId")

    alias = await events.ensure_bucket_exists(document)
    await events.reindex()
    await events.maintain()
"""

__version__ = "0.1.0"

# 导出缓存
from indexflow.cache import AliasExistenceCache, InMemoryCacheClient, RedisCacheClient

# 导出连接管理
from indexflow.connection import ClusterConfig, ClusterRole, ConnectionConfig, ESClientFactory

# 导出异常
from indexflow.exceptions import (
    BucketResolutionError,
    IndexConfigError,
    IndexflowError,
    IndexWindowExceededError,
    MigrationStateError,
)

# 导出索引管理器
from indexflow.index_manager import (
    BackendUnavailableError,
    IndexAlreadyExistsError,
    IndexManager,
    ReindexError,
)

# 导出维护
from indexflow.maintenance import MaintenanceCoordinator, MaintenanceResult

# 导出时间分区索引
from indexflow.time_series import (
    DailyIndex,
    IndexAliasAge,
    MonthlyIndex,
    PartitionInterval,
    TimeSeriesConfig,
    TimeSeriesIndex,
)

# 导出版本化索引
from indexflow.versioning import IndexConfig, ReindexWorkItem, VersionedIndex

__all__ = [
    # 版本
    "__version__",
    # 索引
    "VersionedIndex",
    "TimeSeriesIndex",
    "DailyIndex",
    "MonthlyIndex",
    # 配置
    "IndexConfig",
    "TimeSeriesConfig",
    "IndexAliasAge",
    "PartitionInterval",
    "ReindexWorkItem",
    # 组件
    "IndexManager",
    "MaintenanceCoordinator",
    "MaintenanceResult",
    "AliasExistenceCache",
    "InMemoryCacheClient",
    "RedisCacheClient",
    # 连接
    "ESClientFactory",
    "ClusterConfig",
    "ConnectionConfig",
    "ClusterRole",
    # 异常
    "IndexflowError",
    "IndexConfigError",
    "MigrationStateError",
    "IndexWindowExceededError",
    "BucketResolutionError",
    "BackendUnavailableError",
    "IndexAlreadyExistsError",
    "ReindexError",
]
