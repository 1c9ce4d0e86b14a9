"""时间分区索引模块.

主要组件:
    - DailyIndex / MonthlyIndex: 按天 / 按月分区的版本化索引
    - TimePartitioner: 分桶名称、日期解析、过期时间计算
    - DateTarget / IdentityTarget / RawTarget: 分桶目标

使用示例:
    from indexflow.index_manager import IndexManager
    from indexflow.time_series import DailyIndex, IndexAliasAge, TimeSeriesConfig

    config = TimeSeriesConfig(
        name="events",
        version=2,
        max_index_age="90d",
        aliases=[IndexAliasAge("events-last-week", "7d")],
    )
    events = DailyIndex(IndexManager(es_client), config)
    alias = await events.ensure_bucket_exists(document)
"""

from .models import DateRange, IndexAliasAge, PartitionInterval, TimeSeriesConfig
from .partitioner import TimePartitioner
from .targets import (
    BucketTarget,
    DateTarget,
    IdentityTarget,
    RawTarget,
    as_bucket_target,
    default_document_date,
    resolve_target_date,
)
from .tool import DailyIndex, MonthlyIndex, TimeSeriesIndex

__all__ = [
    # 核心类
    "TimeSeriesIndex",
    "DailyIndex",
    "MonthlyIndex",
    "TimePartitioner",
    # 数据模型
    "TimeSeriesConfig",
    "IndexAliasAge",
    "PartitionInterval",
    "DateRange",
    # 分桶目标
    "BucketTarget",
    "DateTarget",
    "IdentityTarget",
    "RawTarget",
    "as_bucket_target",
    "default_document_date",
    "resolve_target_date",
]
