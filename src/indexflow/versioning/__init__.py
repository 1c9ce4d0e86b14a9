"""版本化索引模块.

主要组件:
    - VersionedIndex: 非时间分区的版本化索引
    - VersionResolver: 当前版本解析
    - ReindexPlanner: 迁移脚本登记与合并
    - Reindexer: 重建索引执行与别名切换

使用示例:
    from indexflow.index_manager import IndexManager
    from indexflow.versioning import IndexConfig, VersionedIndex

    index = VersionedIndex(IndexManager(es_client), IndexConfig(name="employees", version=2))
    index.rename_field_script(2, "user", "userId")
    await index.configure()
    await index.reindex()
"""

from .models import IndexConfig, IndexInfo, ReindexScript, ReindexWorkItem
from .planner import ReindexPlanner
from .reindexer import Reindexer
from .resolver import VersionResolver
from .tool import VersionedIndex

__all__ = [
    # 核心类
    "VersionedIndex",
    "VersionResolver",
    "ReindexPlanner",
    "Reindexer",
    # 数据模型
    "IndexConfig",
    "IndexInfo",
    "ReindexScript",
    "ReindexWorkItem",
]
