"""索引管理器模块.

该模块是与搜索引擎交互的边界层，提供：
- 索引创建（含 "不存在才创建" 语义）与删除
- 别名存在性检查、别名解析与批量原子更新
- 带通配符的物理索引枚举（同时返回别名归属）
- 提交 _reindex 任务并轮询进度

示例用法:
    >>> from elasticsearch import AsyncElasticsearch
    >>> from indexflow.index_manager import IndexManager
    >>> manager = IndexManager(AsyncElasticsearch("http://localhost:9200"))
    >>> await manager.create_index_if_absent("events-v1", aliases=["events"])
    >>> await manager.get_alias("events")
    ['events-v1']
"""

from .exceptions import (
    BackendUnavailableError,
    IndexAlreadyExistsError,
    IndexManagerError,
    ReindexError,
)
from .models import AliasAction, AliasActionType, PhysicalIndex, ReindexResult
from .tool import IndexManager

__all__ = [
    # 核心类
    "IndexManager",
    # 数据模型
    "AliasAction",
    "AliasActionType",
    "PhysicalIndex",
    "ReindexResult",
    # 异常类
    "IndexManagerError",
    "BackendUnavailableError",
    "IndexAlreadyExistsError",
    "ReindexError",
]
