"""索引管理器数据模型定义模块."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AliasActionType(str, Enum):
    """别名操作类型."""

    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class AliasAction:
    """批量别名更新中的单个操作.

    Attributes:
        action: 操作类型（添加或移除）
        index: 物理索引名称
        alias: 别名名称
    """

    action: AliasActionType
    index: str
    alias: str

    @classmethod
    def add(cls, index: str, alias: str) -> "AliasAction":
        return cls(AliasActionType.ADD, index, alias)

    @classmethod
    def remove(cls, index: str, alias: str) -> "AliasAction":
        return cls(AliasActionType.REMOVE, index, alias)

    def to_dict(self) -> dict[str, Any]:
        """转换为 _aliases API 的 action 格式."""
        return {self.action.value: {"index": self.index, "alias": self.alias}}


@dataclass
class PhysicalIndex:
    """枚举得到的物理索引.

    Attributes:
        name: 物理索引名称
        aliases: 当前指向该索引的别名列表
    """

    name: str
    aliases: list[str] = field(default_factory=list)


@dataclass
class ReindexResult:
    """重建索引结果数据类.

    Attributes:
        source: 源索引
        destination: 目标索引
        task_id: 任务 ID
        total: 需要处理的文档总数
        created: 新建文档数
        updated: 更新文档数
        deleted: 删除文档数
        version_conflicts: 版本冲突数
        took: 耗时（毫秒）
    """

    source: str
    destination: str
    task_id: str | None = None
    total: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    version_conflicts: int = 0
    took: int = 0

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.deleted + self.version_conflicts
