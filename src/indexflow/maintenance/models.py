"""维护任务数据模型定义模块."""

from dataclasses import dataclass, field

from ..index_manager.models import AliasAction


@dataclass
class MaintenanceResult:
    """单次维护的执行结果.

    Attributes:
        alias_actions: 已提交的别名添加/移除操作
        deleted_indices: 已删除的过期索引
        failed_indices: 删除失败的过期索引（下次维护时重试）
    """

    alias_actions: list[AliasAction] = field(default_factory=list)
    deleted_indices: list[str] = field(default_factory=list)
    failed_indices: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.alias_actions or self.deleted_indices)

    def __repr__(self) -> str:
        return (
            f"MaintenanceResult(alias_actions={len(self.alias_actions)}, "
            f"deleted={self.deleted_indices}, failed={self.failed_indices})"
        )
