"""重建索引规划模块.

负责按版本登记迁移脚本，并把跨越多个版本的脚本合并为一个按版本顺序执行的
painless 脚本。
"""

import logging

from ..core.constants import VERSION_SEPARATOR
from ..exceptions import IndexConfigError
from .models import ReindexScript, ReindexWorkItem

logger = logging.getLogger(__name__)


def _quote(field_name: str) -> str:
    """将字段名转义为 painless 单引号字符串字面量."""
    escaped = field_name.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class ReindexPlanner:
    """重建索引规划器.

    迁移脚本只能追加，类似只向前的 schema 迁移。从版本 ``from_version`` 迁移到
    目标版本时，收集 ``from_version < 脚本版本 <= 目标版本`` 的全部脚本：

    - 0 个：纯拷贝，不附带脚本
    - 1 个：原样使用该脚本
    - 多个：每个脚本包装为 ``f000``、``f001`` ... 函数，再按相同顺序依次调用，
      后面的脚本可以依赖前面脚本已经重命名/删除的字段

    Args:
        name: 逻辑索引名称
        version: 目标版本
        discard_indexes_on_reindex: 成功后是否删除旧索引
        timestamp_field: 增量同步使用的时间戳字段

    Examples:
        >>> planner = ReindexPlanner("events", version=3)
        >>> planner.remove_field(2, "temp").rename_field(3, "user", "userId")
        >>> item = planner.plan(from_version=1)
        >>> item.source_index, item.destination_index
        ('events-v1', 'events-v3')
    """

    def __init__(
        self,
        name: str,
        version: int,
        discard_indexes_on_reindex: bool = True,
        timestamp_field: str | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.discard_indexes_on_reindex = discard_indexes_on_reindex
        self.timestamp_field = timestamp_field
        self._scripts: list[ReindexScript] = []

    @property
    def scripts(self) -> tuple[ReindexScript, ...]:
        return tuple(self._scripts)

    def add_script(self, version: int, source: str) -> "ReindexPlanner":
        """登记自定义迁移脚本.

        Args:
            version: 引入该脚本的版本号
            source: painless 脚本，通过 ``ctx._source`` 访问文档

        Returns:
            自身实例，支持链式调用

        Raises:
            IndexConfigError: 版本号超出 1 到目标版本的范围或脚本为空时抛出
        """
        if version < 1 or version > self.version:
            raise IndexConfigError(
                f"脚本版本必须在 1 到 {self.version} 之间，当前值: {version}"
            )
        if not source or not source.strip():
            raise IndexConfigError("脚本内容不能为空")

        self._scripts.append(ReindexScript(version=version, source=source.strip()))
        logger.debug(f"登记迁移脚本: {self.name} v{version}")
        return self

    def rename_field(
        self,
        version: int,
        original_name: str,
        current_name: str,
        remove_original: bool = True,
    ) -> "ReindexPlanner":
        """登记字段重命名脚本.

        只有原字段存在时才拷贝，对已经迁移过的文档重复执行不会产生变化。
        """
        original = _quote(original_name)
        statements = f"ctx._source[{_quote(current_name)}] = ctx._source[{original}];"
        if remove_original:
            statements += f" ctx._source.remove({original});"
        return self.add_script(
            version, f"if (ctx._source.containsKey({original})) {{ {statements} }}"
        )

    def remove_field(self, version: int, field_name: str) -> "ReindexPlanner":
        """登记字段删除脚本（字段存在时才删除）."""
        quoted = _quote(field_name)
        return self.add_script(
            version,
            f"if (ctx._source.containsKey({quoted})) {{ ctx._source.remove({quoted}); }}",
        )

    def get_scripts(self, from_version: int) -> list[ReindexScript]:
        """返回从 from_version 迁移到目标版本需要执行的脚本（按版本升序）."""
        scripts = [s for s in self._scripts if from_version < s.version <= self.version]
        # sorted 是稳定排序，同一版本内保持登记顺序
        return sorted(scripts, key=lambda s: s.version)

    def build_script(self, from_version: int) -> str | None:
        """合并迁移脚本.

        Returns:
            合并后的 painless 脚本；没有需要执行的脚本时返回 None
        """
        scripts = self.get_scripts(from_version)
        if not scripts:
            return None
        if len(scripts) == 1:
            return scripts[0].source

        definitions = "".join(
            f"void f{i:03d}(def ctx) {{ {script.source} }}\n"
            for i, script in enumerate(scripts)
        )
        calls = "".join(f"f{i:03d}(ctx); " for i in range(len(scripts)))
        return definitions + calls

    def plan(
        self,
        from_version: int,
        source_index: str | None = None,
        destination_index: str | None = None,
        routing_alias: str | None = None,
    ) -> ReindexWorkItem:
        """构造重建索引工作项.

        Args:
            from_version: 当前版本（迁移起点）
            source_index: 源索引，默认 ``{name}-v{from_version}``
            destination_index: 目标索引，默认 ``{name}-v{version}``
            routing_alias: 完成后切换的别名，默认为逻辑名称

        Returns:
            重建索引工作项
        """
        source = source_index or f"{self.name}{VERSION_SEPARATOR}{from_version}"
        destination = destination_index or f"{self.name}{VERSION_SEPARATOR}{self.version}"
        return ReindexWorkItem(
            source_index=source,
            destination_index=destination,
            routing_alias=routing_alias or self.name,
            script=self.build_script(from_version),
            timestamp_field=self.timestamp_field,
            delete_source_on_success=self.discard_indexes_on_reindex and source != destination,
        )
