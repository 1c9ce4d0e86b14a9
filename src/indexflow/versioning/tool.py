"""版本化索引核心工具类."""

import logging
from datetime import datetime

from ..core.constants import ERROR_INDEX_SUFFIX, UNKNOWN_VERSION, VERSION_SEPARATOR
from ..core.utils import utc_now
from ..exceptions import MigrationStateError
from ..index_manager.models import ReindexResult
from ..index_manager.tool import IndexManager
from ..maintenance.models import MaintenanceResult
from ..maintenance.tool import MaintenanceCoordinator
from ..typing import NowFunc, ProgressCallback
from .models import IndexConfig, ReindexWorkItem
from .planner import ReindexPlanner
from .reindexer import Reindexer
from .resolver import VersionResolver

logger = logging.getLogger(__name__)


class VersionedIndex:
    """版本化索引（非时间分区）.

    客户端始终通过逻辑名称访问数据，逻辑名称是指向 ``{name}-v{version}``
    物理索引的别名。schema 版本升级时，通过重建索引把数据迁移到新版本的
    物理索引，再切换别名。

    Args:
        index_manager: IndexManager 实例
        config: 索引配置
        now_func: 自定义获取当前时间的函数，主要用于测试
        poll_interval: 重建索引任务的轮询间隔（秒）

    Examples:
        >>> index = VersionedIndex(manager, IndexConfig(name="employees", version=2))
        >>> index.rename_field_script(2, "user", "userId")
        >>> await index.configure()
        >>> await index.reindex()
        >>> await index.maintain()
    """

    time_partitioned = False

    def __init__(
        self,
        index_manager: IndexManager,
        config: IndexConfig,
        now_func: NowFunc | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        if index_manager is None:
            raise ValueError("index_manager 不能为 None")

        self.index_manager = index_manager
        self.config = config
        self._now_func = now_func or utc_now

        self.resolver = self._create_resolver()
        self.planner = ReindexPlanner(
            config.name,
            config.version,
            discard_indexes_on_reindex=config.discard_indexes_on_reindex,
            timestamp_field=config.timestamp_field,
        )
        self.reindexer = Reindexer(index_manager, poll_interval=poll_interval, now_func=self._now_func)
        self.maintenance = self._create_coordinator()

    def _create_resolver(self) -> VersionResolver:
        return VersionResolver(self.index_manager, self.config.name, self.config.version)

    def _create_coordinator(self) -> MaintenanceCoordinator:
        return MaintenanceCoordinator(self.index_manager, self.resolver, now_func=self._now_func)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def version(self) -> int:
        return self.config.version

    @property
    def versioned_name(self) -> str:
        return self.config.versioned_name

    # ==================== 迁移脚本 ====================

    def add_reindex_script(self, version: int, script: str) -> "VersionedIndex":
        """登记升级到 version 时执行的自定义 painless 脚本."""
        self.planner.add_script(version, script)
        return self

    def rename_field_script(
        self,
        version: int,
        original_name: str,
        current_name: str,
        remove_original: bool = True,
    ) -> "VersionedIndex":
        self.planner.rename_field(version, original_name, current_name, remove_original)
        return self

    def remove_field_script(self, version: int, field_name: str) -> "VersionedIndex":
        self.planner.remove_field(version, field_name)
        return self

    # ==================== 生命周期 ====================

    async def configure(self) -> None:
        """创建当前版本的物理索引.

        路由别名不存在时一并挂载；已存在时保持别名指向旧版本，
        由 reindex 完成迁移后再切换。
        """
        if await self.index_manager.index_exists(self.versioned_name):
            logger.debug(f"索引 '{self.versioned_name}' 已存在")
            return

        aliases = None if await self.index_manager.alias_exists(self.name) else [self.name]
        await self.index_manager.create_index_if_absent(
            self.versioned_name,
            mappings=self.config.mappings,
            settings=self.config.settings,
            aliases=aliases,
        )

    async def get_current_version(self) -> int:
        """获取当前版本（所有存活物理索引中的最小版本）."""
        return await self.resolver.get_current_version()

    def create_reindex_work_item(self, from_version: int) -> ReindexWorkItem:
        """构造从 from_version 迁移到当前配置版本的工作项."""
        return self.planner.plan(from_version)

    async def reindex(self, progress_callback: ProgressCallback | None = None) -> list[ReindexResult]:
        """把数据从当前版本迁移到配置版本.

        当前版本未知或已不低于配置版本时什么都不做。

        Args:
            progress_callback: 进度回调 ``async callback(百分比, 索引名称)``

        Returns:
            重建索引结果列表

        Raises:
            ReindexError: 重建索引失败，别名保持指向旧版本
            BackendUnavailableError: 搜索引擎调用失败
        """
        current = await self.get_current_version()
        if current < 0 or current >= self.version:
            logger.info(f"'{self.name}' 当前版本 {current}，无需重建索引")
            return []

        work_item = self.create_reindex_work_item(current)
        await self.index_manager.create_index_if_absent(
            work_item.destination_index,
            mappings=self.config.mappings,
            settings=self.config.settings,
        )
        return [await self.reindexer.reindex(work_item, progress_callback)]

    async def maintain(self, include_optional_tasks: bool = True) -> MaintenanceResult:
        """执行一次维护（版本收敛）."""
        return await self.maintenance.maintain(include_optional_tasks)

    async def delete(self) -> list[str]:
        """删除当前版本和配置版本的物理索引及对应的错误索引.

        Returns:
            实际删除的索引名称
        """
        try:
            current = await self.get_current_version()
        except MigrationStateError as e:
            logger.warning(f"无法解析 '{self.name}' 的当前版本: {str(e)}")
            current = UNKNOWN_VERSION

        names = [self.versioned_name, f"{self.versioned_name}{ERROR_INDEX_SUFFIX}"]
        if current >= 0 and current != self.version:
            current_name = f"{self.name}{VERSION_SEPARATOR}{current}"
            names.extend([current_name, f"{current_name}{ERROR_INDEX_SUFFIX}"])

        deleted = []
        for name in names:
            if await self.index_manager.delete_index(name):
                deleted.append(name)
        return deleted

    def resolve_index_names(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        indexes: list[str] | None = None,
    ) -> list[str]:
        """解析查询需要访问的索引名称.

        非时间分区索引总是访问逻辑名称本身，显式指定的索引名称优先。
        """
        if indexes:
            return list(dict.fromkeys(indexes))
        return [self.name]
