"""时间分区索引核心工具类."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from ..cache.clients import CacheClient
from ..cache.tool import AliasExistenceCache
from ..core.constants import VERSION_SEPARATOR
from ..core.utils import normalize_datetime, utc_now
from ..exceptions import IndexConfigError, IndexWindowExceededError
from ..index_manager.models import ReindexResult
from ..index_manager.tool import IndexManager
from ..maintenance.models import MaintenanceResult
from ..maintenance.tool import MaintenanceCoordinator
from ..typing import DocumentDateGetter, NowFunc, ProgressCallback
from ..versioning.models import IndexInfo
from ..versioning.resolver import VersionResolver
from ..versioning.tool import VersionedIndex
from .models import DateRange, IndexAliasAge, PartitionInterval, TimeSeriesConfig
from .partitioner import TimePartitioner
from .targets import as_bucket_target, resolve_target_date

logger = logging.getLogger(__name__)


class TimeSeriesIndex(VersionedIndex):
    """时间分区的版本化索引.

    数据按天或按月拆分到 ``{name}-v{version}-{日期}`` 物理索引，
    每个分桶有一个不带版本的分桶别名 ``{name}-{日期}``，写入流量访问分桶别名。
    逻辑名称和其他客户端别名按各自的时间窗口挂载到分桶索引上。

    分桶索引在第一次写入该分桶时按需创建（ensure_bucket_exists），
    不会预先创建。每个分桶独立记录自己的当前版本。

    Args:
        index_manager: IndexManager 实例
        config: 时间分区索引配置
        cache_client: 别名存在性缓存客户端，默认使用进程内缓存
        now_func: 自定义获取当前时间的函数，主要用于测试
        get_document_date: 从原始文档中提取日期的函数
        poll_interval: 重建索引任务的轮询间隔（秒）

    Examples:
        >>> index = DailyIndex(manager, TimeSeriesConfig(name="events", max_index_age="30d"))
        >>> index.add_alias("events-today", "1d")
        >>> await index.ensure_bucket_exists(datetime(2024, 1, 5))
        'events-2024.01.05'
    """

    time_partitioned = True

    def __init__(
        self,
        index_manager: IndexManager,
        config: TimeSeriesConfig,
        cache_client: CacheClient | None = None,
        now_func: NowFunc | None = None,
        get_document_date: DocumentDateGetter | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        if not isinstance(config, TimeSeriesConfig):
            raise IndexConfigError("时间分区索引需要 TimeSeriesConfig 配置")

        self._now_func = now_func or utc_now
        aliases = [IndexAliasAge(config.name)]
        aliases.extend(alias for alias in config.aliases if alias.name != config.name)
        self.partitioner = TimePartitioner(
            config.name,
            config.version,
            interval=config.interval,
            date_format=config.effective_date_format,
            max_index_age=config.max_index_age,
            aliases=aliases,
            now_func=self._now_func,
        )
        self.alias_cache = AliasExistenceCache(cache_client, now_func=self._now_func)
        self._get_document_date = get_document_date

        super().__init__(index_manager, config, now_func=self._now_func, poll_interval=poll_interval)

    def _create_resolver(self) -> VersionResolver:
        return VersionResolver(
            self.index_manager,
            self.config.name,
            self.config.version,
            time_partitioned=True,
            date_parser=self.partitioner.date_from_physical_name,
        )

    def _create_coordinator(self) -> MaintenanceCoordinator:
        return MaintenanceCoordinator(
            self.index_manager,
            self.resolver,
            partitioner=self.partitioner,
            alias_cache=self.alias_cache,
            now_func=self._now_func,
        )

    @property
    def aliases(self) -> list[IndexAliasAge]:
        return list(self.partitioner.aliases)

    def add_alias(self, name: str, max_age: timedelta | str | None = None) -> "TimeSeriesIndex":
        """添加客户端别名.

        Args:
            name: 别名名称
            max_age: 别名覆盖的时间跨度（timedelta 或 ES 时长字符串），None 表示无上限
        """
        self.partitioner.add_alias(IndexAliasAge(name, max_age))
        return self

    def _now(self) -> datetime:
        return normalize_datetime(self._now_func())

    def _target_date(self, target: Any) -> datetime:
        return resolve_target_date(as_bucket_target(target), self._get_document_date)

    # ==================== 分桶 ====================

    def resolve_bucket_for(self, target: Any) -> str:
        """计算目标（日期、ObjectId 或文档）所属分桶的别名."""
        return self.partitioner.alias_for(self._target_date(target))

    async def ensure_bucket_exists(self, target: Any) -> str:
        """确保目标所属的分桶索引存在.

        1. 分桶已过期时抛出 IndexWindowExceededError
        2. 缓存确认分桶别名存在时直接返回
        3. 向搜索引擎确认别名存在，存在则写入缓存并返回
        4. 创建当前版本的分桶索引，同时挂载分桶别名和时间窗口覆盖该分桶的客户端别名；
           索引已被并发创建时视为成功
        5. 写入缓存，过期时间与分桶过期时间一致

        Args:
            target: 日期、ObjectId 字符串、文档或分桶目标

        Returns:
            分桶别名

        Raises:
            IndexWindowExceededError: 分桶已超过保留时间
            BucketResolutionError: 无法从目标推导出日期
            BackendUnavailableError: 搜索引擎调用失败
        """
        bucket_date = self._target_date(target)
        expiration = self.partitioner.expiration_for(bucket_date)
        if self._now() > expiration:
            raise IndexWindowExceededError(
                f"分桶 '{self.partitioner.alias_for(bucket_date)}' 已超过最大保留时间: "
                f"{expiration.isoformat()}",
                expiration=expiration,
            )

        bucket_alias = self.partitioner.alias_for(bucket_date)
        if await self.alias_cache.exists(bucket_alias):
            return bucket_alias

        if await self.index_manager.alias_exists(bucket_alias):
            await self.alias_cache.remember(bucket_alias, expiration)
            return bucket_alias

        index_name = self.partitioner.physical_index_for(bucket_date)
        aliases = [bucket_alias]
        aliases.extend(alias.name for alias in self.partitioner.aliases_for(bucket_date))
        created = await self.index_manager.create_index_if_absent(
            index_name,
            mappings=self.config.mappings,
            settings=self.config.settings,
            aliases=aliases,
        )
        if not created:
            logger.info(f"分桶索引 '{index_name}' 已被并发创建")

        await self.alias_cache.remember(bucket_alias, expiration)
        return bucket_alias

    # ==================== 版本 ====================

    async def get_indices(self, version: int | None = None) -> list[IndexInfo]:
        """枚举分桶索引，并填充每个分桶的当前版本."""
        indices = await self.resolver.get_indices(version)
        return await self.resolver.stamp_bucket_versions(indices, self.partitioner.alias_for)

    async def get_current_version(self) -> int:
        """获取当前版本.

        过期分桶不参与计算；每个分桶贡献其分桶别名解析出的版本，
        未解析出时使用索引自身的版本。
        """
        indices = await self.get_indices()
        versions = [
            info.current_version if info.current_version >= 0 else info.version
            for info in indices
            if not self.partitioner.is_expired(info.date)
        ]
        if not versions:
            return self.version
        return min(versions)

    async def reindex(self, progress_callback: ProgressCallback | None = None) -> list[ReindexResult]:
        """把仍处于旧版本的未过期分桶迁移到配置版本.

        每个分桶独立迁移，进度回调会对每个分桶从 0 报告到 100。
        全部分桶迁移完成后执行一次别名重新分配。

        Args:
            progress_callback: 进度回调 ``async callback(百分比, 索引名称)``

        Returns:
            各分桶的重建索引结果

        Raises:
            ReindexError: 某个分桶重建索引失败，已完成的分桶保持迁移后的状态
            BackendUnavailableError: 搜索引擎调用失败
        """
        current = await self.get_current_version()
        if current < 0 or current >= self.version:
            logger.info(f"'{self.name}' 当前版本 {current}，无需重建索引")
            return []

        results: list[ReindexResult] = []
        for info in await self.get_indices(current):
            if self.partitioner.is_expired(info.date):
                continue
            if info.current_version > self.version:
                continue

            bucket_alias = self.partitioner.alias_for(info.date)
            work_item = self.planner.plan(
                info.version,
                source_index=info.physical_name,
                destination_index=self.partitioner.physical_index_for(info.date, self.version),
                routing_alias=bucket_alias,
            )
            await self.index_manager.create_index_if_absent(
                work_item.destination_index,
                mappings=self.config.mappings,
                settings=self.config.settings,
            )
            results.append(await self.reindexer.reindex(work_item, progress_callback))

            if work_item.delete_source_on_success:
                await self.alias_cache.forget(bucket_alias)

        if results:
            await self.maintain(include_optional_tasks=False)
        return results

    async def maintain(self, include_optional_tasks: bool = True) -> MaintenanceResult:
        """执行一次维护（别名重新分配、过期索引清理）."""
        return await self.maintenance.maintain(
            include_optional_tasks,
            discard_expired_indexes=self.config.discard_expired_indexes,
        )

    async def configure(self) -> None:
        """分桶索引按需创建，这里不需要做任何事."""
        logger.debug(f"'{self.name}' 的分桶索引按需创建，跳过 configure")

    async def delete(self) -> list[str]:
        """删除全部版本的分桶索引（包括错误索引）并清空别名缓存.

        先枚举再逐个删除，集群开启 ``action.destructive_requires_name`` 时同样可用。

        Returns:
            实际删除的索引名称
        """
        physical = await self.index_manager.list_indices(f"{self.name}{VERSION_SEPARATOR}*")
        deleted = []
        for index in physical:
            if await self.index_manager.delete_index(index.name):
                deleted.append(index.name)
        await self.alias_cache.forget_all()
        return deleted

    def resolve_index_names(
        self,
        start: datetime | DateRange | None = None,
        end: datetime | None = None,
        indexes: list[str] | None = None,
    ) -> list[str]:
        """解析查询需要访问的索引名称.

        显式指定的索引与日期范围覆盖的分桶别名取并集；都为空时访问逻辑名称
        （即全部未过期的数据）。

        Args:
            start: 开始时间，也可以直接传入 DateRange（此时忽略 end）
            end: 结束时间
            indexes: 显式指定的索引名称

        Returns:
            索引名称列表
        """
        if isinstance(start, DateRange):
            start, end = start.start, start.end
        names: dict[str, None] = dict.fromkeys(indexes or [])
        if start is not None or end is not None:
            names.update(dict.fromkeys(self.partitioner.index_names_for_range(start, end)))
        return list(names) or [self.name]


class DailyIndex(TimeSeriesIndex):
    """按天分区的版本化索引."""

    interval = PartitionInterval.DAY

    def __init__(self, index_manager: IndexManager, config: TimeSeriesConfig, **kwargs) -> None:
        if isinstance(config, TimeSeriesConfig) and config.interval is not self.interval:
            config = replace(config, interval=self.interval)
        super().__init__(index_manager, config, **kwargs)


class MonthlyIndex(TimeSeriesIndex):
    """按月分区的版本化索引."""

    interval = PartitionInterval.MONTH

    def __init__(self, index_manager: IndexManager, config: TimeSeriesConfig, **kwargs) -> None:
        if isinstance(config, TimeSeriesConfig) and config.interval is not self.interval:
            config = replace(config, interval=self.interval)
        super().__init__(index_manager, config, **kwargs)
