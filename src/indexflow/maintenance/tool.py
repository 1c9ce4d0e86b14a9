"""索引维护协调器."""

from __future__ import annotations

import logging
from datetime import datetime
from itertools import groupby
from typing import TYPE_CHECKING

from ..cache.tool import AliasExistenceCache
from ..core.constants import VERSION_SEPARATOR
from ..core.utils import normalize_datetime, utc_now
from ..exceptions import MigrationStateError
from ..index_manager.exceptions import BackendUnavailableError, IndexManagerError
from ..index_manager.models import AliasAction
from ..index_manager.tool import IndexManager
from ..typing import NowFunc
from .models import MaintenanceResult

if TYPE_CHECKING:
    from ..time_series.partitioner import TimePartitioner
    from ..versioning.models import IndexInfo
    from ..versioning.resolver import VersionResolver

logger = logging.getLogger(__name__)


class MaintenanceCoordinator:
    """索引维护协调器.

    由外部定时触发，每次维护把别名状态收敛到期望状态：

    - 非时间分区索引: 路由别名不存在时，指向当前版本的物理索引
    - 时间分区索引: 按分桶重新分配别名，删除超过保留时间的分桶索引

    单个分桶/索引的失败只记录日志，不影响其余索引；
    搜索引擎不可达时直接抛出，终止本次维护。

    Args:
        index_manager: IndexManager 实例
        resolver: 版本解析器
        partitioner: 时间分桶计算器，None 表示非时间分区索引
        alias_cache: 别名存在性缓存
        now_func: 自定义获取当前时间的函数，主要用于测试
    """

    def __init__(
        self,
        index_manager: IndexManager,
        resolver: VersionResolver,
        partitioner: TimePartitioner | None = None,
        alias_cache: AliasExistenceCache | None = None,
        now_func: NowFunc | None = None,
    ) -> None:
        self.index_manager = index_manager
        self.resolver = resolver
        self.partitioner = partitioner
        self._now_func = now_func or utc_now
        self.alias_cache = alias_cache or AliasExistenceCache(now_func=self._now_func)

    def _now(self) -> datetime:
        return normalize_datetime(self._now_func())

    async def create_alias(self, index_name: str, alias_name: str) -> bool:
        """确保别名存在，不存在时指向 index_name.

        并发创建同一别名时，失败方确认别名已存在后视为成功。

        Returns:
            本次调用是否实际创建了别名

        Raises:
            IndexManagerError: 创建失败且别名仍不存在
            BackendUnavailableError: 搜索引擎不可达
        """
        if await self.index_manager.alias_exists(alias_name):
            return False

        try:
            if await self.index_manager.put_alias(index_name, alias_name):
                logger.info(f"已创建别名 '{alias_name}' -> '{index_name}'")
                return True
        except BackendUnavailableError as e:
            if e.unreachable:
                raise
            logger.warning(f"创建别名 '{alias_name}' 失败: {str(e)}")

        if await self.index_manager.alias_exists(alias_name):
            logger.info(f"别名 '{alias_name}' 已被并发创建")
            return False

        raise IndexManagerError(f"为索引 '{index_name}' 创建别名 '{alias_name}' 失败")

    async def converge_version(self) -> MaintenanceResult:
        """非时间分区索引的版本收敛.

        路由别名已存在时什么都不做；否则按枚举结果解析当前版本，
        并把路由别名指向该版本的物理索引。
        """
        alias = self.resolver.name
        if await self.index_manager.alias_exists(alias):
            return MaintenanceResult()

        try:
            version = await self.resolver.get_current_version()
        except MigrationStateError as e:
            logger.warning(f"无法解析 '{alias}' 的当前版本，使用配置版本: {str(e)}")
            version = self.resolver.version

        index_name = f"{alias}{VERSION_SEPARATOR}{version}"
        if not await self.index_manager.index_exists(index_name):
            logger.warning(f"索引 '{index_name}' 不存在，跳过别名 '{alias}' 的收敛")
            return MaintenanceResult()

        if await self.create_alias(index_name, alias):
            return MaintenanceResult(alias_actions=[AliasAction.add(index_name, alias)])
        return MaintenanceResult()

    async def update_aliases(self, indices: list[IndexInfo]) -> list[AliasAction]:
        """按分桶重新分配别名.

        每个分桶内按版本升序，最老版本的索引是当前版本的持有者：

        - 分桶未过期且尚无当前版本时，为最老版本的索引建立分桶别名
        - 分桶已过期或索引版本不是当前版本时，移除它的全部客户端别名
        - 否则按别名的时间窗口添加或移除

        只提交与现有别名状态不同的操作，因此连续两次维护时第二次不会产生任何操作。

        Args:
            indices: 已填充分桶当前版本的物理索引列表

        Returns:
            已提交的别名操作；没有变化或返回 404 时为空列表

        Raises:
            BackendUnavailableError: 批量更新别名失败（404 除外）
        """
        if not indices or self.partitioner is None:
            return []

        partitioner = self.partitioner
        now = self._now()
        actions: list[AliasAction] = []

        ordered = sorted(indices, key=lambda info: (info.date, info.version))
        for bucket_date, members in groupby(ordered, key=lambda info: info.date):
            group = list(members)
            expiration = partitioner.expiration_for(bucket_date)
            # 到达过期时间即摘除客户端别名；删除索引用 is_expired（严格大于）
            expired = now >= expiration

            if not expired:
                oldest = group[0]
                if oldest.current_version < 0:
                    bucket_alias = partitioner.alias_for(bucket_date)
                    try:
                        await self.create_alias(oldest.physical_name, bucket_alias)
                        await self.alias_cache.remember(bucket_alias, expiration)
                    except IndexManagerError as e:
                        if isinstance(e, BackendUnavailableError) and e.unreachable:
                            raise
                        logger.error(
                            f"设置分桶 '{bucket_alias}' 的当前版本失败，"
                            f"使用最老版本 {oldest.version}: {str(e)}"
                        )
                    for info in group:
                        info.current_version = oldest.version

            for info in group:
                existing = set(info.aliases)
                if expired or info.version != info.current_version:
                    actions.extend(
                        AliasAction.remove(info.physical_name, alias.name)
                        for alias in partitioner.aliases
                        if alias.name in existing
                    )
                    continue

                for alias in partitioner.aliases:
                    wanted = partitioner.should_create_alias(bucket_date, alias)
                    if wanted and alias.name not in existing:
                        actions.append(AliasAction.add(info.physical_name, alias.name))
                    elif not wanted and alias.name in existing:
                        actions.append(AliasAction.remove(info.physical_name, alias.name))

        if not actions:
            logger.debug(f"'{self.resolver.name}' 的别名已是最新状态")
            return []

        if not await self.index_manager.update_aliases(actions):
            return []
        return actions

    async def delete_expired_indices(
        self, indices: list[IndexInfo]
    ) -> tuple[list[str], list[str]]:
        """删除超过保留时间的分桶索引（尽力而为）.

        Returns:
            (已删除的索引, 删除失败的索引)

        Raises:
            BackendUnavailableError: 搜索引擎不可达
        """
        deleted: list[str] = []
        failed: list[str] = []
        if not indices or self.partitioner is None or self.partitioner.max_index_age is None:
            return deleted, failed

        now = self._now()
        for info in indices:
            if not self.partitioner.is_expired(info.date):
                continue

            try:
                removed = await self.index_manager.delete_index(info.physical_name)
            except BackendUnavailableError as e:
                if e.unreachable:
                    raise
                logger.error(f"删除过期索引 '{info.physical_name}' 失败: {str(e)}")
                failed.append(info.physical_name)
                continue

            await self.alias_cache.forget(self.partitioner.alias_for(info.date))
            if removed:
                logger.info(f"已删除过期索引 '{info.physical_name}'，年龄 {now - info.date}")
                deleted.append(info.physical_name)

        return deleted, failed

    async def maintain(
        self,
        include_optional_tasks: bool = True,
        discard_expired_indexes: bool = True,
    ) -> MaintenanceResult:
        """执行一次维护.

        Args:
            include_optional_tasks: 是否执行可选任务（删除过期索引）
            discard_expired_indexes: 是否允许删除过期索引

        Returns:
            维护结果
        """
        if self.partitioner is None:
            return await self.converge_version()

        indices = await self.resolver.get_indices()
        if not indices:
            return MaintenanceResult()

        await self.resolver.stamp_bucket_versions(indices, self.partitioner.alias_for)
        result = MaintenanceResult(alias_actions=await self.update_aliases(indices))

        if include_optional_tasks and discard_expired_indexes:
            result.deleted_indices, result.failed_indices = await self.delete_expired_indices(
                indices
            )

        logger.info(f"'{self.resolver.name}' 维护完成: {result!r}")
        return result
