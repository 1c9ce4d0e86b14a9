"""当前版本解析模块."""

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.constants import MAX_DATETIME, UNKNOWN_VERSION, VERSION_SEPARATOR
from ..core.utils import parse_index_version
from ..exceptions import MigrationStateError
from ..index_manager.tool import IndexManager
from .models import IndexInfo

logger = logging.getLogger(__name__)


def _unbounded_date(index_name: str) -> datetime:
    return MAX_DATETIME


class VersionResolver:
    """逻辑索引当前版本解析器.

    当前版本是所有存活物理索引中的 **最小** 版本：尚未迁移的旧数据必须继续
    对外提供服务，直到被重建索引。

    解析顺序：
    1. 查询与逻辑名称同名的别名，取其指向的物理索引中的最小版本
    2. 别名不存在时枚举 ``{name}-v*``，没有任何索引则返回配置的版本（全新部署）
    3. 否则取枚举结果中的最小版本

    名称无法解析的索引不参与最小值计算；全部无法解析时抛出 MigrationStateError。
    搜索引擎调用失败（BackendUnavailableError）直接向上传播，
    不会被当成 "还没有索引"。

    Args:
        index_manager: IndexManager 实例
        name: 逻辑索引名称
        version: 配置的当前版本
        time_partitioned: 是否为时间分区索引（枚举模式追加 ``-*``）
        date_parser: 从物理索引名称解析分桶日期的函数
    """

    def __init__(
        self,
        index_manager: IndexManager,
        name: str,
        version: int,
        time_partitioned: bool = False,
        date_parser: Callable[[str], datetime] | None = None,
    ) -> None:
        self.index_manager = index_manager
        self.name = name
        self.version = version
        self.time_partitioned = time_partitioned
        self._date_parser = date_parser or _unbounded_date

    def parse_version(self, physical_name: str) -> int:
        return parse_index_version(self.name, physical_name)

    def index_pattern(self, version: int | None = None) -> str:
        """返回枚举物理索引使用的通配符模式.

        Examples:
            >>> resolver.index_pattern()
            'events-v*'
            >>> resolver.index_pattern(2)  # time_partitioned=True
            'events-v2-*'
        """
        pattern = f"{self.name}{VERSION_SEPARATOR}"
        pattern += "*" if version is None else str(version)
        if self.time_partitioned:
            pattern += "-*"
        return pattern

    def _min_known_version(self, names: list[str], source: str) -> int:
        versions: list[int] = []
        for name in names:
            version = self.parse_version(name)
            if version == UNKNOWN_VERSION:
                logger.warning(f"无法从索引名称 '{name}' 解析版本号，已忽略")
                continue
            versions.append(version)

        if not versions:
            raise MigrationStateError(f"{source} 下的索引名称均无法解析版本号: {names}")
        return min(versions)

    async def get_version_from_alias(self, alias: str) -> int:
        """获取别名指向的物理索引中的最小版本.

        Returns:
            最小版本；别名不存在或未指向任何索引时返回 UNKNOWN_VERSION

        Raises:
            MigrationStateError: 别名下所有索引名称都无法解析版本号
            BackendUnavailableError: 搜索引擎调用失败
        """
        names = await self.index_manager.get_alias(alias)
        if not names:
            return UNKNOWN_VERSION
        return self._min_known_version(names, f"别名 '{alias}'")

    async def get_indices(self, version: int | None = None) -> list[IndexInfo]:
        """枚举物理索引.

        名称无法解析版本号的索引被排除；时间分区索引还会排除无法解析日期的索引
        （例如 ``-error`` 后缀的索引）。

        Args:
            version: 只返回指定版本的索引，默认返回全部

        Returns:
            物理索引信息列表，按日期、版本排序
        """
        physical = await self.index_manager.list_indices(self.index_pattern(version))

        indices: list[IndexInfo] = []
        for index in physical:
            parsed = self.parse_version(index.name)
            if parsed == UNKNOWN_VERSION:
                logger.warning(f"无法从索引名称 '{index.name}' 解析版本号，已忽略")
                continue
            if version is not None and parsed != version:
                continue

            date = self._date_parser(index.name)
            if self.time_partitioned and date == MAX_DATETIME:
                logger.warning(f"无法从索引名称 '{index.name}' 解析日期，已忽略")
                continue

            indices.append(
                IndexInfo(
                    physical_name=index.name,
                    version=parsed,
                    date=date,
                    aliases=list(index.aliases),
                )
            )

        indices.sort(key=lambda info: (info.date, info.version, info.physical_name))
        return indices

    async def stamp_bucket_versions(
        self,
        indices: list[IndexInfo],
        alias_for: Callable[[datetime], str],
    ) -> list[IndexInfo]:
        """为时间分区索引填充每个分桶的当前版本.

        同一分桶（同一分桶别名）下的索引共享该别名解析出的版本；
        别名下索引名称全部不合法时记录日志，该分桶保持 UNKNOWN_VERSION。
        """
        buckets: dict[str, list[IndexInfo]] = {}
        for info in indices:
            buckets.setdefault(alias_for(info.date), []).append(info)

        for alias, group in buckets.items():
            try:
                version = await self.get_version_from_alias(alias)
            except MigrationStateError as e:
                logger.warning(f"无法解析分桶 '{alias}' 的当前版本: {str(e)}")
                version = UNKNOWN_VERSION
            for info in group:
                info.current_version = version

        return indices

    async def get_current_version(self) -> int:
        """解析逻辑索引的当前版本.

        Returns:
            当前版本；没有任何物理索引时返回配置的版本

        Raises:
            MigrationStateError: 所有物理索引名称都无法解析版本号
            BackendUnavailableError: 搜索引擎调用失败
        """
        version = await self.get_version_from_alias(self.name)
        if version != UNKNOWN_VERSION:
            return version

        pattern = self.index_pattern()
        physical = await self.index_manager.list_indices(pattern)
        if not physical:
            return self.version

        return self._min_known_version([index.name for index in physical], f"模式 '{pattern}'")
