"""时间分桶计算模块."""

import logging
from datetime import datetime, timedelta

from ..core.constants import MAX_DATETIME, MAX_DAILY_RANGE_MONTHS, VERSION_SEPARATOR
from ..core.utils import (
    end_of_day,
    end_of_month,
    next_month,
    normalize_datetime,
    parse_index_version,
    safe_add,
    safe_subtract,
    start_of_day,
    start_of_month,
    utc_now,
)
from ..exceptions import IndexConfigError
from ..typing import NowFunc
from .models import DateRange, IndexAliasAge, PartitionInterval

logger = logging.getLogger(__name__)

# 平均每月天数，用于把时间跨度折算为月数
AVG_DAYS_PER_MONTH = 30.436875


class TimePartitioner:
    """时间分桶计算器.

    纯计算组件，不访问搜索引擎。负责：

    - 物理索引名称: ``{name}-v{version}-{日期}``
    - 分桶别名: ``{name}-{日期}``（实际流量访问的是这个不带版本的别名）
    - 分桶过期时间: ``分桶结束时间 + max_index_age``
    - 客户端别名是否覆盖某个分桶: ``今天 0 点 - max_age <= 分桶结束时间``

    Args:
        name: 逻辑索引名称
        version: 当前版本
        interval: 分区粒度
        date_format: 日期格式，默认按分区粒度选择
        max_index_age: 分桶保留时间，None 表示永久保留
        aliases: 客户端别名列表
        now_func: 自定义获取当前时间的函数，主要用于测试

    Examples:
        >>> partitioner = TimePartitioner("events", version=2)
        >>> partitioner.physical_index_for(datetime(2024, 1, 5))
        'events-v2-2024.01.05'
        >>> partitioner.alias_for(datetime(2024, 1, 5))
        'events-2024.01.05'
    """

    def __init__(
        self,
        name: str,
        version: int,
        interval: PartitionInterval = PartitionInterval.DAY,
        date_format: str | None = None,
        max_index_age: timedelta | None = None,
        aliases: list[IndexAliasAge] | None = None,
        now_func: NowFunc | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.interval = PartitionInterval(interval)
        self.date_format = date_format or self.interval.default_date_format
        self.max_index_age = max_index_age
        self.aliases: list[IndexAliasAge] = []
        self._now_func = now_func or utc_now

        for alias in aliases or []:
            self.add_alias(alias)

    def _now(self) -> datetime:
        return normalize_datetime(self._now_func())

    def add_alias(self, alias: IndexAliasAge) -> None:
        if any(existing.name == alias.name for existing in self.aliases):
            raise IndexConfigError(f"别名 '{alias.name}' 已配置")
        self.aliases.append(alias)

    def format_date(self, value: datetime) -> str:
        return normalize_datetime(value).strftime(self.date_format)

    def physical_index_for(self, value: datetime, version: int | None = None) -> str:
        """计算指定日期和版本的物理索引名称，版本缺省或为负时使用当前版本."""
        if version is None or version < 0:
            version = self.version
        return f"{self.name}{VERSION_SEPARATOR}{version}-{self.format_date(value)}"

    def date_from_physical_name(self, index_name: str) -> datetime:
        """从物理索引名称中解析分桶日期.

        Returns:
            分桶开始时间（UTC）；名称不合法时返回 MAX_DATETIME
        """
        version = parse_index_version(self.name, index_name)
        if version < 0:
            version = self.version

        prefix = f"{self.name}{VERSION_SEPARATOR}{version}-"
        if not index_name.startswith(prefix):
            return MAX_DATETIME

        try:
            parsed = datetime.strptime(index_name[len(prefix) :], self.date_format)
        except ValueError:
            return MAX_DATETIME
        return self.start_of_period(normalize_datetime(parsed))

    def alias_for(self, value: datetime) -> str:
        return f"{self.name}-{self.format_date(value)}"

    def start_of_period(self, value: datetime) -> datetime:
        value = normalize_datetime(value)
        if self.interval is PartitionInterval.MONTH:
            return start_of_month(value)
        return start_of_day(value)

    def end_of_period(self, value: datetime) -> datetime:
        value = normalize_datetime(value)
        if value == MAX_DATETIME:
            return MAX_DATETIME
        if self.interval is PartitionInterval.MONTH:
            return end_of_month(value)
        return end_of_day(value)

    def _next_period(self, value: datetime) -> datetime:
        if self.interval is PartitionInterval.MONTH:
            return next_month(value)
        return value + timedelta(days=1)

    def expiration_for(self, value: datetime) -> datetime:
        """计算分桶过期时间，未配置 max_index_age 时返回 MAX_DATETIME."""
        if self.max_index_age is None:
            return MAX_DATETIME
        return safe_add(self.end_of_period(value), self.max_index_age)

    def is_expired(self, value: datetime) -> bool:
        return self._now() > self.expiration_for(value)

    def should_create_alias(self, value: datetime, alias: IndexAliasAge) -> bool:
        """判断客户端别名的时间窗口是否覆盖指定分桶."""
        if alias.max_age is None:
            return True
        window_start = safe_subtract(start_of_day(self._now()), alias.max_age)
        return window_start <= self.end_of_period(value)

    def aliases_for(self, value: datetime) -> list[IndexAliasAge]:
        return [alias for alias in self.aliases if self.should_create_alias(value, alias)]

    def index_names_for_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[str]:
        """计算日期范围覆盖的分桶别名.

        开始时间缺省为当前时间；结束时间缺省或早于开始时间时取当前时间。

        以下情况返回空列表，由调用方回退到逻辑名称（全部数据）：

        - 范围跨度超过 max_index_age
        - 按天分区且范围跨度达到三个月

        Args:
            start: 开始时间
            end: 结束时间

        Returns:
            分桶别名列表（按时间升序）
        """
        now = self._now()
        start = normalize_datetime(start) if start is not None else now
        end = normalize_datetime(end) if end is not None else now
        if end < start:
            end = now

        first, last = self.start_of_period(start), self.end_of_period(end)
        if last < first:
            return []
        window = DateRange(first, last)
        span = window.span
        if self.max_index_age is not None and span > self.max_index_age:
            logger.debug(f"日期范围 {span} 超过最大索引保留时间 {self.max_index_age}")
            return []
        if (
            self.interval is PartitionInterval.DAY
            and span.total_seconds() / 86400 / AVG_DAYS_PER_MONTH >= MAX_DAILY_RANGE_MONTHS
        ):
            logger.debug(f"日期范围 {span} 达到 {MAX_DAILY_RANGE_MONTHS} 个月，不再按天展开")
            return []

        names: list[str] = []
        current = window.start
        while current <= window.end:
            names.append(self.alias_for(current))
            current = self._next_period(current)
        return names
