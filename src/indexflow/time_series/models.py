"""时间分区索引数据模型定义模块."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from ..core.constants import DAILY_DATE_FORMAT, MONTHLY_DATE_FORMAT
from ..core.utils import normalize_datetime, parse_duration
from ..exceptions import IndexConfigError
from ..versioning.models import IndexConfig


class PartitionInterval(str, Enum):
    """分区粒度."""

    DAY = "day"
    MONTH = "month"

    @property
    def default_date_format(self) -> str:
        return DAILY_DATE_FORMAT if self is PartitionInterval.DAY else MONTHLY_DATE_FORMAT


def _to_duration(value: timedelta | str | None, field_name: str) -> timedelta | None:
    if value is None:
        return None
    try:
        duration = parse_duration(value)
    except ValueError as e:
        raise IndexConfigError(f"{field_name} 格式不合法: {str(e)}") from e
    if duration <= timedelta(0):
        raise IndexConfigError(f"{field_name} 必须大于 0，当前值: {value!r}")
    return duration


@dataclass
class IndexAliasAge:
    """带保留时间的客户端别名.

    Attributes:
        name: 别名名称
        max_age: 别名覆盖的最大时间跨度；None 表示无上限，别名始终生效。
            支持 timedelta 或 ES 时长字符串（如 "7d"）

    Examples:
        >>> IndexAliasAge("events-last-week", "7d").max_age
        datetime.timedelta(days=7)
    """

    name: str
    max_age: timedelta | str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise IndexConfigError("别名名称不能为空")
        self.max_age = _to_duration(self.max_age, "max_age")

    @property
    def unbounded(self) -> bool:
        return self.max_age is None


@dataclass
class TimeSeriesConfig(IndexConfig):
    """时间分区索引配置模型.

    Attributes:
        interval: 分区粒度（按天/按月）
        max_index_age: 分桶保留时间，None 表示永久保留；支持 ES 时长字符串
        discard_expired_indexes: 维护时是否删除过期的分桶索引
        date_format: 索引名称中的日期格式，默认按分区粒度选择
            （``%Y.%m.%d`` / ``%Y.%m``）
        aliases: 额外的客户端别名；逻辑名称本身总是第一个别名，无需重复配置

    Raises:
        IndexConfigError: 当参数校验失败时抛出

    Examples:
        >>> config = TimeSeriesConfig(
        ...     name="events",
        ...     version=2,
        ...     max_index_age="90d",
        ...     aliases=[IndexAliasAge("events-today", "1d")],
        ... )
    """

    interval: PartitionInterval = PartitionInterval.DAY
    max_index_age: timedelta | str | None = None
    discard_expired_indexes: bool = True
    date_format: str | None = None
    aliases: list[IndexAliasAge] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__post_init__()
        try:
            self.interval = PartitionInterval(self.interval)
        except ValueError as e:
            raise IndexConfigError(f"不支持的分区粒度: {self.interval!r}") from e

        self.max_index_age = _to_duration(self.max_index_age, "max_index_age")

        if self.date_format is not None and not self.date_format.strip():
            raise IndexConfigError("date_format 不能为空字符串")

        self.aliases = [
            alias if isinstance(alias, IndexAliasAge) else IndexAliasAge(alias)
            for alias in self.aliases
        ]

    @property
    def effective_date_format(self) -> str:
        return self.date_format or self.interval.default_date_format


@dataclass(frozen=True)
class DateRange:
    """闭区间日期范围.

    Attributes:
        start: 开始时间（UTC）
        end: 结束时间（UTC）

    Raises:
        ValueError: 开始时间晚于结束时间时抛出
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", normalize_datetime(self.start))
        object.__setattr__(self, "end", normalize_datetime(self.end))
        if self.start > self.end:
            raise ValueError(
                f"开始时间不能晚于结束时间: {self.start.isoformat()} > {self.end.isoformat()}"
            )

    @property
    def span(self) -> timedelta:
        return self.end - self.start
