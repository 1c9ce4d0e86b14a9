"""
indexflow 工具函数模块

提供时间计算、索引名称解析、时长格式解析等工具函数
"""

import calendar
import re
from datetime import UTC, date, datetime, timedelta

from indexflow.core.constants import (
    MAX_DATETIME,
    MIN_DATETIME,
    UNKNOWN_VERSION,
    VERSION_SEPARATOR,
)

# ES 时长格式正则：数字 + 时间单位（ms, s, m, h, d, w, M, y）
_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d|w|M|y)$")

# 时间单位到 timedelta 参数的转换映射
_DURATION_UNITS: dict[str, dict[str, int]] = {
    "ms": {"milliseconds": 1},
    "s": {"seconds": 1},
    "m": {"minutes": 1},
    "h": {"hours": 1},
    "d": {"days": 1},
    "w": {"weeks": 1},
    "M": {"days": 30},  # 按30天算
    "y": {"days": 365},  # 按365天算
}

# 版本号只允许 ASCII 数字
_VERSION_PATTERN = re.compile(r"\d+", re.ASCII)

# ObjectId 为 24 位十六进制字符串，前 8 位为秒级时间戳
_OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def utc_now() -> datetime:
    """获取当前 UTC 时间（tz-aware）."""
    return datetime.now(tz=UTC)


def normalize_datetime(value: datetime | date) -> datetime:
    """将日期时间规范化为 UTC tz-aware datetime.

    - naive datetime 视为 UTC，并附加 tzinfo=UTC
    - tz-aware datetime 转换为 UTC
    - date 对象视为当天 00:00 UTC

    Args:
        value: 日期或日期时间

    Returns:
        UTC tz-aware datetime
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value.replace(day=1))


def end_of_month(value: datetime) -> datetime:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return end_of_day(value.replace(day=last_day))


def next_month(value: datetime) -> datetime:
    """返回下个月第一天 00:00."""
    if value.month == 12:
        return start_of_month(value.replace(year=value.year + 1, month=1))
    return start_of_month(value.replace(month=value.month + 1))


def safe_add(value: datetime, delta: timedelta) -> datetime:
    """日期加法，溢出时截断为最大/最小日期而不是抛出异常.

    Examples:
        >>> safe_add(MAX_DATETIME, timedelta(days=1)) == MAX_DATETIME
        True
    """
    try:
        return value + delta
    except OverflowError:
        return MAX_DATETIME if delta > timedelta(0) else MIN_DATETIME


def safe_subtract(value: datetime, delta: timedelta) -> datetime:
    return safe_add(value, -delta)


def parse_index_version(base_name: str, index_name: str) -> int:
    """从物理索引名称中解析版本号.

    物理索引名称格式为 ``{base_name}-v{digits}[-{suffix}]``，版本号为 ``-v``
    之后直到下一个 ``-`` 或字符串结尾的数字串。

    Args:
        base_name: 逻辑索引名称
        index_name: 物理索引名称

    Returns:
        版本号；名称不合法时返回 UNKNOWN_VERSION (-1)

    Raises:
        ValueError: index_name 为空时抛出

    Examples:
        >>> parse_index_version("events", "events-v3")
        3
        >>> parse_index_version("events", "events-v3-2024.01.05")
        3
        >>> parse_index_version("events", "events-vx")
        -1
    """
    if not index_name:
        raise ValueError("index_name 不能为空")

    prefix = f"{base_name}{VERSION_SEPARATOR}"
    if not index_name.startswith(prefix):
        return UNKNOWN_VERSION

    head = index_name[len(prefix) :].split("-", 1)[0]
    if _VERSION_PATTERN.fullmatch(head):
        return int(head)
    return UNKNOWN_VERSION


def validate_duration_format(value: str) -> bool:
    """校验值是否符合 ES 时长格式.

    支持的时间单位：ms（毫秒）、s（秒）、m（分钟）、h（小时）、
    d（天）、w（周）、M（月）、y（年）。

    Examples:
        >>> validate_duration_format("30d")
        True
        >>> validate_duration_format("abc")
        False
    """
    if not isinstance(value, str) or not value:
        return False
    return _DURATION_PATTERN.match(value) is not None


def parse_duration(value: str | timedelta) -> timedelta:
    """将 ES 时长格式转换为 timedelta.

    Args:
        value: ES 时长格式字符串，如 "30d", "12h"；timedelta 原样返回

    Returns:
        对应的 timedelta

    Raises:
        ValueError: 当时长格式不合法时抛出

    Examples:
        >>> parse_duration("1d")
        datetime.timedelta(days=1)
        >>> parse_duration("1M")
        datetime.timedelta(days=30)
    """
    if isinstance(value, timedelta):
        return value

    match = _DURATION_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"不合法的 ES 时长格式: {value!r}")

    amount = int(match.group(1))
    unit_kwargs = _DURATION_UNITS[match.group(2)]
    return timedelta(**{key: amount * factor for key, factor in unit_kwargs.items()})


def object_id_creation_time(object_id: str) -> datetime:
    """从 ObjectId 字符串中提取创建时间.

    ObjectId 的前 4 个字节是大端序的 Unix 秒级时间戳。

    Raises:
        ValueError: 不是合法的 24 位十六进制 ObjectId 时抛出

    Examples:
        >>> object_id_creation_time("65974f800000000000000000").isoformat()
        '2024-01-05T00:38:24+00:00'
    """
    if not isinstance(object_id, str) or not _OBJECT_ID_PATTERN.match(object_id):
        raise ValueError(f"无法解析 ObjectId: {object_id!r}")
    return datetime.fromtimestamp(int(object_id[:8], 16), tz=UTC)
