"""分桶目标模块.

写入时间分区索引前需要先确定文档属于哪个分桶。调用方传入的目标可能是
日期、文档 ID 或原始文档，这里在调用边界把它们统一归类为三种显式的目标类型，
之后的逻辑只需要处理这三种类型。
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Union

from ..core.utils import normalize_datetime, object_id_creation_time
from ..exceptions import BucketResolutionError
from ..typing import DocumentDateGetter

# 文档中可能存放创建时间的字段，按顺序查找
CREATED_DATE_FIELDS: tuple[str, ...] = ("created_utc", "created_at")

# 文档中可能存放 ObjectId 的字段
IDENTITY_FIELDS: tuple[str, ...] = ("id", "_id")


@dataclass(frozen=True)
class DateTarget:
    """按日期定位分桶."""

    date: datetime | date


@dataclass(frozen=True)
class IdentityTarget:
    """按 ObjectId 定位分桶（取 ObjectId 中的创建时间）."""

    id: str


@dataclass(frozen=True)
class RawTarget:
    """按原始文档定位分桶（通过文档日期提取函数）."""

    document: Any


BucketTarget = Union[DateTarget, IdentityTarget, RawTarget]


def as_bucket_target(value: Any) -> BucketTarget:
    """将调用方传入的任意值归类为分桶目标.

    - 已经是分桶目标: 原样返回
    - datetime / date: DateTarget
    - str: IdentityTarget（视为 ObjectId）
    - 其他对象: RawTarget

    Raises:
        BucketResolutionError: value 为 None 时抛出
    """
    if value is None:
        raise BucketResolutionError("分桶目标不能为 None")
    if isinstance(value, (DateTarget, IdentityTarget, RawTarget)):
        return value
    if isinstance(value, (datetime, date)):
        return DateTarget(value)
    if isinstance(value, str):
        return IdentityTarget(value)
    return RawTarget(value)


def _read(document: Any, key: str) -> Any:
    if isinstance(document, Mapping):
        return document.get(key)
    return getattr(document, key, None)


def default_document_date(document: Any) -> datetime:
    """默认的文档日期提取函数.

    依次尝试 ``created_utc`` / ``created_at`` 字段（字典键或对象属性），
    都不存在时从 ``id`` / ``_id`` 字段的 ObjectId 中提取创建时间。

    Raises:
        BucketResolutionError: 无法从文档中提取日期时抛出
    """
    if document is None:
        raise BucketResolutionError("文档不能为 None")

    for key in CREATED_DATE_FIELDS:
        value = _read(document, key)
        if isinstance(value, (datetime, date)):
            return normalize_datetime(value)

    for key in IDENTITY_FIELDS:
        value = _read(document, key)
        if isinstance(value, str):
            try:
                return object_id_creation_time(value)
            except ValueError:
                continue

    raise BucketResolutionError(f"无法从文档中获取日期: {type(document).__name__}")


def resolve_target_date(
    target: BucketTarget,
    get_document_date: DocumentDateGetter | None = None,
) -> datetime:
    """计算分桶目标对应的日期（UTC）.

    Args:
        target: 分桶目标
        get_document_date: RawTarget 使用的日期提取函数，默认 default_document_date

    Returns:
        UTC tz-aware datetime

    Raises:
        BucketResolutionError: 无法推导出日期时抛出
    """
    if isinstance(target, DateTarget):
        return normalize_datetime(target.date)

    if isinstance(target, IdentityTarget):
        try:
            return object_id_creation_time(target.id)
        except ValueError as e:
            raise BucketResolutionError(str(e)) from e

    if isinstance(target, RawTarget):
        getter = get_document_date or default_document_date
        try:
            return normalize_datetime(getter(target.document))
        except BucketResolutionError:
            raise
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            raise BucketResolutionError(f"获取文档日期失败: {str(e)}") from e

    raise BucketResolutionError(f"不支持的分桶目标类型: {type(target).__name__}")
