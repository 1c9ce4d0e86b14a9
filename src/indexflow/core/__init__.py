"""核心模块导出."""

from indexflow.core.constants import (
    ALIAS_CACHE_SCOPE,
    DAILY_DATE_FORMAT,
    ERROR_INDEX_SUFFIX,
    MAX_DATETIME,
    MONTHLY_DATE_FORMAT,
    UNKNOWN_VERSION,
    VERSION_SEPARATOR,
)
from indexflow.core.utils import (
    end_of_day,
    end_of_month,
    normalize_datetime,
    object_id_creation_time,
    parse_duration,
    parse_index_version,
    safe_add,
    safe_subtract,
    start_of_day,
    start_of_month,
    utc_now,
    validate_duration_format,
)

__all__ = [
    "UNKNOWN_VERSION",
    "MAX_DATETIME",
    "VERSION_SEPARATOR",
    "ERROR_INDEX_SUFFIX",
    "ALIAS_CACHE_SCOPE",
    "DAILY_DATE_FORMAT",
    "MONTHLY_DATE_FORMAT",
    "utc_now",
    "normalize_datetime",
    "start_of_day",
    "end_of_day",
    "start_of_month",
    "end_of_month",
    "safe_add",
    "safe_subtract",
    "parse_index_version",
    "validate_duration_format",
    "parse_duration",
    "object_id_creation_time",
]
