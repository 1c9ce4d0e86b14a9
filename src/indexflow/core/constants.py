"""indexflow 常量定义模块."""

from datetime import UTC, datetime

# 无法识别的版本号（未解析或名称不合法）
UNKNOWN_VERSION = -1

# "无上限" 日期哨兵值，用于非时间分区索引和永不过期的分桶
MAX_DATETIME = datetime.max.replace(tzinfo=UTC)
MIN_DATETIME = datetime.min.replace(tzinfo=UTC)

# 物理索引名称中版本号的分隔符: {name}-v{version}
VERSION_SEPARATOR = "-v"

# 重建索引失败文档的错误索引后缀: {name}-v{version}-error
ERROR_INDEX_SUFFIX = "-error"

# 别名存在性缓存的默认作用域
ALIAS_CACHE_SCOPE = "alias"

# 按天分区时，日期范围查询允许覆盖的最大月数（达到即回退到全量别名）
MAX_DAILY_RANGE_MONTHS = 3

# 各分区粒度的默认日期格式
DAILY_DATE_FORMAT = "%Y.%m.%d"
MONTHLY_DATE_FORMAT = "%Y.%m"
