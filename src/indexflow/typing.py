"""indexflow 类型定义模块."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

# 索引映射/设置字典类型
MappingsDict = dict[str, Any]
SettingsDict = dict[str, Any]

# 当前时间函数类型，测试中可注入固定时钟
NowFunc = Callable[[], datetime]

# 重建索引进度回调类型
# 格式: async callback(完成百分比, 目标索引名称)
ProgressCallback = Callable[[int, str], Awaitable[None]]

# 从原始文档中提取日期的函数类型
DocumentDateGetter = Callable[[Any], datetime]
