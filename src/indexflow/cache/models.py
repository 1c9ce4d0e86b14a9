"""缓存模块数据模型定义模块."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class CacheEntry:
    """缓存条目.

    Attributes:
        value: 缓存值
        expires_at: 过期时间（UTC），None 表示永不过期
    """

    value: Any
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at
