"""索引维护模块.

主要组件:
    - MaintenanceCoordinator: 别名重新分配、过期索引清理、版本收敛
    - MaintenanceResult: 单次维护结果
"""

from .models import MaintenanceResult
from .tool import MaintenanceCoordinator

__all__ = [
    "MaintenanceCoordinator",
    "MaintenanceResult",
]
