"""版本化索引数据模型定义模块.

提供版本化索引相关的 dataclass 模型，包括：
- IndexConfig: 逻辑索引配置
- IndexInfo: 枚举得到的物理索引信息
- ReindexScript: 按版本注册的迁移脚本
- ReindexWorkItem: 单次重建索引工作项
"""

from dataclasses import dataclass, field
from datetime import datetime

from ..core.constants import MAX_DATETIME, UNKNOWN_VERSION, VERSION_SEPARATOR
from ..exceptions import IndexConfigError
from ..index_manager.tool import _validate_index_name
from ..typing import MappingsDict, SettingsDict


@dataclass
class IndexConfig:
    """逻辑索引配置模型.

    Attributes:
        name: 逻辑索引名称（客户端访问的稳定名称，同时作为路由别名）
        version: 当前代码期望的 schema 版本，运行期不会变化
        discard_indexes_on_reindex: 重建索引成功后是否删除旧版本索引
        timestamp_field: 文档时间戳字段，设置后重建索引会追加一次增量同步
        mappings: 创建物理索引时使用的映射
        settings: 创建物理索引时使用的设置

    Raises:
        IndexConfigError: 当参数校验失败时抛出

    Examples:
        >>> config = IndexConfig(name="employees", version=2)
        >>> config.versioned_name
        'employees-v2'
    """

    name: str
    version: int = 1
    discard_indexes_on_reindex: bool = True
    timestamp_field: str | None = None
    mappings: MappingsDict | None = None
    settings: SettingsDict | None = None

    def __post_init__(self) -> None:
        """校验索引配置参数合法性."""
        if not self.name:
            raise IndexConfigError("name 不能为空")
        if not _validate_index_name(self.name) or self.name != self.name.lower():
            raise IndexConfigError(
                f"name 不合法: {self.name!r}，应为小写且符合 Elasticsearch 索引命名规范"
            )
        if self.version < 1:
            raise IndexConfigError(f"version 必须 >= 1，当前值: {self.version}")

    @property
    def versioned_name(self) -> str:
        return f"{self.name}{VERSION_SEPARATOR}{self.version}"


@dataclass
class IndexInfo:
    """物理索引信息数据类.

    每次维护时根据搜索引擎的索引列表重新计算，不单独持久化。

    Attributes:
        physical_name: 物理索引名称
        version: 从名称解析出的版本号
        date: 从名称解析出的分桶日期；非时间分区索引为 MAX_DATETIME
        current_version: 该分桶别名解析出的当前版本，未知时为 -1
        aliases: 当前指向该索引的别名
    """

    physical_name: str
    version: int
    date: datetime = MAX_DATETIME
    current_version: int = UNKNOWN_VERSION
    aliases: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReindexScript:
    """迁移脚本.

    Attributes:
        version: 引入该脚本的版本号
        source: painless 脚本内容
    """

    version: int
    source: str


@dataclass
class ReindexWorkItem:
    """重建索引工作项.

    描述一次从源索引到目标索引的迁移，每次迁移尝试都重新构造。

    Attributes:
        source_index: 源物理索引
        destination_index: 目标物理索引
        routing_alias: 迁移完成后需要切换到目标索引的别名
        script: 合并后的迁移脚本，None 表示纯拷贝
        timestamp_field: 增量同步使用的时间戳字段
        delete_source_on_success: 成功后是否删除源索引；源与目标相同时强制为 False
    """

    source_index: str
    destination_index: str
    routing_alias: str | None = None
    script: str | None = None
    timestamp_field: str | None = None
    delete_source_on_success: bool = False

    def __post_init__(self) -> None:
        if self.source_index == self.destination_index:
            self.delete_source_on_success = False
