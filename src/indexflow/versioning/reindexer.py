"""重建索引执行模块."""

import logging

from ..core.utils import normalize_datetime, utc_now
from ..index_manager.exceptions import ReindexError
from ..index_manager.models import AliasAction, ReindexResult
from ..index_manager.tool import IndexManager
from ..typing import NowFunc, ProgressCallback
from .models import ReindexWorkItem

logger = logging.getLogger(__name__)


class Reindexer:
    """重建索引执行器.

    执行一个 ReindexWorkItem 并处理结果：

    1. 执行 _reindex（附带合并后的迁移脚本）
    2. 配置了时间戳字段时，追加一次增量同步，拷贝首轮开始后写入源索引的文档
    3. 通过一次批量别名更新，把路由别名从源索引切换到目标索引
    4. 需要时删除源索引

    任一步骤失败都会向上抛出异常，源索引保持别名指向（迁移未推进），
    下次调用 reindex 时重试。

    Args:
        index_manager: IndexManager 实例
        poll_interval: 轮询任务状态的间隔（秒）
        now_func: 自定义获取当前时间的函数，主要用于测试
    """

    def __init__(
        self,
        index_manager: IndexManager,
        poll_interval: float = 1.0,
        now_func: NowFunc | None = None,
    ) -> None:
        self.index_manager = index_manager
        self.poll_interval = poll_interval
        self._now_func = now_func or utc_now

    async def reindex(
        self,
        work_item: ReindexWorkItem,
        progress_callback: ProgressCallback | None = None,
    ) -> ReindexResult:
        """执行重建索引工作项.

        Args:
            work_item: 重建索引工作项
            progress_callback: 进度回调 ``async callback(百分比, 索引名称)``

        Returns:
            首轮重建索引的结果

        Raises:
            ReindexError: 重建索引任务失败
            BackendUnavailableError: 搜索引擎调用失败
        """
        source = work_item.source_index
        destination = work_item.destination_index
        started_at = normalize_datetime(self._now_func())

        try:
            result = await self.index_manager.reindex(
                source,
                destination,
                script=work_item.script,
                progress_callback=progress_callback,
                poll_interval=self.poll_interval,
            )

            if work_item.timestamp_field:
                logger.info(
                    f"增量同步 '{source}' -> '{destination}'，"
                    f"{work_item.timestamp_field} >= {started_at.isoformat()}"
                )
                await self.index_manager.reindex(
                    source,
                    destination,
                    script=work_item.script,
                    query={"range": {work_item.timestamp_field: {"gte": started_at.isoformat()}}},
                    poll_interval=self.poll_interval,
                )
        except ReindexError as e:
            logger.error(f"重建索引 '{source}' -> '{destination}' 失败，源索引保持不变: {str(e)}")
            raise

        if work_item.routing_alias:
            await self._move_alias(work_item)

        if work_item.delete_source_on_success:
            await self.index_manager.delete_index(source)

        return result

    async def _move_alias(self, work_item: ReindexWorkItem) -> None:
        alias = work_item.routing_alias
        holders = await self.index_manager.get_alias(alias)

        actions: list[AliasAction] = []
        if work_item.destination_index not in holders:
            actions.append(AliasAction.add(work_item.destination_index, alias))
        if work_item.source_index in holders:
            actions.append(AliasAction.remove(work_item.source_index, alias))

        if await self.index_manager.update_aliases(actions):
            logger.info(
                f"别名 '{alias}' 已从 '{work_item.source_index}' "
                f"切换到 '{work_item.destination_index}'"
            )
