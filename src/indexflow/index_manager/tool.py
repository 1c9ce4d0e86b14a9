"""索引管理器核心工具类."""

import asyncio
import logging
from typing import Any

from elasticsearch import AsyncElasticsearch
from elasticsearch.exceptions import ApiError, NotFoundError, TransportError

from ..typing import MappingsDict, ProgressCallback, SettingsDict
from .exceptions import (
    BackendUnavailableError,
    IndexAlreadyExistsError,
    ReindexError,
)
from .models import AliasAction, PhysicalIndex, ReindexResult

logger = logging.getLogger(__name__)


def _validate_index_name(index_name: str, allow_wildcards: bool = False) -> bool:
    """验证索引名称是否符合 Elasticsearch 规范.

    Args:
        index_name: 索引名称
        allow_wildcards: 是否允许通配符（用于查询场景）

    Returns:
        是否有效

    Note:
        Elasticsearch 索引名称限制：
        - 不能以 . 或 _ 开头
        - 不能包含 , # / \\ * ? " < > | 空格
        - 不能是 . 或 ..
        - 长度不能超过 255 字节
    """
    if not index_name or not isinstance(index_name, str):
        return False

    if len(index_name.encode("utf-8")) > 255:
        return False

    if index_name.startswith(".") or index_name.startswith("_"):
        return False

    if index_name in (".", ".."):
        return False

    invalid_chars = {",", "#", "/", "\\", '"', "<", ">", "|", " ", "\t", "\n", "\r"}
    if not allow_wildcards:
        invalid_chars.update({"*", "?"})

    return not any(char in invalid_chars for char in index_name)


def _backend_error(action: str, error: Exception) -> BackendUnavailableError:
    """将客户端异常转换为 BackendUnavailableError.

    ApiError 携带 HTTP 状态码；传输层异常（连接失败、超时）状态码为 None。
    """
    status_code = error.meta.status if isinstance(error, ApiError) else None
    return BackendUnavailableError(f"{action}失败: {str(error)}", status_code=status_code)


def _progress_percent(status: dict[str, Any]) -> int:
    """根据 _reindex 任务状态计算完成百分比."""
    total = status.get("total", 0) or 0
    if total <= 0:
        return 0
    done = sum(
        status.get(key, 0) or 0
        for key in ("created", "updated", "deleted", "version_conflicts", "noops")
    )
    return min(100, int(done * 100 / total))


class IndexManager:
    """索引管理器核心类.

    对 AsyncElasticsearch 的索引、别名、重建索引 API 做一层薄封装，
    统一异常语义：

    - 404 属于正常分支，转换为 False / 空列表
    - 创建已存在的索引抛出 IndexAlreadyExistsError
    - 其余失败统一抛出 BackendUnavailableError

    Args:
        es_client: AsyncElasticsearch 客户端实例
    """

    def __init__(self, es_client: AsyncElasticsearch):
        if es_client is None:
            raise ValueError("es_client 不能为 None")
        self.es_client = es_client
        logger.info("初始化索引管理器")

    async def create_index(
        self,
        index_name: str,
        mappings: MappingsDict | None = None,
        settings: SettingsDict | None = None,
        aliases: list[str] | None = None,
    ) -> bool:
        """创建索引.

        Args:
            index_name: 索引名称
            mappings: 索引映射配置
            settings: 索引设置配置
            aliases: 创建时一并挂载的别名列表

        Returns:
            是否成功创建索引

        Raises:
            IndexAlreadyExistsError: 索引已存在时抛出
            BackendUnavailableError: 搜索引擎调用失败时抛出
            ValueError: 索引名称不符合 Elasticsearch 规范时抛出

        Example:
            >>> manager = IndexManager(es_client)
            >>> await manager.create_index(
            ...     "events-v2-2024.01.05", aliases=["events-2024.01.05", "events"]
            ... )
        """
        if not _validate_index_name(index_name):
            raise ValueError(f"索引名称 '{index_name}' 不符合 Elasticsearch 规范")

        kwargs: dict[str, Any] = {}
        if mappings:
            kwargs["mappings"] = mappings
        if settings:
            kwargs["settings"] = settings
        if aliases:
            kwargs["aliases"] = {alias: {} for alias in aliases}

        try:
            response = await self.es_client.indices.create(index=index_name, **kwargs)
        except ApiError as e:
            if e.meta.status == 400 and "resource_already_exists_exception" in str(e):
                raise IndexAlreadyExistsError(f"索引 '{index_name}' 已存在") from e
            raise _backend_error(f"创建索引 '{index_name}' ", e) from e
        except TransportError as e:
            raise _backend_error(f"创建索引 '{index_name}' ", e) from e

        acknowledged = response.get("acknowledged", False)
        if acknowledged:
            logger.info(f"索引 '{index_name}' 创建成功，别名: {aliases or []}")
        return bool(acknowledged)

    async def create_index_if_absent(
        self,
        index_name: str,
        mappings: MappingsDict | None = None,
        settings: SettingsDict | None = None,
        aliases: list[str] | None = None,
    ) -> bool:
        """创建索引，索引已存在时视为成功.

        并发创建同一索引时，竞争失败的一方返回 False 而不是抛出异常。

        Returns:
            本次调用是否实际创建了索引
        """
        try:
            return await self.create_index(
                index_name, mappings=mappings, settings=settings, aliases=aliases
            )
        except IndexAlreadyExistsError:
            logger.info(f"索引 '{index_name}' 已存在，跳过创建")
            return False

    async def delete_index(self, index_name: str) -> bool:
        """删除索引.

        Args:
            index_name: 索引名称（支持通配符）

        Returns:
            是否成功删除索引；索引不存在时返回 False

        Raises:
            BackendUnavailableError: 搜索引擎调用失败时抛出
        """
        if "*" in index_name or "?" in index_name:
            logger.warning(f"索引名称 '{index_name}' 包含通配符，可能会删除多个索引！")

        try:
            response = await self.es_client.indices.delete(index=index_name)
        except NotFoundError:
            logger.warning(f"索引 '{index_name}' 不存在，无法删除")
            return False
        except (ApiError, TransportError) as e:
            raise _backend_error(f"删除索引 '{index_name}' ", e) from e

        acknowledged = response.get("acknowledged", False)
        if acknowledged:
            logger.info(f"索引 '{index_name}' 删除成功")
        return bool(acknowledged)

    async def index_exists(self, index_name: str) -> bool:
        """检查索引是否存在.

        Raises:
            BackendUnavailableError: 搜索引擎调用失败时抛出
        """
        try:
            return bool(await self.es_client.indices.exists(index=index_name))
        except (ApiError, TransportError) as e:
            raise _backend_error(f"检查索引 '{index_name}' 是否存在", e) from e

    async def alias_exists(self, alias_name: str) -> bool:
        """检查别名是否存在.

        Raises:
            BackendUnavailableError: 搜索引擎调用失败时抛出
        """
        try:
            return bool(await self.es_client.indices.exists_alias(name=alias_name))
        except (ApiError, TransportError) as e:
            raise _backend_error(f"检查别名 '{alias_name}' 是否存在", e) from e

    async def get_alias(self, alias_name: str) -> list[str]:
        """获取别名指向的所有物理索引.

        Args:
            alias_name: 别名名称

        Returns:
            物理索引名称列表；别名不存在时返回空列表

        Raises:
            BackendUnavailableError: 搜索引擎调用失败时抛出

        Example:
            >>> await manager.get_alias("events")
            ['events-v1', 'events-v2']
        """
        try:
            response = await self.es_client.indices.get_alias(name=alias_name)
        except NotFoundError:
            return []
        except (ApiError, TransportError) as e:
            raise _backend_error(f"获取别名 '{alias_name}' ", e) from e

        return sorted(response.keys())

    async def list_indices(self, pattern: str) -> list[PhysicalIndex]:
        """列出匹配模式的物理索引及其当前别名.

        使用 ``GET {pattern}/_alias``，一次请求同时拿到索引列表和别名归属。

        Args:
            pattern: 索引匹配模式，例如 "events-v*"

        Returns:
            物理索引列表（按名称排序）

        Raises:
            BackendUnavailableError: 搜索引擎调用失败时抛出
        """
        try:
            response = await self.es_client.indices.get_alias(index=pattern)
        except NotFoundError:
            return []
        except (ApiError, TransportError) as e:
            raise _backend_error(f"列出索引 '{pattern}' ", e) from e

        return [
            PhysicalIndex(name=name, aliases=sorted((data or {}).get("aliases", {})))
            for name, data in sorted(response.items())
        ]

    async def update_aliases(self, actions: list[AliasAction]) -> bool:
        """批量更新别名（原子操作）.

        Args:
            actions: 别名添加/移除操作列表

        Returns:
            是否提交并成功执行；空操作列表或 404 时返回 False

        Raises:
            BackendUnavailableError: 非 404 的失败
        """
        if not actions:
            logger.debug("没有需要更新的别名")
            return False

        try:
            response = await self.es_client.indices.update_aliases(
                actions=[action.to_dict() for action in actions]
            )
        except NotFoundError as e:
            logger.warning(f"批量更新别名返回 404，忽略: {str(e)}")
            return False
        except (ApiError, TransportError) as e:
            raise _backend_error("批量更新别名", e) from e

        acknowledged = bool(response.get("acknowledged", False))
        if acknowledged:
            logger.info(f"批量更新别名成功，共 {len(actions)} 个操作")
        return acknowledged

    async def put_alias(self, index_name: str, alias_name: str) -> bool:
        """为索引添加别名."""
        return await self.update_aliases([AliasAction.add(index_name, alias_name)])

    async def reindex(
        self,
        source: str,
        destination: str,
        script: str | None = None,
        query: dict[str, Any] | None = None,
        progress_callback: ProgressCallback | None = None,
        poll_interval: float = 1.0,
    ) -> ReindexResult:
        """执行 _reindex 并轮询任务直到完成.

        以 ``wait_for_completion=False`` 提交任务，随后轮询 ``_tasks`` 接口，
        每次进度变化时调用 ``progress_callback(百分比, 目标索引)``。

        Args:
            source: 源索引
            destination: 目标索引
            script: painless 脚本（可选）
            query: 源文档过滤查询（可选）
            progress_callback: 进度回调
            poll_interval: 轮询间隔（秒）

        Returns:
            重建索引结果

        Raises:
            ReindexError: 任务执行失败或存在失败文档时抛出
            BackendUnavailableError: 搜索引擎调用失败时抛出
        """
        source_body: dict[str, Any] = {"index": source}
        if query:
            source_body["query"] = query

        kwargs: dict[str, Any] = {
            "source": source_body,
            "dest": {"index": destination},
            "conflicts": "proceed",
            "wait_for_completion": False,
        }
        if script:
            kwargs["script"] = {"source": script, "lang": "painless"}

        try:
            response = await self.es_client.reindex(**kwargs)
        except (ApiError, TransportError) as e:
            raise _backend_error(f"提交重建索引 '{source}' -> '{destination}' ", e) from e

        task_id = response.get("task")
        if not task_id:
            raise ReindexError(f"重建索引 '{source}' -> '{destination}' 未返回任务 ID")

        logger.info(f"开始重建索引: '{source}' -> '{destination}' (任务: {task_id})")
        last_percent = -1
        while True:
            try:
                task = await self.es_client.tasks.get(task_id=task_id)
            except (ApiError, TransportError) as e:
                raise _backend_error(f"获取重建索引任务 '{task_id}' ", e) from e

            percent = _progress_percent(task.get("task", {}).get("status", {}))
            if progress_callback is not None and percent != last_percent:
                await progress_callback(percent, destination)
                last_percent = percent

            if task.get("completed"):
                break
            await asyncio.sleep(poll_interval)

        if task.get("error"):
            raise ReindexError(
                f"重建索引 '{source}' -> '{destination}' 失败: {task['error']}",
                task_id=task_id,
            )

        body = task.get("response", {})
        failures = body.get("failures", [])
        if failures:
            raise ReindexError(
                f"重建索引 '{source}' -> '{destination}' 存在 {len(failures)} 个失败文档",
                task_id=task_id,
                failures=failures,
            )

        if progress_callback is not None and last_percent != 100:
            await progress_callback(100, destination)

        result = ReindexResult(
            source=source,
            destination=destination,
            task_id=task_id,
            total=body.get("total", 0),
            created=body.get("created", 0),
            updated=body.get("updated", 0),
            deleted=body.get("deleted", 0),
            version_conflicts=body.get("version_conflicts", 0),
            took=body.get("took", 0),
        )
        logger.info(
            f"重建索引完成: '{source}' -> '{destination}'，"
            f"处理 {result.processed}/{result.total} 个文档，耗时 {result.took}ms"
        )
        return result
