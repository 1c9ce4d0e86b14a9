"""索引管理器单元测试."""

import unittest
from unittest.mock import AsyncMock, MagicMock

from elastic_transport import ApiResponseMeta, ConnectionError, HttpHeaders, NodeConfig
from elasticsearch.exceptions import ApiError, BadRequestError, NotFoundError

from indexflow.index_manager import (
    AliasAction,
    BackendUnavailableError,
    IndexAlreadyExistsError,
    IndexManager,
    ReindexError,
)


def _api_error(error_cls, status: int, message: str = "error"):
    meta = ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    return error_cls(message=message, meta=meta, body={})


class TestIndexManager(unittest.IsolatedAsyncioTestCase):
    """IndexManager 类单元测试."""

    def setUp(self):
        """设置测试环境."""
        self.es_client = MagicMock()
        self.es_client.indices = MagicMock()
        self.es_client.indices.create = AsyncMock(return_value={"acknowledged": True})
        self.es_client.indices.delete = AsyncMock(return_value={"acknowledged": True})
        self.es_client.indices.exists = AsyncMock(return_value=True)
        self.es_client.indices.exists_alias = AsyncMock(return_value=True)
        self.es_client.indices.get_alias = AsyncMock(return_value={})
        self.es_client.indices.update_aliases = AsyncMock(return_value={"acknowledged": True})
        self.es_client.reindex = AsyncMock(return_value={"task": "node:1"})
        self.es_client.tasks = MagicMock()
        self.es_client.tasks.get = AsyncMock()
        self.manager = IndexManager(self.es_client)

    def test_initialization(self):
        """测试初始化."""
        self.assertIsNotNone(self.manager.es_client)
        with self.assertRaises(ValueError):
            IndexManager(None)

    # ==================== 创建 / 删除 ====================

    async def test_create_index_with_aliases(self):
        """测试创建索引时挂载别名."""
        result = await self.manager.create_index(
            "events-v1-2024.01.05",
            mappings={"properties": {}},
            aliases=["events-2024.01.05", "events"],
        )

        self.assertTrue(result)
        self.es_client.indices.create.assert_awaited_once_with(
            index="events-v1-2024.01.05",
            mappings={"properties": {}},
            aliases={"events-2024.01.05": {}, "events": {}},
        )

    async def test_create_index_invalid_name(self):
        """测试索引名称不合法."""
        with self.assertRaises(ValueError):
            await self.manager.create_index("_events")

    async def test_create_index_already_exists(self):
        """测试创建已存在的索引."""
        self.es_client.indices.create.side_effect = _api_error(
            BadRequestError, 400, "resource_already_exists_exception"
        )

        with self.assertRaises(IndexAlreadyExistsError):
            await self.manager.create_index("events-v1")

    async def test_create_index_if_absent_conflict(self):
        """测试并发创建时竞争失败返回 False."""
        self.es_client.indices.create.side_effect = _api_error(
            BadRequestError, 400, "resource_already_exists_exception"
        )

        self.assertFalse(await self.manager.create_index_if_absent("events-v1"))

    async def test_create_index_other_bad_request(self):
        """测试其他 400 错误转换为 BackendUnavailableError."""
        self.es_client.indices.create.side_effect = _api_error(
            BadRequestError, 400, "mapper_parsing_exception"
        )

        with self.assertRaises(BackendUnavailableError) as ctx:
            await self.manager.create_index_if_absent("events-v1")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertFalse(ctx.exception.unreachable)

    async def test_delete_index(self):
        """测试删除索引."""
        self.assertTrue(await self.manager.delete_index("events-v1"))
        self.es_client.indices.delete.assert_awaited_once_with(index="events-v1")

    async def test_delete_index_not_exists(self):
        """测试删除不存在的索引."""
        self.es_client.indices.delete.side_effect = _api_error(NotFoundError, 404)

        self.assertFalse(await self.manager.delete_index("events-v1"))

    async def test_unreachable_backend(self):
        """测试集群不可达时状态码为 None."""
        self.es_client.indices.delete.side_effect = ConnectionError("connection refused")

        with self.assertRaises(BackendUnavailableError) as ctx:
            await self.manager.delete_index("events-v1")
        self.assertIsNone(ctx.exception.status_code)
        self.assertTrue(ctx.exception.unreachable)

    # ==================== 别名 ====================

    async def test_alias_exists(self):
        """测试检查别名是否存在."""
        self.assertTrue(await self.manager.alias_exists("events"))
        self.es_client.indices.exists_alias.assert_awaited_once_with(name="events")

    async def test_get_alias(self):
        """测试获取别名指向的索引."""
        self.es_client.indices.get_alias.return_value = {
            "events-v2": {"aliases": {"events": {}}},
            "events-v1": {"aliases": {"events": {}}},
        }

        self.assertEqual(await self.manager.get_alias("events"), ["events-v1", "events-v2"])

    async def test_get_alias_not_found(self):
        """测试别名不存在时返回空列表."""
        self.es_client.indices.get_alias.side_effect = _api_error(NotFoundError, 404)

        self.assertEqual(await self.manager.get_alias("events"), [])

    async def test_get_alias_backend_error(self):
        """测试非 404 错误向上抛出，不会被当作别名不存在."""
        self.es_client.indices.get_alias.side_effect = _api_error(ApiError, 503)

        with self.assertRaises(BackendUnavailableError):
            await self.manager.get_alias("events")

    async def test_list_indices(self):
        """测试枚举索引并带出别名."""
        self.es_client.indices.get_alias.return_value = {
            "events-v1-2024.01.05": {"aliases": {"events": {}, "events-2024.01.05": {}}},
            "events-v2-2024.01.05": {"aliases": {}},
        }

        indices = await self.manager.list_indices("events-v*")

        self.es_client.indices.get_alias.assert_awaited_once_with(index="events-v*")
        self.assertEqual(
            [(i.name, i.aliases) for i in indices],
            [
                ("events-v1-2024.01.05", ["events", "events-2024.01.05"]),
                ("events-v2-2024.01.05", []),
            ],
        )

    async def test_update_aliases(self):
        """测试批量更新别名."""
        actions = [AliasAction.add("events-v2", "events"), AliasAction.remove("events-v1", "events")]

        self.assertTrue(await self.manager.update_aliases(actions))
        self.es_client.indices.update_aliases.assert_awaited_once_with(
            actions=[
                {"add": {"index": "events-v2", "alias": "events"}},
                {"remove": {"index": "events-v1", "alias": "events"}},
            ]
        )

    async def test_update_aliases_empty(self):
        """测试空操作列表不发起请求."""
        self.assertFalse(await self.manager.update_aliases([]))
        self.es_client.indices.update_aliases.assert_not_awaited()

    async def test_update_aliases_not_found(self):
        """测试 404 视为没有需要更新的内容."""
        self.es_client.indices.update_aliases.side_effect = _api_error(NotFoundError, 404)

        self.assertFalse(await self.manager.update_aliases([AliasAction.add("a", "b")]))

    async def test_update_aliases_error(self):
        """测试非 404 错误向上抛出."""
        self.es_client.indices.update_aliases.side_effect = _api_error(ApiError, 500)

        with self.assertRaises(BackendUnavailableError):
            await self.manager.update_aliases([AliasAction.add("a", "b")])

    # ==================== 重建索引 ====================

    async def test_reindex_polls_until_complete(self):
        """测试重建索引轮询任务并回调进度."""
        self.es_client.tasks.get.side_effect = [
            {"completed": False, "task": {"status": {"total": 10, "created": 5}}},
            {
                "completed": True,
                "task": {"status": {"total": 10, "created": 10}},
                "response": {"total": 10, "created": 10, "took": 42, "failures": []},
            },
        ]
        progress = AsyncMock()

        result = await self.manager.reindex(
            "events-v1",
            "events-v2",
            script="ctx._source.remove('temp')",
            progress_callback=progress,
            poll_interval=0,
        )

        self.es_client.reindex.assert_awaited_once_with(
            source={"index": "events-v1"},
            dest={"index": "events-v2"},
            conflicts="proceed",
            wait_for_completion=False,
            script={"source": "ctx._source.remove('temp')", "lang": "painless"},
        )
        self.assertEqual([c.args for c in progress.await_args_list], [(50, "events-v2"), (100, "events-v2")])
        self.assertEqual(result.created, 10)
        self.assertEqual(result.processed, 10)
        self.assertEqual(result.task_id, "node:1")

    async def test_reindex_with_query(self):
        """测试增量同步查询."""
        self.es_client.tasks.get.return_value = {"completed": True, "response": {}}
        query = {"range": {"updated": {"gte": "2024-01-01T00:00:00+00:00"}}}

        await self.manager.reindex("events-v1", "events-v2", query=query, poll_interval=0)

        kwargs = self.es_client.reindex.await_args.kwargs
        self.assertEqual(kwargs["source"], {"index": "events-v1", "query": query})
        self.assertNotIn("script", kwargs)

    async def test_reindex_failures(self):
        """测试存在失败文档时抛出 ReindexError."""
        self.es_client.tasks.get.return_value = {
            "completed": True,
            "response": {"failures": [{"id": "1", "cause": {"type": "mapper_parsing_exception"}}]},
        }

        with self.assertRaises(ReindexError) as ctx:
            await self.manager.reindex("events-v1", "events-v2", poll_interval=0)
        self.assertEqual(ctx.exception.task_id, "node:1")
        self.assertEqual(len(ctx.exception.failures), 1)

    async def test_reindex_task_error(self):
        """测试任务本身失败."""
        self.es_client.tasks.get.return_value = {
            "completed": True,
            "error": {"type": "index_not_found_exception"},
        }

        with self.assertRaises(ReindexError):
            await self.manager.reindex("events-v1", "events-v2", poll_interval=0)


if __name__ == "__main__":
    unittest.main()
