"""测试公共 fixtures.

提供：
- Clock: 可手动推进的固定时钟
- FakeIndexManager: 内存中的 IndexManager 替身，用于行为测试（并发创建、维护幂等等）
- make_api_error: 构造带 HTTP 状态码的 elasticsearch ApiError
"""

import asyncio
import fnmatch
from datetime import UTC, datetime, timedelta

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig

from indexflow.index_manager.exceptions import IndexAlreadyExistsError, ReindexError
from indexflow.index_manager.models import AliasAction, AliasActionType, PhysicalIndex, ReindexResult


class Clock:
    """可手动推进的时钟."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeIndexManager:
    """内存中的索引管理器.

    每次访问 "搜索引擎" 前都会让出一次事件循环，使并发调用可以交错执行。
    """

    def __init__(self) -> None:
        self.indices: dict[str, set[str]] = {}
        self.alias_batches: list[list[AliasAction]] = []
        self.reindex_calls: list[dict] = []
        self.deleted: list[str] = []
        self.create_calls = 0
        self.fail_reindex = False

    async def _yield(self) -> None:
        await asyncio.sleep(0)

    def add_index(self, name: str, *aliases: str) -> None:
        self.indices[name] = set(aliases)

    def aliases_of(self, name: str) -> set[str]:
        return set(self.indices.get(name, set()))

    def holders_of(self, alias: str) -> list[str]:
        return sorted(name for name, aliases in self.indices.items() if alias in aliases)

    async def create_index(self, index_name, mappings=None, settings=None, aliases=None) -> bool:
        self.create_calls += 1
        await self._yield()
        if index_name in self.indices:
            raise IndexAlreadyExistsError(f"索引 '{index_name}' 已存在")
        self.indices[index_name] = set(aliases or [])
        return True

    async def create_index_if_absent(
        self, index_name, mappings=None, settings=None, aliases=None
    ) -> bool:
        try:
            return await self.create_index(index_name, mappings, settings, aliases)
        except IndexAlreadyExistsError:
            return False

    async def delete_index(self, index_name: str) -> bool:
        await self._yield()
        matched = [name for name in self.indices if fnmatch.fnmatchcase(name, index_name)]
        for name in matched:
            del self.indices[name]
            self.deleted.append(name)
        return bool(matched)

    async def index_exists(self, index_name: str) -> bool:
        await self._yield()
        return index_name in self.indices

    async def alias_exists(self, alias_name: str) -> bool:
        await self._yield()
        return bool(self.holders_of(alias_name))

    async def get_alias(self, alias_name: str) -> list[str]:
        await self._yield()
        return self.holders_of(alias_name)

    async def list_indices(self, pattern: str) -> list[PhysicalIndex]:
        await self._yield()
        return [
            PhysicalIndex(name=name, aliases=sorted(aliases))
            for name, aliases in sorted(self.indices.items())
            if fnmatch.fnmatchcase(name, pattern)
        ]

    async def update_aliases(self, actions: list[AliasAction]) -> bool:
        if not actions:
            return False
        await self._yield()
        if any(action.index not in self.indices for action in actions):
            return False
        for action in actions:
            if action.action is AliasActionType.ADD:
                self.indices[action.index].add(action.alias)
            else:
                self.indices[action.index].discard(action.alias)
        self.alias_batches.append(list(actions))
        return True

    async def put_alias(self, index_name: str, alias_name: str) -> bool:
        return await self.update_aliases([AliasAction.add(index_name, alias_name)])

    async def reindex(
        self,
        source,
        destination,
        script=None,
        query=None,
        progress_callback=None,
        poll_interval=1.0,
    ) -> ReindexResult:
        await self._yield()
        self.reindex_calls.append(
            {"source": source, "destination": destination, "script": script, "query": query}
        )
        if self.fail_reindex:
            raise ReindexError(f"重建索引 '{source}' -> '{destination}' 失败", task_id="fake:1")
        self.indices.setdefault(destination, set())
        if progress_callback is not None:
            await progress_callback(0, destination)
            await progress_callback(100, destination)
        return ReindexResult(source=source, destination=destination, task_id="fake:1")


def make_api_error(error_cls, status: int, message: str = "error", body=None):
    """构造 elasticsearch ApiError 子类实例."""
    meta = ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    return error_cls(message=message, meta=meta, body=body or {})


@pytest.fixture
def clock() -> Clock:
    """固定在 2024-01-10 12:00 UTC 的时钟."""
    return Clock(datetime(2024, 1, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def fake_manager() -> FakeIndexManager:
    """内存中的索引管理器."""
    return FakeIndexManager()


@pytest.fixture
def api_error():
    """返回构造 ApiError 的工厂函数."""
    return make_api_error
