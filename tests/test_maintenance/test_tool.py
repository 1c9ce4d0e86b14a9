"""索引维护协调器单元测试."""

from datetime import UTC, datetime, timedelta

import pytest

from indexflow.index_manager import AliasAction, BackendUnavailableError, IndexManagerError
from indexflow.maintenance import MaintenanceCoordinator, MaintenanceResult
from indexflow.time_series import DailyIndex, IndexAliasAge, TimeSeriesConfig


@pytest.fixture
def events(fake_manager, clock) -> DailyIndex:
    """events v2 按天分区，保留 7 天，当前时间 2024-01-10 12:00."""
    config = TimeSeriesConfig(
        name="events",
        version=2,
        max_index_age="7d",
        aliases=[IndexAliasAge("events-today", "1d")],
    )
    return DailyIndex(fake_manager, config, now_func=clock, poll_interval=0)


@pytest.fixture
def coordinator(events: DailyIndex) -> MaintenanceCoordinator:
    return events.maintenance


# ==================== 别名重新分配 ====================


class TestUpdateAliases:
    """别名重新分配测试."""

    async def test_assigns_missing_bucket_alias(self, events: DailyIndex, fake_manager) -> None:
        """没有分桶别名时指向最老版本，并按时间窗口挂载客户端别名."""
        fake_manager.add_index("events-v1-2024.01.09")
        fake_manager.add_index("events-v2-2024.01.09")

        result = await events.maintain()

        assert fake_manager.holders_of("events-2024.01.09") == ["events-v1-2024.01.09"]
        assert set(result.alias_actions) == {
            AliasAction.add("events-v1-2024.01.09", "events"),
            AliasAction.add("events-v1-2024.01.09", "events-today"),
        }
        assert fake_manager.aliases_of("events-v2-2024.01.09") == set()

    async def test_second_pass_is_noop(self, events: DailyIndex, fake_manager, clock) -> None:
        """连续两次维护，第二次不产生任何别名变化."""
        fake_manager.add_index("events-v1-2024.01.05", "events-2024.01.05", "events-today")
        fake_manager.add_index("events-v2-2024.01.05", "events")
        fake_manager.add_index("events-v2-2024.01.09")
        fake_manager.add_index("events-v2-2024.01.10", "events-2024.01.10")

        first = await events.maintain()
        batches = len(fake_manager.alias_batches)
        second = await events.maintain()

        assert first.changed is True
        assert second.alias_actions == []
        assert second.changed is False
        assert len(fake_manager.alias_batches) == batches

    async def test_removes_aliases_from_newer_version(self, events: DailyIndex, fake_manager) -> None:
        """非当前版本的索引不持有客户端别名."""
        fake_manager.add_index("events-v1-2024.01.08", "events-2024.01.08", "events")
        fake_manager.add_index("events-v2-2024.01.08", "events")

        result = await events.maintain()

        assert result.alias_actions == [AliasAction.remove("events-v2-2024.01.08", "events")]

    async def test_alias_window_moves_with_time(self, events: DailyIndex, fake_manager, clock) -> None:
        """时间推进后短窗口别名从旧分桶上移除."""
        fake_manager.add_index(
            "events-v2-2024.01.10", "events-2024.01.10", "events", "events-today"
        )
        assert (await events.maintain()).alias_actions == []

        clock.advance(timedelta(days=2))
        result = await events.maintain()

        assert result.alias_actions == [AliasAction.remove("events-v2-2024.01.10", "events-today")]

    async def test_expired_bucket_loses_client_aliases(self, fake_manager, clock) -> None:
        """过期分桶在保留索引的情况下也会移除客户端别名."""
        config = TimeSeriesConfig(name="events", max_index_age="7d", discard_expired_indexes=False)
        index = DailyIndex(fake_manager, config, now_func=clock)
        fake_manager.add_index("events-v1-2024.01.01", "events-2024.01.01", "events")

        result = await index.maintain()

        assert result.alias_actions == [AliasAction.remove("events-v1-2024.01.01", "events")]
        assert result.deleted_indices == []
        assert "events-v1-2024.01.01" in fake_manager.indices

    async def test_expiration_boundary(self, events: DailyIndex, fake_manager, clock) -> None:
        """恰好到达过期时间：客户端别名被移除，索引本身保留到严格超过过期时间."""
        fake_manager.add_index("events-v2-2024.01.02", "events-2024.01.02", "events")
        clock.now = datetime(2024, 1, 9, 23, 59, 59, 999999, tzinfo=UTC)

        result = await events.maintain()

        assert result.alias_actions == [AliasAction.remove("events-v2-2024.01.02", "events")]
        assert result.deleted_indices == []
        assert "events-v2-2024.01.02" in fake_manager.indices

        clock.advance(timedelta(microseconds=1))
        result = await events.maintain()

        assert result.deleted_indices == ["events-v2-2024.01.02"]

    async def test_empty(self, events: DailyIndex) -> None:
        result = await events.maintain()
        assert result == MaintenanceResult()


# ==================== 过期索引清理 ====================


class BrokenDeleteManager:
    """包装 FakeIndexManager，删除指定索引时失败."""

    def __init__(self, inner, failing: str, status_code: int | None) -> None:
        self._inner = inner
        self._failing = failing
        self._status_code = status_code

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def delete_index(self, index_name: str) -> bool:
        if index_name == self._failing:
            raise BackendUnavailableError("delete failed", status_code=self._status_code)
        return await self._inner.delete_index(index_name)


class TestDeleteExpired:
    """过期索引清理测试."""

    async def test_deletes_expired(self, events: DailyIndex, fake_manager) -> None:
        fake_manager.add_index("events-v1-2024.01.01", "events-2024.01.01")
        fake_manager.add_index("events-v1-2024.01.02", "events-2024.01.02")
        fake_manager.add_index("events-v2-2024.01.09", "events-2024.01.09")

        result = await events.maintain()

        assert result.deleted_indices == ["events-v1-2024.01.01", "events-v1-2024.01.02"]
        assert list(fake_manager.indices) == ["events-v2-2024.01.09"]

    async def test_optional_tasks_skipped(self, events: DailyIndex, fake_manager) -> None:
        fake_manager.add_index("events-v1-2024.01.01", "events-2024.01.01")

        result = await events.maintain(include_optional_tasks=False)

        assert result.deleted_indices == []
        assert "events-v1-2024.01.01" in fake_manager.indices

    async def test_single_failure_does_not_block_others(
        self, events: DailyIndex, fake_manager, caplog
    ) -> None:
        """单个索引删除失败只记录日志，其余索引继续清理."""
        fake_manager.add_index("events-v1-2024.01.01")
        fake_manager.add_index("events-v1-2024.01.02")
        events.maintenance.index_manager = BrokenDeleteManager(
            fake_manager, "events-v1-2024.01.01", status_code=500
        )

        result = await events.maintain()

        assert result.failed_indices == ["events-v1-2024.01.01"]
        assert result.deleted_indices == ["events-v1-2024.01.02"]
        assert "events-v1-2024.01.01" in caplog.text

    async def test_unreachable_aborts(self, events: DailyIndex, fake_manager) -> None:
        """搜索引擎不可达时终止本次维护."""
        fake_manager.add_index("events-v1-2024.01.01")
        events.maintenance.index_manager = BrokenDeleteManager(
            fake_manager, "events-v1-2024.01.01", status_code=None
        )

        with pytest.raises(BackendUnavailableError):
            await events.maintain()


# ==================== 别名创建 ====================


class RacingManager:
    """put_alias 失败，但别名已被其他进程创建."""

    def __init__(self, inner, status_code: int | None, alias_created: bool) -> None:
        self._inner = inner
        self._status_code = status_code
        self._alias_created = alias_created
        self._checks = 0

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def alias_exists(self, alias_name: str) -> bool:
        self._checks += 1
        return self._checks > 1 and self._alias_created

    async def put_alias(self, index_name: str, alias_name: str) -> bool:
        raise BackendUnavailableError("conflict", status_code=self._status_code)


class TestCreateAlias:
    """create_alias 测试."""

    async def test_creates(self, coordinator: MaintenanceCoordinator, fake_manager) -> None:
        fake_manager.add_index("events-v1-2024.01.09")

        assert await coordinator.create_alias("events-v1-2024.01.09", "events-2024.01.09") is True
        assert await coordinator.create_alias("events-v1-2024.01.09", "events-2024.01.09") is False

    async def test_lost_race(self, coordinator: MaintenanceCoordinator, fake_manager) -> None:
        """失败后确认别名已被并发创建，视为成功."""
        coordinator.index_manager = RacingManager(fake_manager, 400, alias_created=True)

        assert await coordinator.create_alias("events-v1-2024.01.09", "events-2024.01.09") is False

    async def test_failed(self, coordinator: MaintenanceCoordinator, fake_manager) -> None:
        coordinator.index_manager = RacingManager(fake_manager, 400, alias_created=False)

        with pytest.raises(IndexManagerError):
            await coordinator.create_alias("events-v1-2024.01.09", "events-2024.01.09")

    async def test_unreachable(self, coordinator: MaintenanceCoordinator, fake_manager) -> None:
        coordinator.index_manager = RacingManager(fake_manager, None, alias_created=True)

        with pytest.raises(BackendUnavailableError):
            await coordinator.create_alias("events-v1-2024.01.09", "events-2024.01.09")

    async def test_bucket_alias_failure_is_logged(
        self, events: DailyIndex, fake_manager, caplog
    ) -> None:
        """分桶别名创建失败时记录日志，继续按最老版本分配客户端别名."""
        fake_manager.add_index("events-v1-2024.01.09")
        events.maintenance.index_manager = RacingManager(fake_manager, 400, alias_created=False)

        result = await events.maintain(include_optional_tasks=False)

        assert "events-2024.01.09" in caplog.text
        assert AliasAction.add("events-v1-2024.01.09", "events") in result.alias_actions
