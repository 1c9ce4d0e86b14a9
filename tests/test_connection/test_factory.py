"""ESClientFactory 单元测试.

覆盖客户端创建与读写分离、认证参数透传、
异步上下文管理（close_all）以及健康检查。
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from elastic_transport import ConnectionError

from indexflow.connection import (
    ClusterConfig,
    ClusterNotFoundError,
    ClusterRole,
    ConnectionConfig,
    ConnectionConfigError,
    ESClientFactory,
)
from indexflow.index_manager import IndexManager

ES_PATCH_PATH = "indexflow.connection.tool.AsyncElasticsearch"


def _mock_client() -> MagicMock:
    client = MagicMock()
    client.close = AsyncMock()
    client.cluster = MagicMock()
    client.cluster.health = AsyncMock(
        return_value={"cluster_name": "es", "status": "green", "number_of_nodes": 3}
    )
    return client


@pytest.fixture
def master_cluster() -> ClusterConfig:
    return ClusterConfig(hosts=["http://master:9200"], role=ClusterRole.MASTER)


@pytest.fixture
def read_cluster() -> ClusterConfig:
    return ClusterConfig(hosts=["http://read:9200"], role=ClusterRole.READ)


@pytest.fixture
def write_cluster() -> ClusterConfig:
    return ClusterConfig(hosts=["http://write:9200"], role=ClusterRole.WRITE)


@pytest.fixture
def mock_es():
    with patch(ES_PATCH_PATH) as mock_cls:
        mock_cls.side_effect = lambda **kwargs: _mock_client()
        yield mock_cls


# ============================================================
# 初始化
# ============================================================


class TestESClientFactoryInit:
    """ESClientFactory 初始化测试."""

    def test_empty_clusters_raises_error(self) -> None:
        with pytest.raises(ConnectionConfigError, match="clusters 不能为空"):
            ESClientFactory(clusters=[])

    def test_duplicate_roles(self, master_cluster) -> None:
        """测试重复的集群角色."""
        duplicate = ClusterConfig(hosts=["http://other:9200"], role=ClusterRole.MASTER)
        with pytest.raises(ConnectionConfigError):
            ESClientFactory([master_cluster, duplicate])

    def test_clients_created_lazily(self, mock_es, master_cluster) -> None:
        ESClientFactory([master_cluster])
        mock_es.assert_not_called()


# ============================================================
# 客户端获取
# ============================================================


class TestGetClient:
    """客户端获取测试."""

    def test_client_kwargs(self, mock_es) -> None:
        """测试连接池和认证参数透传给 AsyncElasticsearch."""
        cluster = ClusterConfig(
            hosts=["https://es:9200"], api_key="secret", ca_certs="/etc/ca.pem"
        )
        factory = ESClientFactory([cluster], ConnectionConfig(request_timeout=60))

        factory.get_client()

        kwargs = mock_es.call_args.kwargs
        assert kwargs["hosts"] == ["https://es:9200"]
        assert kwargs["api_key"] == "secret"
        assert kwargs["ca_certs"] == "/etc/ca.pem"
        assert kwargs["request_timeout"] == 60
        assert kwargs["connections_per_node"] == 10

    def test_client_cached(self, mock_es, master_cluster) -> None:
        factory = ESClientFactory([master_cluster])

        assert factory.get_client() is factory.get_client(ClusterRole.MASTER)
        assert mock_es.call_count == 1

    def test_default_without_master(self, mock_es, read_cluster) -> None:
        """没有 MASTER 时默认使用第一个集群."""
        factory = ESClientFactory([read_cluster])

        factory.get_client()

        assert mock_es.call_args.kwargs["hosts"] == ["http://read:9200"]

    def test_missing_role(self, mock_es, master_cluster) -> None:
        factory = ESClientFactory([master_cluster])
        with pytest.raises(ClusterNotFoundError):
            factory.get_client(ClusterRole.READ)

    def test_read_write_split(self, mock_es, master_cluster, read_cluster, write_cluster) -> None:
        factory = ESClientFactory([master_cluster, read_cluster, write_cluster])

        assert factory.get_read_client() is factory.get_client(ClusterRole.READ)
        assert factory.get_write_client() is factory.get_client(ClusterRole.WRITE)

    def test_fallback_to_default(self, mock_es, master_cluster) -> None:
        factory = ESClientFactory([master_cluster])

        assert factory.get_read_client() is factory.get_client()
        assert factory.get_write_client() is factory.get_client()

    def test_create_index_manager(self, mock_es, master_cluster, write_cluster) -> None:
        """索引管理器默认绑定写集群客户端."""
        factory = ESClientFactory([master_cluster, write_cluster])

        manager = factory.create_index_manager()

        assert isinstance(manager, IndexManager)
        assert manager.es_client is factory.get_client(ClusterRole.WRITE)
        assert factory.create_index_manager(ClusterRole.MASTER).es_client is factory.get_client()


# ============================================================
# 生命周期
# ============================================================


class TestLifecycle:
    """异步上下文管理与关闭测试."""

    async def test_context_manager_closes_clients(self, mock_es, master_cluster, read_cluster) -> None:
        async with ESClientFactory([master_cluster, read_cluster]) as factory:
            master = factory.get_client()
            read = factory.get_read_client()

        master.close.assert_awaited_once()
        read.close.assert_awaited_once()

    async def test_close_all_recreates(self, mock_es, master_cluster) -> None:
        """关闭后再次获取会创建新的客户端."""
        factory = ESClientFactory([master_cluster])
        first = factory.get_client()

        await factory.close_all()

        assert factory.get_client() is not first

    async def test_close_error_logged(self, mock_es, master_cluster, read_cluster) -> None:
        """单个客户端关闭失败不影响其他客户端."""
        factory = ESClientFactory([master_cluster, read_cluster])
        master = factory.get_client()
        read = factory.get_read_client()
        master.close.side_effect = ConnectionError("closed")

        await factory.close_all()

        read.close.assert_awaited_once()


# ============================================================
# 健康检查
# ============================================================


class TestHealthCheck:
    """健康检查测试."""

    async def test_healthy(self, mock_es, master_cluster) -> None:
        factory = ESClientFactory([master_cluster])

        health = await factory.health_check()

        assert health == {"master": {"cluster_name": "es", "status": "green", "number_of_nodes": 3}}
        assert await factory.is_healthy() is True

    async def test_unreachable(self, mock_es, master_cluster, read_cluster) -> None:
        factory = ESClientFactory([master_cluster, read_cluster])
        factory.get_read_client().cluster.health.side_effect = ConnectionError("refused")

        health = await factory.health_check()

        assert health["read"]["status"] == "unreachable"
        assert health["master"]["status"] == "green"
        assert await factory.is_healthy() is False
        assert await factory.is_healthy(ClusterRole.MASTER) is True

    async def test_red_cluster(self, mock_es, master_cluster) -> None:
        factory = ESClientFactory([master_cluster])
        factory.get_client().cluster.health.return_value = {"status": "red"}

        assert await factory.is_healthy() is False

    async def test_unknown_role(self, mock_es, master_cluster) -> None:
        factory = ESClientFactory([master_cluster])
        assert await factory.is_healthy(ClusterRole.READ) is False
