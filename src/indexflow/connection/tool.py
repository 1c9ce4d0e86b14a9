"""ES 客户端工厂工具模块.

使用示例:
    from indexflow.connection import ClusterConfig, ClusterRole, ESClientFactory

    clusters = [
        ClusterConfig(hosts=["http://localhost:9200"], role=ClusterRole.MASTER),
        ClusterConfig(hosts=["http://localhost:9201"], role=ClusterRole.READ),
    ]

    async with ESClientFactory(clusters) as factory:
        manager = factory.create_index_manager()
        await manager.index_exists("events-v1")
"""

from __future__ import annotations

import logging
from typing import Any

from elasticsearch import AsyncElasticsearch
from elasticsearch.exceptions import ApiError, TransportError

from ..index_manager.tool import IndexManager
from .exceptions import ClusterNotFoundError, ConnectionConfigError
from .models import ClusterConfig, ClusterRole, ConnectionConfig

logger = logging.getLogger(__name__)

# 视为健康的集群状态
HEALTHY_STATUSES = ("green", "yellow")


class ESClientFactory:
    """AsyncElasticsearch 客户端工厂.

    按集群角色惰性创建并缓存客户端，支持读写分离、多种认证方式、
    异步上下文管理器和健康检查。

    Args:
        clusters: 集群配置列表，不可为空
        connection_config: 连接池配置，默认使用 ConnectionConfig 的默认值

    Raises:
        ConnectionConfigError: 当 clusters 为空或角色重复时抛出
    """

    def __init__(
        self,
        clusters: list[ClusterConfig],
        connection_config: ConnectionConfig | None = None,
    ) -> None:
        if not clusters:
            raise ConnectionConfigError("clusters 不能为空，请提供至少一个集群配置")

        roles = [cluster.role for cluster in clusters]
        if len(set(roles)) != len(roles):
            raise ConnectionConfigError(f"集群角色不能重复: {[role.value for role in roles]}")

        self._clusters = clusters
        self._connection_config = connection_config or ConnectionConfig()
        self._clients: dict[ClusterRole, AsyncElasticsearch] = {}

    def _create_client(self, cluster_config: ClusterConfig) -> AsyncElasticsearch:
        kwargs: dict[str, Any] = {"hosts": cluster_config.hosts}
        kwargs.update(self._connection_config.client_kwargs())
        kwargs.update(cluster_config.auth_kwargs())
        logger.info(f"创建 {cluster_config.role.value} 集群客户端: {cluster_config.hosts}")
        return AsyncElasticsearch(**kwargs)

    def _default_cluster(self) -> ClusterConfig:
        for cluster in self._clusters:
            if cluster.role == ClusterRole.MASTER:
                return cluster
        return self._clusters[0]

    def get_client(self, role: ClusterRole | None = None) -> AsyncElasticsearch:
        """获取指定角色的客户端.

        role 为 None 时返回 MASTER 角色的客户端，不存在 MASTER 时返回第一个集群的客户端。

        Raises:
            ClusterNotFoundError: 当指定角色的集群不存在时抛出
        """
        if role is None:
            role = self._default_cluster().role

        if role not in self._clients:
            cluster = next((c for c in self._clusters if c.role == role), None)
            if cluster is None:
                raise ClusterNotFoundError(f"未找到角色为 {role.value} 的集群配置")
            self._clients[role] = self._create_client(cluster)
        return self._clients[role]

    def get_read_client(self) -> AsyncElasticsearch:
        """获取读集群客户端，不存在 READ 角色时回退到默认客户端."""
        try:
            return self.get_client(ClusterRole.READ)
        except ClusterNotFoundError:
            return self.get_client()

    def get_write_client(self) -> AsyncElasticsearch:
        """获取写集群客户端，不存在 WRITE 角色时回退到默认客户端."""
        try:
            return self.get_client(ClusterRole.WRITE)
        except ClusterNotFoundError:
            return self.get_client()

    def create_index_manager(self, role: ClusterRole | None = None) -> IndexManager:
        """创建绑定到指定角色客户端的 IndexManager.

        索引生命周期操作都是写操作，默认使用写集群客户端。
        """
        client = self.get_client(role) if role is not None else self.get_write_client()
        return IndexManager(client)

    # ==================== 生命周期管理 ====================

    async def __aenter__(self) -> ESClientFactory:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_all()

    async def close_all(self) -> None:
        """关闭所有已创建的客户端并清空缓存，关闭后可重新获取客户端."""
        clients, self._clients = self._clients, {}
        for role, client in clients.items():
            try:
                await client.close()
            except (TransportError, OSError) as e:
                logger.warning(f"关闭 {role.value} 集群客户端失败: {str(e)}")

    # ==================== 健康检查 ====================

    async def health_check(self, role: ClusterRole | None = None) -> dict[str, dict]:
        """检查集群健康状态.

        Args:
            role: 指定要检查的集群角色，None 表示检查全部

        Returns:
            以角色名为键的健康信息字典；集群不可达时 status 为 "unreachable"
        """
        result: dict[str, dict] = {}

        clusters = self._clusters
        if role is not None:
            clusters = [c for c in self._clusters if c.role == role]

        for cluster in clusters:
            role_name = cluster.role.value
            try:
                health = await self.get_client(cluster.role).cluster.health()
            except (ApiError, TransportError) as e:
                logger.warning(f"{role_name} 集群健康检查失败: {str(e)}")
                result[role_name] = {
                    "cluster_name": "unknown",
                    "status": "unreachable",
                    "error": str(e),
                }
                continue

            result[role_name] = {
                "cluster_name": health.get("cluster_name", "unknown"),
                "status": health.get("status", "unknown"),
                "number_of_nodes": health.get("number_of_nodes", 0),
            }

        return result

    async def is_healthy(self, role: ClusterRole | None = None) -> bool:
        """所有指定集群状态均为 green 或 yellow 时返回 True."""
        health_info = await self.health_check(role)
        if not health_info:
            return False
        return all(info.get("status") in HEALTHY_STATUSES for info in health_info.values())
