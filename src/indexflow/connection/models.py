"""ES 客户端工厂数据模型定义模块.

- ClusterRole: 集群角色枚举
- ClusterConfig: 集群地址与认证配置
- ConnectionConfig: 连接池与重试配置
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import ConnectionConfigError


class ClusterRole(Enum):
    """集群角色枚举.

    Attributes:
        MASTER: 主集群，默认角色，读写均可
        READ: 只读集群（查询、枚举索引）
        WRITE: 只写集群（创建索引、更新别名、重建索引）
    """

    MASTER = "master"
    READ = "read"
    WRITE = "write"


@dataclass
class ClusterConfig:
    """集群配置模型.

    Attributes:
        hosts: ES 节点地址列表（必需，不可为空）
        role: 集群角色，默认 MASTER
        username: Basic Auth 用户名
        password: Basic Auth 密码
        api_key: API Key 认证（字符串或 (id, key) 元组）
        bearer_token: Bearer Token 认证
        ca_certs: CA 证书文件路径
        verify_certs: 是否验证 SSL 证书，默认 True

    Raises:
        ConnectionConfigError: hosts 为空，或同时配置了多种认证方式时抛出

    Examples:
        >>> config = ClusterConfig(
        ...     hosts=["https://localhost:9200"],
        ...     username="elastic",
        ...     password="changeme",
        ... )
    """

    hosts: list[str] = field(default_factory=list)
    role: ClusterRole = ClusterRole.MASTER
    username: str | None = None
    password: str | None = None
    api_key: str | tuple[str, str] | None = None
    bearer_token: str | None = None
    ca_certs: str | None = None
    verify_certs: bool = True

    def __post_init__(self) -> None:
        """校验集群配置参数合法性."""
        if not self.hosts:
            raise ConnectionConfigError("hosts 不能为空，请提供至少一个 ES 节点地址")

        if bool(self.username) != bool(self.password):
            raise ConnectionConfigError("username 和 password 必须同时提供")

        auth_methods = [
            name
            for name, value in (
                ("basic_auth", self.username),
                ("api_key", self.api_key),
                ("bearer_token", self.bearer_token),
            )
            if value
        ]
        if len(auth_methods) > 1:
            raise ConnectionConfigError(f"只能配置一种认证方式，当前配置了: {auth_methods}")

    def auth_kwargs(self) -> dict[str, Any]:
        """返回 AsyncElasticsearch 的认证与 TLS 参数."""
        kwargs: dict[str, Any] = {"verify_certs": self.verify_certs}
        if self.username and self.password:
            kwargs["basic_auth"] = (self.username, self.password)
        elif self.api_key:
            kwargs["api_key"] = self.api_key
        elif self.bearer_token:
            kwargs["bearer_auth"] = self.bearer_token
        if self.ca_certs:
            kwargs["ca_certs"] = self.ca_certs
        return kwargs


@dataclass
class ConnectionConfig:
    """连接池配置模型.

    重建索引任务通过轮询 _tasks 接口等待完成，单次请求不会长时间阻塞，
    request_timeout 只需覆盖单次请求。

    Attributes:
        connections_per_node: 每个节点的最大连接数，默认 10，必须 >= 1
        max_retries: 最大重试次数，默认 3
        retry_on_timeout: 超时是否重试，默认 True
        request_timeout: 单次请求超时时间（秒），默认 30
        http_compress: 是否启用 HTTP 压缩，默认 True
        sniff_on_start: 启动时是否嗅探节点，默认 False
        sniff_on_node_failure: 节点失败时是否嗅探，默认 False
        min_delay_between_sniffing: 两次嗅探的最小间隔（秒），默认 60

    Raises:
        ConnectionConfigError: 当参数不合法时抛出
    """

    connections_per_node: int = 10
    max_retries: int = 3
    retry_on_timeout: bool = True
    request_timeout: float = 30
    http_compress: bool = True
    sniff_on_start: bool = False
    sniff_on_node_failure: bool = False
    min_delay_between_sniffing: float = 60

    def __post_init__(self) -> None:
        """校验连接池配置参数合法性."""
        if self.connections_per_node < 1:
            raise ConnectionConfigError(
                f"connections_per_node 必须 >= 1，当前值: {self.connections_per_node}"
            )
        if self.max_retries < 0:
            raise ConnectionConfigError(f"max_retries 必须 >= 0，当前值: {self.max_retries}")
        if self.request_timeout <= 0:
            raise ConnectionConfigError(
                f"request_timeout 必须 > 0，当前值: {self.request_timeout}"
            )

    def client_kwargs(self) -> dict[str, Any]:
        return {
            "connections_per_node": self.connections_per_node,
            "max_retries": self.max_retries,
            "retry_on_timeout": self.retry_on_timeout,
            "request_timeout": self.request_timeout,
            "http_compress": self.http_compress,
            "sniff_on_start": self.sniff_on_start,
            "sniff_on_node_failure": self.sniff_on_node_failure,
            "min_delay_between_sniffing": self.min_delay_between_sniffing,
        }
