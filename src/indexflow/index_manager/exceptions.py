"""索引管理器异常定义模块."""

from typing import Any

from ..exceptions import IndexflowError


class IndexManagerError(IndexflowError):
    """索引管理器基础异常类."""

    pass


class BackendUnavailableError(IndexManagerError):
    """搜索引擎调用失败异常.

    请求未能成功完成（传输层错误或非预期的 HTTP 状态）时抛出，调用方不应将其
    当作 "索引/别名不存在" 处理。

    Attributes:
        status_code: HTTP 状态码；集群不可达时为 None
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def unreachable(self) -> bool:
        """是否为集群不可达（未收到任何 HTTP 响应）."""
        return self.status_code is None


class IndexAlreadyExistsError(IndexManagerError):
    """索引已存在异常."""

    pass


class ReindexError(IndexManagerError):
    """重建索引操作异常.

    Attributes:
        task_id: 重建索引任务 ID（如果已提交）
        failures: 搜索引擎返回的失败明细
    """

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        failures: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.failures = failures or []
