"""GatewayStore -- 通过 gateway REST API 访问聚合存储

满足 AggregateStore 协议，乐观更新控制器和计数重算器可以直接使用远端存储。
状态写入时携带 recalculate=false：计数刷新由调用方的 CounterRecalculator 负责。
"""

import time

import httpx
import structlog
from pydantic import ValidationError
from taskflow.core.models import Project, Task, TaskCounts, TaskStatus

from .config import ClientConfig
from .exceptions import ClientError, GatewayResponseError, GatewayUnreachableError

log = structlog.get_logger()

# 健康检查超时（秒）
HEALTH_CHECK_TIMEOUT_S = 5

# 传输层异常（连接、读写、超时、协议）统一转换为 GatewayUnreachableError
_CONNECTION_ERROR_TYPES = httpx.TransportError


class GatewayStore:
    """gateway HTTP 客户端

    Args:
        gateway_url: gateway 基础 URL
        timeout_s: 请求超时（秒）
        actor_id: 通过 X-User-Id 头传递的操作者 ID
        transport: 自定义 httpx transport（测试时注入 ASGITransport / MockTransport）
    """

    def __init__(
        self,
        gateway_url: str = "http://localhost:8000",
        timeout_s: float = 10,
        actor_id: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._gateway_url = gateway_url.rstrip("/")
        headers = {"X-User-Id": actor_id} if actor_id else {}
        self._http = httpx.AsyncClient(
            base_url=self._gateway_url,
            timeout=timeout_s,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GatewayStore":
        return cls(
            gateway_url=config.gateway_url,
            timeout_s=config.timeout_s,
            actor_id=config.actor_id,
            transport=transport,
        )

    async def __aenter__(self) -> "GatewayStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        """更新任务状态

        Raises:
            GatewayUnreachableError: 连接失败或超时
            GatewayResponseError: gateway 拒绝（任务不存在、非法流转等）
        """
        await self._request(
            "PATCH",
            f"/api/tasks/{task_id}/status",
            params={"recalculate": "false"},
            json={"status": TaskStatus(status).value},
        )

    async def get_tasks_by_project(self, project_id: str) -> list[Task]:
        """读取项目下全部任务（gateway 已在读取边界完成归一化）"""
        data = await self._request("GET", f"/api/projects/{project_id}/tasks")
        tasks: list[Task] = []
        for raw in data.get("tasks", []):
            try:
                tasks.append(Task.model_validate(raw))
            except ValidationError as e:
                log.warning(
                    "task_record_skipped",
                    task_id=raw.get("task_id"),
                    error=str(e),
                )
        return tasks

    async def update_project_counters(self, project_id: str, counts: TaskCounts) -> None:
        await self._request(
            "PUT",
            f"/api/projects/{project_id}/counters",
            json=counts.model_dump(by_alias=True),
        )

    async def get_project(self, project_id: str) -> Project:
        data = await self._request("GET", f"/api/projects/{project_id}")
        return Project.model_validate(data["project"])

    async def health_check(self) -> bool:
        """检查 gateway 可达性

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            resp = await self._http.get("/health", timeout=HEALTH_CHECK_TIMEOUT_S)
            return resp.status_code == 200
        except Exception as e:
            log.warning("gateway_health_check_failed", error=str(e))
            return False

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        """发送请求并解析 JSON，错误统一转换为 ClientError 子类"""
        start_time = time.monotonic()
        try:
            resp = await self._http.request(method, path, **kwargs)
        except _CONNECTION_ERROR_TYPES as e:
            log.error(
                "gateway_request_failed",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GatewayUnreachableError(self._gateway_url, e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        if resp.status_code >= 400:
            code, message = _parse_error(resp)
            log.warning(
                "gateway_request_rejected",
                method=method,
                path=path,
                status_code=resp.status_code,
                code=code,
                duration_ms=duration_ms,
            )
            raise GatewayResponseError(resp.status_code, code, message)

        log.debug(
            "gateway_request_completed",
            method=method,
            path=path,
            status_code=resp.status_code,
            duration_ms=duration_ms,
        )
        try:
            return resp.json()
        except ValueError as e:
            raise ClientError(f"Invalid JSON from gateway: {path}") from e


def _parse_error(resp: httpx.Response) -> tuple[str, str]:
    """解析错误信封 {"error": {"code", "message"}}"""
    try:
        error = resp.json().get("error") or {}
    except ValueError:
        error = {}
    if not isinstance(error, dict):
        error = {}
    return (
        str(error.get("code") or f"HTTP_{resp.status_code}"),
        str(error.get("message") or resp.reason_phrase),
    )
