"""TraceMiddleware -- 为任务/项目操作绑定追踪上下文

从路径中提取 task_id / project_id 绑定到 structlog contextvars，
同一任务的所有请求日志可以按 trace_id 关联。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 路径段 -> 绑定的上下文字段
_ID_SEGMENTS = {
    "tasks": "task_id",
    "projects": "project_id",
    "project": "project_id",
}


def extract_path_ids(path: str) -> dict[str, str]:
    """从 /api/tasks/{id}、/api/projects/{id}、/api/stream/project/{id} 中提取 ID"""
    parts = [p for p in path.split("/") if p]
    ids: dict[str, str] = {}
    for i, part in enumerate(parts[:-1]):
        field = _ID_SEGMENTS.get(part)
        if field and field not in ids:
            ids[field] = parts[i + 1]
    return ids


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        ids = extract_path_ids(request.url.path)
        if "task_id" in ids:
            ids["trace_id"] = f"trace-{ids['task_id']}"
        if ids:
            structlog.contextvars.bind_contextvars(**ids)

        return await call_next(request)
