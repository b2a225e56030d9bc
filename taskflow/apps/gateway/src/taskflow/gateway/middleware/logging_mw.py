"""LoggingMiddleware -- 请求级日志

为每个 HTTP 请求生成 request_id，连同操作者 ID 绑定到 structlog contextvars。
探针路径不记录开始/结束日志；5xx 与未处理异常按 warning/error 记录。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

log = structlog.get_logger()

# 探针请求频率高，不写访问日志
_SILENT_PATHS = frozenset({"/health", "/ready"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        path = request.url.path
        silent = path in _SILENT_PATHS
        started = time.monotonic()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
            actor_id=request.headers.get("x-user-id") or "system",
        )
        if not silent:
            await log.ainfo("request_started")

        try:
            response = await call_next(request)
        except Exception as e:
            await log.aerror(
                "request_failed",
                error_type=type(e).__name__,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        if response.status_code >= 500:
            await log.awarning(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
        elif not silent:
            await log.ainfo(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers["X-Request-ID"] = request_id
        return response
