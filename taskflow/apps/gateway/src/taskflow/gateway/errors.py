"""错误响应 -- 统一 {"error": {"code", "message"}} 信封

领域异常在这里映射为 HTTP 状态码，路由只需让异常向上抛出。
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse
from taskflow.core.exceptions import (
    InvalidTransitionError,
    ProjectNotFoundError,
    ProjectReassignmentError,
    TaskNotFoundError,
    TaskStatusConflictError,
    UserNotFoundError,
)

log = structlog.get_logger()


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


# 异常类型 -> (HTTP 状态码, 错误码)
_ERROR_MAP: dict[type[Exception], tuple[int, str]] = {
    TaskNotFoundError: (404, "TASK_NOT_FOUND"),
    ProjectNotFoundError: (404, "PROJECT_NOT_FOUND"),
    UserNotFoundError: (404, "USER_NOT_FOUND"),
    InvalidTransitionError: (409, "INVALID_TRANSITION"),
    TaskStatusConflictError: (409, "STATUS_CONFLICT"),
    ProjectReassignmentError: (422, "PROJECT_REASSIGNMENT"),
}


async def _domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, code = _ERROR_MAP[type(exc)]
    await log.ainfo("request_rejected", code=code, error=str(exc))
    return error_response(status_code, code, str(exc))


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return error_response(422, "VALIDATION_ERROR", details or "Invalid request")


def register_exception_handlers(app: FastAPI) -> None:
    """注册领域异常与请求校验异常的处理器"""
    for exc_type in _ERROR_MAP:
        app.add_exception_handler(exc_type, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
