"""Logfire APM 可选接入

LOGFIRE_SEND_TO_LOGFIRE=true 时启用（需要 LOGFIRE_TOKEN 并安装 observability extra），
默认或初始化失败时只保留本地 structlog 输出。
"""

import os

import structlog
from fastapi import FastAPI

log = structlog.get_logger()


def logfire_enabled() -> bool:
    return os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() == "true"


def setup_logfire(app: FastAPI) -> bool:
    """为 app 启用 Logfire 追踪

    Returns:
        True 如果 Logfire 已启用
    """
    if not logfire_enabled():
        return False
    try:
        import logfire

        logfire.configure(service_name="taskflow-gateway")
        logfire.instrument_fastapi(app)
    except Exception as e:
        log.warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            message="Logfire 初始化失败，降级为纯本地日志",
        )
        return False
    return True
