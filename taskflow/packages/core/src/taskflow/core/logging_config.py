"""structlog 配置模块

gateway 与 CLI 共用同一套处理器链：
- dev 模式：ConsoleRenderer 可读输出
- json 模式：结构化 JSON 输出，异常栈格式化为字符串

渲染模式与级别可由参数指定，缺省时读取 TASKFLOW_LOG_FORMAT / TASKFLOW_LOG_LEVEL。
"""

import logging
import os

import structlog

LOG_FORMATS = ("dev", "json")

# 第三方库的 DEBUG/INFO 日志会淹没请求日志
_QUIET_LOGGERS = ("aiosqlite", "httpx", "httpcore", "uvicorn.access")


def _resolve_level(value: str) -> tuple[int, bool]:
    level = logging.getLevelName(value.upper())
    if isinstance(level, int):
        return level, True
    return logging.INFO, False


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog + 标准库 logging

    Args:
        log_format: "dev" 或 "json"，None 时读取 TASKFLOW_LOG_FORMAT（默认 dev）
        log_level: 日志级别名称，None 时读取 TASKFLOW_LOG_LEVEL（默认 INFO）
    """
    log_format = (log_format or os.environ.get("TASKFLOW_LOG_FORMAT", "dev")).lower()
    raw_level = log_level or os.environ.get("TASKFLOW_LOG_LEVEL", "INFO")
    level, level_ok = _resolve_level(raw_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    log = structlog.get_logger()
    if log_format not in LOG_FORMATS:
        log.warning("invalid_log_format_config", value=log_format, fallback="dev")
    if not level_ok:
        log.warning("invalid_log_level_config", value=raw_level, fallback="INFO")
