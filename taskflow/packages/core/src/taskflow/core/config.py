"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、新任务默认状态、SSE 心跳间隔等可配置常量。
"""

import os
from pathlib import Path

import structlog

from .models.enums import TaskStatus

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKFLOW_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKFLOW_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskflow.db"),
    )


def get_default_task_status() -> TaskStatus:
    """新建任务未指定状态时使用的初始状态"""
    value = os.environ.get("TASKFLOW_DEFAULT_STATUS", TaskStatus.TODO.value)
    try:
        return TaskStatus(value)
    except ValueError:
        log.warning(
            "invalid_default_status_config",
            env_var="TASKFLOW_DEFAULT_STATUS",
            value=value,
            fallback=TaskStatus.TODO.value,
        )
        return TaskStatus.TODO


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("TASKFLOW_SSE_HEARTBEAT_INTERVAL", "15")
)

# 每个变更订阅者的队列容量（超过则视为掉线）
CHANGE_QUEUE_MAXSIZE: int = int(
    os.environ.get("TASKFLOW_CHANGE_QUEUE_MAXSIZE", "100")
)

# 活动流单次查询上限
ACTIVITY_PAGE_LIMIT: int = 200

# /ready 要求的数据库磁盘最小剩余空间（MB）
READY_MIN_DISK_MB: int = int(
    os.environ.get("TASKFLOW_READY_MIN_DISK_MB", "50")
)
