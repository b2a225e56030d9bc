"""全局 pytest 配置 -- 临时 SQLite 数据库路径与环境变量隔离"""

import os
from pathlib import Path

import pytest


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径（目录由 create_store_group 创建）"""
    return tmp_path / "sqlite" / "test.db"


@pytest.fixture
def gateway_env(tmp_db_path: Path):
    """为 gateway app 设置数据库路径并关闭 logfire 上报，结束后恢复"""
    os.environ["TASKFLOW_DB_PATH"] = str(tmp_db_path)
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"
    yield tmp_db_path
    for key in ["TASKFLOW_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)
