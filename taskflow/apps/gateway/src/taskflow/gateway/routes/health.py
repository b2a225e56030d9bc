"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性与表结构、数据库所在磁盘剩余空间。
"""

import shutil
from pathlib import Path

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse
from taskflow.core.config import READY_MIN_DISK_MB, get_db_path
from taskflow.core.store.sqlite_init import missing_tables, verify_wal_mode

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查

    检查项：
    1. sqlite: 连接可用且四张表都已创建
    2. wal_mode: 是否运行在 WAL 模式（仅展示，不影响就绪状态）
    3. disk_space_mb: 数据库目录所在磁盘剩余空间，低于 READY_MIN_DISK_MB 视为未就绪
    """
    checks: dict = {}
    all_ok = True

    store_group = request.app.state.store_group
    try:
        missing = await missing_tables(store_group.conn)
        if missing:
            checks["sqlite"] = f"error: missing tables {', '.join(missing)}"
            all_ok = False
        else:
            checks["sqlite"] = "ok"
        checks["wal_mode"] = await verify_wal_mode(store_group.conn)
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {e}"
        all_ok = False

    db_dir = Path(get_db_path()).parent
    try:
        free_mb = shutil.disk_usage(db_dir if db_dir.exists() else Path.cwd()).free // (1024 * 1024)
    except OSError as e:
        log.warning("readiness_disk_check_failed", path=str(db_dir), error=str(e))
        free_mb = 0
    checks["disk_space_mb"] = free_mb
    if free_mb < READY_MIN_DISK_MB:
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
