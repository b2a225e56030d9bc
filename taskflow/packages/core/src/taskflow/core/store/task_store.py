"""TaskStore SQLite 实现

读取路径统一经过 normalize_task，负责人信息在同一次读取中批量解析。
写入方法不自动提交事务，需由调用方（transaction 模块）管理。
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum

import aiosqlite
import structlog

from ..models.enums import TaskStatus
from ..models.task import Task, normalize_task
from .user_store import SqliteUserStore

log = structlog.get_logger()

_UPDATABLE_COLUMNS = {"title", "description", "priority", "due_date", "assignee_id"}


def rows_to_dicts(cursor: aiosqlite.Cursor, rows: Iterable) -> list[dict]:
    """按列名把查询结果转换为 dict（不依赖 row_factory 设置）"""
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection, user_store: SqliteUserStore) -> None:
        self._conn = conn
        self._user_store = user_store

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        now = datetime.now(UTC).isoformat()
        await self._conn.execute(
            """
            INSERT INTO tasks (task_id, project_id, title, description, status,
                               priority, due_date, assignee_id, created_by,
                               created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                task.project_id,
                task.title,
                task.description,
                task.status.value,
                task.priority.value,
                task.due_date,
                task.assignee_id,
                task.created_by,
                task.created_at.isoformat(),
                now,
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        tasks = await self._normalize(rows_to_dicts(cursor, [row]))
        return tasks[0] if tasks else None

    async def get_tasks_by_project(self, project_id: str) -> list[Task]:
        """查询项目下的全部任务（权威数据），按 created_at 倒序"""
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE project_id = ? ORDER BY created_at DESC, task_id DESC",
            (project_id,),
        )
        rows = await cursor.fetchall()
        return await self._normalize(rows_to_dicts(cursor, rows))

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询全部任务，支持按状态筛选，按 created_at 倒序"""
        if status:
            cursor = await self._conn.execute(
                "SELECT * FROM tasks WHERE status = ? ORDER BY created_at DESC, task_id DESC",
                (status,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM tasks ORDER BY created_at DESC, task_id DESC"
            )
        rows = await cursor.fetchall()
        return await self._normalize(rows_to_dicts(cursor, rows))

    async def get_raw_status(self, task_id: str) -> str | None:
        """读取库中存储的原始状态值（未归一化），任务不存在返回 None"""
        cursor = await self._conn.execute(
            "SELECT status FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return None if row is None else row[0]

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        only_if_status: str | None = None,
    ) -> int:
        """更新任务状态（不提交事务）

        Args:
            only_if_status: 非空时仅当存储的原始状态等于该值才更新

        Returns:
            受影响行数
        """
        now = datetime.now(UTC).isoformat()
        if only_if_status is None:
            cursor = await self._conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE task_id = ?",
                (TaskStatus(status).value, now, task_id),
            )
        else:
            cursor = await self._conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE task_id = ? AND status = ?",
                (TaskStatus(status).value, now, task_id, only_if_status),
            )
        return cursor.rowcount

    async def update_task_fields(self, task_id: str, fields: dict) -> int:
        """更新任务普通字段（status / project_id 不在此处修改）"""
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported task fields: {sorted(unknown)}")
        if not fields:
            return 0
        assignments = ", ".join(f"{column} = ?" for column in fields)
        values = [
            value.value if isinstance(value, Enum) else value
            for value in fields.values()
        ]
        cursor = await self._conn.execute(
            f"UPDATE tasks SET {assignments}, updated_at = ? WHERE task_id = ?",
            (*values, datetime.now(UTC).isoformat(), task_id),
        )
        return cursor.rowcount

    async def delete_task(self, task_id: str) -> int:
        """删除任务记录（不提交事务）"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return cursor.rowcount

    async def _normalize(self, records: list[dict]) -> list[Task]:
        """归一化原始记录并批量解析负责人"""
        assignee_ids = {r["assignee_id"] for r in records if r.get("assignee_id")}
        users = await self._user_store.get_users(assignee_ids) if assignee_ids else {}
        tasks: list[Task] = []
        for record in records:
            try:
                tasks.append(normalize_task(record, users))
            except ValueError as e:
                log.warning("task_record_skipped", task_id=record.get("task_id"), error=str(e))
        return tasks
