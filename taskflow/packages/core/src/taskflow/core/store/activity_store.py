"""ActivityStore SQLite 实现

活动表 append-only：只允许插入，不允许更新或删除。
"""

import json
from datetime import datetime

import aiosqlite

from ..config import ACTIVITY_PAGE_LIMIT
from ..models.activity import Activity
from ..models.enums import ActivityType


class SqliteActivityStore:
    """ActivityStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_activity(self, activity: Activity) -> None:
        """追加活动记录（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO activities (activity_id, project_id, task_id, ts, type,
                                    actor_id, payload)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                activity.activity_id,
                activity.project_id,
                activity.task_id,
                activity.ts.isoformat(),
                activity.type.value,
                activity.actor_id,
                json.dumps(activity.payload, ensure_ascii=False),
            ),
        )

    async def list_for_project(
        self,
        project_id: str,
        limit: int = ACTIVITY_PAGE_LIMIT,
    ) -> list[Activity]:
        """查询项目活动流，按时间倒序（最新在前）"""
        cursor = await self._conn.execute(
            """
            SELECT activity_id, project_id, task_id, ts, type, actor_id, payload
            FROM activities
            WHERE project_id = ?
            ORDER BY ts DESC, activity_id DESC
            LIMIT ?
            """,
            (project_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_activity(row) for row in rows]

    async def list_for_task(self, task_id: str) -> list[Activity]:
        """查询单个任务的活动记录，按时间正序"""
        cursor = await self._conn.execute(
            """
            SELECT activity_id, project_id, task_id, ts, type, actor_id, payload
            FROM activities
            WHERE task_id = ?
            ORDER BY ts ASC, activity_id ASC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_activity(row) for row in rows]

    @staticmethod
    def _row_to_activity(row: aiosqlite.Row) -> Activity:
        """将数据库行转换为 Activity 模型"""
        payload = json.loads(row[6]) if row[6] else {}
        return Activity(
            activity_id=row[0],
            project_id=row[1],
            task_id=row[2],
            ts=datetime.fromisoformat(row[3]),
            type=ActivityType(row[4]),
            actor_id=row[5],
            payload=payload,
        )
