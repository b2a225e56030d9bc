"""ProjectStore SQLite 实现

tasks_count 列只由 update_project_counters 写入（计数重算的唯一出口）。
"""

import json

import aiosqlite

from ..models.project import Project, TaskCounts, normalize_project


class SqliteProjectStore:
    """ProjectStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_project(self, project: Project) -> None:
        """创建项目记录（不提交事务）"""
        await self._conn.execute(
            """
            INSERT INTO projects (project_id, name, description, color, members,
                                  tasks_count, created_by, created_at, next_due_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project.project_id,
                project.name,
                project.description,
                project.color,
                json.dumps(project.members, ensure_ascii=False),
                project.tasks_count.model_dump_json(by_alias=True),
                project.created_by,
                project.created_at.isoformat(),
                project.next_due_date,
            ),
        )

    async def get_project(self, project_id: str) -> Project | None:
        """根据 project_id 查询项目"""
        cursor = await self._conn.execute(
            "SELECT * FROM projects WHERE project_id = ?",
            (project_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        columns = [col[0] for col in cursor.description]
        return self._record_to_project(dict(zip(columns, row, strict=True)))

    async def list_projects(self, member_id: str | None = None) -> list[Project]:
        """查询项目列表，member_id 非空时只返回该用户参与的项目，按 created_at 倒序"""
        cursor = await self._conn.execute(
            "SELECT * FROM projects ORDER BY created_at DESC, project_id DESC"
        )
        rows = await cursor.fetchall()
        columns = [col[0] for col in cursor.description]
        projects = [
            self._record_to_project(dict(zip(columns, row, strict=True))) for row in rows
        ]
        if member_id is None:
            return projects
        return [p for p in projects if member_id in p.members]

    async def update_project_counters(self, project_id: str, counts: TaskCounts) -> int:
        """写入冗余任务计数（不提交事务）

        Returns:
            受影响行数
        """
        cursor = await self._conn.execute(
            "UPDATE projects SET tasks_count = ? WHERE project_id = ?",
            (counts.model_dump_json(by_alias=True), project_id),
        )
        return cursor.rowcount

    async def delete_project(self, project_id: str) -> int:
        """删除项目（任务随外键级联删除，不提交事务）"""
        cursor = await self._conn.execute(
            "DELETE FROM projects WHERE project_id = ?",
            (project_id,),
        )
        return cursor.rowcount

    @staticmethod
    def _record_to_project(record: dict) -> Project:
        """将数据库行转换为 Project 模型（JSON 列解析失败按空值处理）"""
        for column, fallback in (("members", []), ("tasks_count", {})):
            try:
                record[column] = json.loads(record[column]) if record[column] else fallback
            except json.JSONDecodeError:
                record[column] = fallback
        return normalize_project(record)
