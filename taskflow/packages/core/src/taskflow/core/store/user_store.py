"""UserStore SQLite 实现"""

from collections.abc import Iterable

import aiosqlite

from ..models.user import User, normalize_user


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_user(self, user: User) -> None:
        """创建或覆盖用户资料（不提交事务）"""
        await self._conn.execute(
            """
            INSERT OR REPLACE INTO users (user_id, name, email, role, avatar,
                                          is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user.user_id,
                user.name,
                user.email,
                user.role,
                user.avatar,
                1 if user.is_active else 0,
                user.created_at.isoformat() if user.created_at else None,
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户"""
        users = await self.get_users([user_id])
        return users.get(user_id)

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, User]:
        """批量查询用户，返回 user_id -> User 映射（不存在的 ID 不出现在结果中）"""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        cursor = await self._conn.execute(
            f"SELECT * FROM users WHERE user_id IN ({placeholders})",
            ids,
        )
        rows = await cursor.fetchall()
        columns = [col[0] for col in cursor.description]
        users = [normalize_user(dict(zip(columns, row, strict=True))) for row in rows]
        return {user.user_id: user for user in users}

    async def list_users(self) -> list[User]:
        """查询全部用户，按名称排序"""
        cursor = await self._conn.execute("SELECT * FROM users ORDER BY name, user_id")
        rows = await cursor.fetchall()
        columns = [col[0] for col in cursor.description]
        return [normalize_user(dict(zip(columns, row, strict=True))) for row in rows]
