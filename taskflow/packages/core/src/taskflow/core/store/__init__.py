"""TaskFlow Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from ..exceptions import TaskStatusConflictError
from .activity_store import SqliteActivityStore
from .aggregate import SqliteAggregateStore
from .change_hub import ChangeHub
from .project_store import SqliteProjectStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import (
    create_task_with_activity,
    delete_task_with_activity,
    update_fields_with_activity,
    update_status_with_activity,
    write_project_counters,
    write_transaction,
)
from .user_store import SqliteUserStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接和变更广播器"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        change_hub: ChangeHub | None = None,
    ) -> None:
        self.conn = conn
        self.user_store = SqliteUserStore(conn)
        self.task_store = SqliteTaskStore(conn, self.user_store)
        self.project_store = SqliteProjectStore(conn)
        self.activity_store = SqliteActivityStore(conn)
        self.change_hub = change_hub or ChangeHub()

    def aggregate_store(self, actor_id: str = "system") -> SqliteAggregateStore:
        """以指定操作者身份创建聚合存储视图"""
        return SqliteAggregateStore(self, actor_id=actor_id)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "ChangeHub",
    "SqliteAggregateStore",
    "SqliteTaskStore",
    "SqliteProjectStore",
    "SqliteUserStore",
    "SqliteActivityStore",
    "TaskStatusConflictError",
    "init_db",
    "create_task_with_activity",
    "update_status_with_activity",
    "update_fields_with_activity",
    "delete_task_with_activity",
    "write_project_counters",
    "write_transaction",
]
