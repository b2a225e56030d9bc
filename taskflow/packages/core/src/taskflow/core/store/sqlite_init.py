"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# users 表 DDL
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id     TEXT PRIMARY KEY,
    name        TEXT NOT NULL DEFAULT '',
    email       TEXT NOT NULL DEFAULT '',
    role        TEXT NOT NULL DEFAULT 'software_engineer',
    avatar      TEXT NOT NULL DEFAULT '',
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_at  TEXT
);
"""

# projects 表 DDL（tasks_count 为冗余计数 JSON，仅由计数重算写入）
_PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    project_id    TEXT PRIMARY KEY,
    name          TEXT NOT NULL DEFAULT '',
    description   TEXT NOT NULL DEFAULT '',
    color         TEXT NOT NULL DEFAULT '',
    members       TEXT NOT NULL DEFAULT '[]',
    tasks_count   TEXT NOT NULL DEFAULT '{"todo": 0, "inProgress": 0, "done": 0}',
    created_by    TEXT NOT NULL DEFAULT '',
    created_at    TEXT NOT NULL,
    next_due_date TEXT
);
"""

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id     TEXT PRIMARY KEY,
    project_id  TEXT NOT NULL,
    title       TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    status      TEXT NOT NULL DEFAULT 'todo',
    priority    TEXT NOT NULL DEFAULT 'medium',
    due_date    TEXT NOT NULL DEFAULT '',
    assignee_id TEXT,
    created_by  TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,

    FOREIGN KEY (project_id) REFERENCES projects(project_id) ON DELETE CASCADE
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
]

# activities 表 DDL（append-only，任务删除后保留）
_ACTIVITIES_DDL = """
CREATE TABLE IF NOT EXISTS activities (
    activity_id TEXT PRIMARY KEY,
    project_id  TEXT NOT NULL,
    task_id     TEXT,
    ts          TEXT NOT NULL,
    type        TEXT NOT NULL,
    actor_id    TEXT NOT NULL DEFAULT 'system',
    payload     TEXT NOT NULL DEFAULT '{}'
);
"""

_ACTIVITIES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_activities_project_ts ON activities(project_id, ts);",
    "CREATE INDEX IF NOT EXISTS idx_activities_task_id ON activities(task_id);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_USERS_DDL)
    await conn.execute(_PROJECTS_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_ACTIVITIES_DDL)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _ACTIVITIES_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"


REQUIRED_TABLES = ("users", "projects", "tasks", "activities")


async def missing_tables(conn: aiosqlite.Connection) -> list[str]:
    """返回尚未创建的必需表（按 REQUIRED_TABLES 顺序）"""
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    existing = {row[0] for row in await cursor.fetchall()}
    return [name for name in REQUIRED_TABLES if name not in existing]
