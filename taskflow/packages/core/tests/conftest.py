"""packages/core 测试配置 -- 核心层 fixture"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from taskflow.core.models import (
    Project,
    Task,
    TaskCounts,
    TaskStatus,
    User,
)

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


def make_task(
    task_id: str,
    status: TaskStatus = TaskStatus.TODO,
    project_id: str = "P",
    minutes: int = 0,
    **kwargs,
) -> Task:
    """构造测试任务，minutes 控制创建时间先后"""
    return Task(
        task_id=task_id,
        title=kwargs.pop("title", f"Task {task_id}"),
        status=status,
        project_id=project_id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )


class FakeAggregateStore:
    """内存聚合存储：记录调用，可注入失败或阻塞"""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[str, Task] = {t.task_id: t for t in tasks or []}
        self.status_calls: list[tuple[str, TaskStatus]] = []
        self.counter_writes: list[tuple[str, TaskCounts]] = []
        self.fail_status_update = False
        self.fail_counter_write = False
        # 非空时 update_task_status 在写入前等待该事件
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        self.status_calls.append((task_id, TaskStatus(status)))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_status_update:
            raise ConnectionError("store unavailable")
        task = self.tasks[task_id]
        self.tasks[task_id] = task.model_copy(update={"status": TaskStatus(status)})

    async def get_tasks_by_project(self, project_id: str) -> list[Task]:
        return [t for t in self.tasks.values() if t.project_id == project_id]

    async def update_project_counters(self, project_id: str, counts: TaskCounts) -> None:
        if self.fail_counter_write:
            raise ConnectionError("counter write failed")
        self.counter_writes.append((project_id, counts))


class RecordingNotifier:
    """记录所有提示的 Notifier"""

    def __init__(self) -> None:
        self.notifications = []

    def notify(self, notification) -> None:
        self.notifications.append(notification)

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self.notifications]


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def fake_store_factory():
    return FakeAggregateStore


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_db(core_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from taskflow.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(core_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store_group(core_db_path: Path):
    """已写入项目 P 与两个用户的 StoreGroup"""
    from taskflow.core.store import create_store_group

    group = await create_store_group(str(core_db_path))
    await group.user_store.create_user(
        User(user_id="u-alice", name="Alice", email="alice@example.com", created_at=BASE_TIME)
    )
    await group.user_store.create_user(
        User(user_id="u-bob", name="Bob", email="bob@example.com", created_at=BASE_TIME)
    )
    await group.project_store.create_project(
        Project(
            project_id="P",
            name="Project P",
            members=["u-alice", "u-bob"],
            created_by="u-alice",
            created_at=BASE_TIME,
        )
    )
    await group.conn.commit()
    yield group
    await group.conn.close()
