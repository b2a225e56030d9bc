"""任务写入 + 活动记录原子事务封装

在同一 SQLite 事务内提交任务变更和对应的活动记录，
任何一步失败都整体回滚，保证状态写入不会部分生效。

所有 Store 共享一个连接，事务边界也就是连接级的：
同一连接上的写事务经 write_transaction 串行执行，
避免一个事务的 rollback 撤销另一个尚未提交的写入。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from weakref import WeakKeyDictionary

import aiosqlite

from ..exceptions import ProjectNotFoundError, TaskNotFoundError, TaskStatusConflictError
from ..models.activity import Activity
from ..models.enums import TaskStatus
from ..models.project import TaskCounts
from ..models.task import Task, normalize_status
from .activity_store import SqliteActivityStore
from .project_store import SqliteProjectStore
from .task_store import SqliteTaskStore

_write_locks: WeakKeyDictionary[aiosqlite.Connection, asyncio.Lock] = WeakKeyDictionary()


def write_lock(conn: aiosqlite.Connection) -> asyncio.Lock:
    """连接对应的写锁（首次使用时创建）"""
    lock = _write_locks.get(conn)
    if lock is None:
        lock = _write_locks[conn] = asyncio.Lock()
    return lock


@asynccontextmanager
async def write_transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """串行写事务：正常退出时提交，异常时回滚并重新抛出"""
    async with write_lock(conn):
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise


async def create_task_with_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    task: Task,
    activity: Activity,
) -> None:
    """在同一事务内写入新任务和 TASK_CREATED 活动"""
    async with write_transaction(conn):
        await task_store.create_task(task)
        await activity_store.append_activity(activity)


async def update_status_with_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    task_id: str,
    new_status: TaskStatus,
    activity: Activity | None = None,
    expected_status: TaskStatus | None = None,
) -> None:
    """在同一事务内原子提交状态更新和活动记录

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        task_store: TaskStore 实例
        activity_store: ActivityStore 实例
        task_id: 任务 ID
        new_status: 目标状态
        activity: 要写入的活动记录，None 表示只更新状态
        expected_status: 非空时做条件更新，当前状态不符则抛出 TaskStatusConflictError。
            比较基于归一化后的状态，旧写法（如 in_progress）视为 in-progress。

    Raises:
        TaskNotFoundError: 任务不存在
        TaskStatusConflictError: 当前状态与 expected_status 不符
    """
    async with write_transaction(conn):
        if expected_status is None:
            updated = await task_store.update_task_status(task_id, new_status)
            if updated == 0:
                raise TaskNotFoundError(task_id)
        else:
            stored = await task_store.get_raw_status(task_id)
            if stored is None:
                raise TaskNotFoundError(task_id)
            if normalize_status(stored) != TaskStatus(expected_status):
                raise TaskStatusConflictError(task_id, expected_status)
            # WHERE 带上读到的原始值：其他连接在读写之间改了状态则影响 0 行
            updated = await task_store.update_task_status(
                task_id, new_status, only_if_status=stored
            )
            if updated == 0:
                raise TaskStatusConflictError(task_id, expected_status)

        if activity is not None:
            await activity_store.append_activity(activity)


async def update_fields_with_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    task_id: str,
    fields: dict,
    activity: Activity,
) -> None:
    """在同一事务内更新任务字段并写入 TASK_UPDATED 活动"""
    async with write_transaction(conn):
        updated = await task_store.update_task_fields(task_id, fields)
        if updated == 0:
            raise TaskNotFoundError(task_id)
        await activity_store.append_activity(activity)


async def delete_task_with_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    task_id: str,
    activity: Activity,
) -> None:
    """在同一事务内删除任务并写入 TASK_DELETED 活动"""
    async with write_transaction(conn):
        deleted = await task_store.delete_task(task_id)
        if deleted == 0:
            raise TaskNotFoundError(task_id)
        await activity_store.append_activity(activity)


async def write_project_counters(
    conn: aiosqlite.Connection,
    project_store: SqliteProjectStore,
    project_id: str,
    counts: TaskCounts,
) -> None:
    """写入项目冗余计数并提交

    Raises:
        ProjectNotFoundError: 项目不存在
    """
    async with write_transaction(conn):
        updated = await project_store.update_project_counters(project_id, counts)
        if updated == 0:
            raise ProjectNotFoundError(project_id)
