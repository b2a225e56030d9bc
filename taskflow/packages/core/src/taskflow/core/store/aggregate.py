"""SqliteAggregateStore -- AggregateStore 的 SQLite 实现

状态写入与活动记录同事务提交，提交成功后向 ChangeHub 广播 TaskChange。
"""

import asyncio
from datetime import UTC, datetime

import structlog
from ulid import ULID

from ..exceptions import TaskNotFoundError
from ..models.activity import Activity
from ..models.enums import ActivityType, TaskStatus
from ..models.notification import TaskChange
from ..models.payloads import StatusChangedPayload
from ..models.project import TaskCounts
from ..models.task import Task
from .transaction import update_status_with_activity, write_project_counters

log = structlog.get_logger()


class SqliteAggregateStore:
    """基于 StoreGroup 的聚合存储"""

    def __init__(self, store_group, actor_id: str = "system") -> None:
        self._stores = store_group
        self._actor_id = actor_id

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        *,
        expected_status: TaskStatus | None = None,
        actor_id: str | None = None,
    ) -> Task:
        """更新任务状态并记录 TASK_STATUS_CHANGED 活动

        Returns:
            更新后的 Task

        Raises:
            TaskNotFoundError: 任务不存在
            TaskStatusConflictError: expected_status 与当前状态不符
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        new_status = TaskStatus(status)
        # 活动记录的 from_status 与条件写入校验的是同一个值
        from_status = TaskStatus(expected_status) if expected_status else task.status
        now = datetime.now(UTC)
        activity = Activity(
            activity_id=str(ULID()),
            project_id=task.project_id,
            task_id=task_id,
            ts=now,
            type=ActivityType.TASK_STATUS_CHANGED,
            actor_id=actor_id or self._actor_id,
            payload=StatusChangedPayload(
                from_status=from_status,
                to_status=new_status,
            ).model_dump(mode="json"),
        )
        await update_status_with_activity(
            self._stores.conn,
            self._stores.task_store,
            self._stores.activity_store,
            task_id,
            new_status,
            activity,
            expected_status=from_status,
        )
        log.info(
            "task_status_written",
            task_id=task_id,
            project_id=task.project_id,
            from_status=from_status.value,
            to_status=new_status.value,
        )

        await self._stores.change_hub.broadcast(
            TaskChange(
                project_id=task.project_id,
                task_id=task_id,
                type=ActivityType.TASK_STATUS_CHANGED,
                status=new_status,
                ts=now,
                activity_id=activity.activity_id,
            )
        )
        return task.model_copy(update={"status": new_status})

    async def get_tasks_by_project(self, project_id: str) -> list[Task]:
        """读取项目下全部任务（权威数据）"""
        return await self._stores.task_store.get_tasks_by_project(project_id)

    async def update_project_counters(self, project_id: str, counts: TaskCounts) -> None:
        """写入项目冗余计数"""
        await write_project_counters(
            self._stores.conn,
            self._stores.project_store,
            project_id,
            counts,
        )

    async def subscribe(self, project_id: str) -> asyncio.Queue:
        return await self._stores.change_hub.subscribe(project_id)

    async def unsubscribe(self, project_id: str, queue: asyncio.Queue) -> None:
        await self._stores.change_hub.unsubscribe(project_id, queue)
