"""TaskService -- 任务创建/更新/状态流转/删除业务逻辑

每次写入流程：
1. 校验（任务/项目存在、流转合法、不迁移项目）
2. 任务变更 + 活动记录单事务提交
3. 向项目订阅者广播 TaskChange
4. 从权威数据重算项目计数（失败只记录日志）
"""

from datetime import UTC, datetime

import structlog
from taskflow.core.config import get_default_task_status
from taskflow.core.counters import CounterRecalculator
from taskflow.core.exceptions import (
    InvalidTransitionError,
    ProjectNotFoundError,
    ProjectReassignmentError,
    TaskNotFoundError,
)
from taskflow.core.models import (
    Activity,
    ActivityType,
    Task,
    TaskChange,
    TaskCounts,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
    is_valid_transition,
)
from taskflow.core.models.payloads import (
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskUpdatedPayload,
)
from taskflow.core.store import StoreGroup
from taskflow.core.store.transaction import (
    create_task_with_activity,
    delete_task_with_activity,
    update_fields_with_activity,
)
from ulid import ULID

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup, actor_id: str = "system") -> None:
        self._stores = store_group
        self._actor_id = actor_id
        self._aggregate = store_group.aggregate_store(actor_id=actor_id)
        self._recalculator = CounterRecalculator(self._aggregate)

    async def create_task(self, data: TaskCreate, created_by: str | None = None) -> Task:
        """创建任务

        Args:
            data: 创建输入
            created_by: 创建者用户 ID，默认使用当前操作者

        Returns:
            新建的 Task（负责人已解析）

        Raises:
            ProjectNotFoundError: 项目不存在
        """
        project = await self._stores.project_store.get_project(data.project_id)
        if project is None:
            raise ProjectNotFoundError(data.project_id)

        now = datetime.now(UTC)
        creator = created_by or self._actor_id
        status = data.status or get_default_task_status()
        # 未指定负责人时默认分配给创建者
        assignee_id = data.assignee_id or (creator if creator != "system" else None)

        task = Task(
            task_id=str(ULID()),
            title=data.title,
            description=data.description,
            status=status,
            priority=data.priority,
            due_date=data.due_date,
            project_id=data.project_id,
            assignee_id=assignee_id,
            created_by=creator,
            created_at=now,
        )
        activity = self._activity(
            task,
            ActivityType.TASK_CREATED,
            now,
            TaskCreatedPayload(
                title=task.title,
                status=task.status,
                assignee_id=task.assignee_id,
            ).model_dump(mode="json"),
        )
        await create_task_with_activity(
            self._stores.conn,
            self._stores.task_store,
            self._stores.activity_store,
            task,
            activity,
        )
        await log.ainfo(
            "task_created",
            task_id=task.task_id,
            project_id=task.project_id,
            status=task.status.value,
        )

        await self._broadcast(task, ActivityType.TASK_CREATED, task.status, activity)
        await self._recalculator.refresh(task.project_id)
        return await self.get_task(task.task_id)

    async def get_task(self, task_id: str) -> Task:
        """查询任务

        Raises:
            TaskNotFoundError: 任务不存在
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询任务列表"""
        return await self._stores.task_store.list_tasks(status)

    async def list_project_tasks(self, project_id: str) -> list[Task]:
        """查询项目下全部任务，项目不存在时抛出 ProjectNotFoundError"""
        if await self._stores.project_store.get_project(project_id) is None:
            raise ProjectNotFoundError(project_id)
        return await self._stores.task_store.get_tasks_by_project(project_id)

    async def update_task(self, task_id: str, data: TaskUpdate) -> Task:
        """更新任务普通字段

        状态变更走 change_status；任务不能迁移到其他项目。

        Raises:
            TaskNotFoundError: 任务不存在
            ProjectReassignmentError: 请求修改 project_id
        """
        task = await self.get_task(task_id)
        if data.project_id is not None and data.project_id != task.project_id:
            raise ProjectReassignmentError(task_id)

        fields = {
            key: value
            for key, value in data.model_dump(exclude_unset=True, exclude={"project_id"}).items()
            # 只有负责人允许显式清空
            if value is not None or key == "assignee_id"
        }
        if not fields:
            return task

        now = datetime.now(UTC)
        activity = self._activity(
            task,
            ActivityType.TASK_UPDATED,
            now,
            TaskUpdatedPayload(fields=sorted(fields)).model_dump(mode="json"),
        )
        await update_fields_with_activity(
            self._stores.conn,
            self._stores.task_store,
            self._stores.activity_store,
            task_id,
            fields,
            activity,
        )
        await log.ainfo("task_updated", task_id=task_id, fields=sorted(fields))

        await self._broadcast(task, ActivityType.TASK_UPDATED, task.status, activity)
        return await self.get_task(task_id)

    async def change_status(
        self,
        task_id: str,
        status: TaskStatus,
        recalculate: bool = True,
    ) -> tuple[Task, TaskCounts | None]:
        """变更任务状态（服务端同样执行相邻流转规则）

        Args:
            task_id: 任务 ID
            status: 目标状态
            recalculate: 是否在写入后重算项目计数

        Returns:
            (更新后的 Task, 重算后的计数或 None)

        Raises:
            TaskNotFoundError: 任务不存在
            InvalidTransitionError: 非相邻流转
            TaskStatusConflictError: 并发写入已改变任务状态
        """
        task = await self.get_task(task_id)
        new_status = TaskStatus(status)
        if task.status == new_status:
            return task, None
        if not is_valid_transition(task.status, new_status):
            raise InvalidTransitionError(task.status, new_status)

        updated = await self._aggregate.update_task_status(
            task_id,
            new_status,
            expected_status=task.status,
        )

        counts = None
        if recalculate:
            counts = await self._recalculator.refresh(task.project_id)
        return updated, counts

    async def delete_task(self, task_id: str) -> Task:
        """删除任务，活动记录保留

        Raises:
            TaskNotFoundError: 任务不存在
        """
        task = await self.get_task(task_id)
        now = datetime.now(UTC)
        activity = self._activity(
            task,
            ActivityType.TASK_DELETED,
            now,
            TaskDeletedPayload(title=task.title, status=task.status).model_dump(mode="json"),
        )
        await delete_task_with_activity(
            self._stores.conn,
            self._stores.task_store,
            self._stores.activity_store,
            task_id,
            activity,
        )
        await log.ainfo("task_deleted", task_id=task_id, project_id=task.project_id)

        await self._broadcast(task, ActivityType.TASK_DELETED, None, activity)
        await self._recalculator.refresh(task.project_id)
        return task

    def _activity(
        self,
        task: Task,
        activity_type: ActivityType,
        ts: datetime,
        payload: dict,
    ) -> Activity:
        return Activity(
            activity_id=str(ULID()),
            project_id=task.project_id,
            task_id=task.task_id,
            ts=ts,
            type=activity_type,
            actor_id=self._actor_id,
            payload=payload,
        )

    async def _broadcast(
        self,
        task: Task,
        change_type: ActivityType,
        status: TaskStatus | None,
        activity: Activity,
    ) -> None:
        await self._stores.change_hub.broadcast(
            TaskChange(
                project_id=task.project_id,
                task_id=task.task_id,
                type=change_type,
                status=status,
                ts=activity.ts,
                activity_id=activity.activity_id,
            )
        )
