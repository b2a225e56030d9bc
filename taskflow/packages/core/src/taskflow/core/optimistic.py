"""乐观状态更新控制器

状态变更分两个阶段：
1. begin -- 同步阶段：查找任务、检查在途锁、校验流转规则，立即把新状态写入可见副本
2. settle -- 异步阶段：调用存储写入，成功则提示并刷新项目计数，失败则回滚可见副本

同一任务同一时刻至多一个在途更新（按任务互斥，不是全局锁），
锁在 finally 中释放，任何结果都不会让任务永久处于锁定状态。
失败不自动重试，重试由用户重复操作触发。
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from .counters import CounterRecalculator
from .exceptions import InvalidTransitionError, PendingUpdateConflictError
from .models.enums import (
    STATUS_LABELS,
    NotificationVariant,
    TaskStatus,
    is_valid_transition,
)
from .models.notification import Notification
from .models.project import TaskCounts
from .models.task import Task
from .notifier import Notifier
from .store.protocols import TaskStatusWriter

log = structlog.get_logger()

STATUS_UPDATE_FAILED_MESSAGE = "Failed to update task status. Please try again."


class StatusChangeResult(StrEnum):
    """一次状态变更请求的最终结果"""

    NOOP = "noop"  # 任务不存在或状态未变化
    REJECTED = "rejected"  # 非相邻流转
    IGNORED = "ignored"  # 同一任务已有在途更新
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class PendingStatusChange:
    """已乐观应用、等待存储确认的状态变更"""

    task_id: str
    project_id: str
    previous_status: TaskStatus
    new_status: TaskStatus


@dataclass(frozen=True)
class StatusChangeOutcome:
    """状态变更结果

    status 是请求结束时该任务的可见状态（任务不存在时为 None）。
    """

    task_id: str
    result: StatusChangeResult
    status: TaskStatus | None = None
    error: Exception | None = None
    counts: TaskCounts | None = None


@dataclass
class OptimisticState:
    """控制器持有的可见任务副本与在途更新集合"""

    visible_tasks: list[Task] = field(default_factory=list)
    pending_changes: dict[str, PendingStatusChange] = field(default_factory=dict)

    @property
    def pending_task_ids(self) -> frozenset[str]:
        return frozenset(self.pending_changes)

    def get(self, task_id: str) -> Task | None:
        for task in self.visible_tasks:
            if task.task_id == task_id:
                return task
        return None

    def set_status(self, task_id: str, status: TaskStatus) -> None:
        """替换可见副本中单个任务的状态（生成新列表，不修改原 Task 对象）"""
        self.visible_tasks = [
            task.model_copy(update={"status": status}) if task.task_id == task_id else task
            for task in self.visible_tasks
        ]


class OptimisticUpdateController:
    """看板状态变更的乐观更新控制器

    Args:
        store: 满足 TaskStatusWriter 的存储（本地 SQLite 或远端 gateway）
        notifier: 用户提示通道
        recalculator: 成功写入后用于刷新项目计数，None 表示不刷新
        tasks: 初始可见任务集合
    """

    def __init__(
        self,
        store: TaskStatusWriter,
        notifier: Notifier,
        recalculator: CounterRecalculator | None = None,
        tasks: Iterable[Task] = (),
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._recalculator = recalculator
        self.state = OptimisticState(visible_tasks=list(tasks))

    @property
    def visible_tasks(self) -> list[Task]:
        return list(self.state.visible_tasks)

    @property
    def pending_task_ids(self) -> frozenset[str]:
        return self.state.pending_task_ids

    def get_task(self, task_id: str) -> Task | None:
        return self.state.get(task_id)

    def sync(self, tasks: Iterable[Task]) -> None:
        """用上游最新任务集合重建可见副本

        在途任务保留乐观状态，直到对应更新完成。
        """
        pending = self.state.pending_changes
        self.state.visible_tasks = [
            task.model_copy(update={"status": pending[task.task_id].new_status})
            if task.task_id in pending
            else task
            for task in tasks
        ]

    def begin(self, task_id: str, new_status: TaskStatus) -> PendingStatusChange | None:
        """同步阶段：校验并立即应用新状态

        Returns:
            PendingStatusChange；任务不存在或状态未变化时返回 None

        Raises:
            PendingUpdateConflictError: 该任务已有在途更新
            InvalidTransitionError: 非相邻流转（未发生任何写入）
        """
        new_status = TaskStatus(new_status)
        task = self.state.get(task_id)
        if task is None or task.status == new_status:
            return None

        if task_id in self.state.pending_changes:
            raise PendingUpdateConflictError(task_id)

        if not is_valid_transition(task.status, new_status):
            raise InvalidTransitionError(task.status, new_status)

        pending = PendingStatusChange(
            task_id=task_id,
            project_id=task.project_id,
            previous_status=task.status,
            new_status=new_status,
        )
        self.state.pending_changes[task_id] = pending
        self.state.set_status(task_id, new_status)
        return pending

    async def settle(self, pending: PendingStatusChange) -> StatusChangeOutcome:
        """异步阶段：写入存储，成功后刷新计数，失败则回滚"""
        task_id = pending.task_id
        try:
            await self._store.update_task_status(task_id, pending.new_status)
        except Exception as e:
            self.state.set_status(task_id, pending.previous_status)
            await log.awarning(
                "status_change_rolled_back",
                task_id=task_id,
                project_id=pending.project_id,
                from_status=pending.previous_status.value,
                to_status=pending.new_status.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            self._notifier.notify(
                Notification(
                    title="Error",
                    description=STATUS_UPDATE_FAILED_MESSAGE,
                    variant=NotificationVariant.DESTRUCTIVE,
                )
            )
            outcome = StatusChangeOutcome(
                task_id=task_id,
                result=StatusChangeResult.ROLLED_BACK,
                status=pending.previous_status,
                error=e,
            )
        else:
            await log.ainfo(
                "status_change_committed",
                task_id=task_id,
                project_id=pending.project_id,
                from_status=pending.previous_status.value,
                to_status=pending.new_status.value,
            )
            self._notifier.notify(
                Notification(
                    title="Task updated",
                    description=f"Task moved to {STATUS_LABELS[pending.new_status]}",
                )
            )
            counts = None
            if self._recalculator is not None:
                counts = await self._recalculator.refresh(pending.project_id)
            outcome = StatusChangeOutcome(
                task_id=task_id,
                result=StatusChangeResult.COMMITTED,
                status=pending.new_status,
                counts=counts,
            )
        finally:
            self.state.pending_changes.pop(task_id, None)
        return outcome

    async def request_status_change(
        self, task_id: str, new_status: TaskStatus
    ) -> StatusChangeOutcome:
        """请求变更任务状态（begin + settle）

        同步拒绝转换为结果值：非法流转给出提示，重复请求只记录日志。
        """
        try:
            pending = self.begin(task_id, new_status)
        except InvalidTransitionError as e:
            self._notifier.notify(
                Notification(
                    title="Invalid Move",
                    description=str(e),
                    variant=NotificationVariant.DESTRUCTIVE,
                )
            )
            return StatusChangeOutcome(
                task_id=task_id,
                result=StatusChangeResult.REJECTED,
                status=e.from_status,
                error=e,
            )
        except PendingUpdateConflictError as e:
            log.warning("status_change_ignored_pending", task_id=task_id)
            task = self.state.get(task_id)
            return StatusChangeOutcome(
                task_id=task_id,
                result=StatusChangeResult.IGNORED,
                status=task.status if task else None,
                error=e,
            )

        if pending is None:
            task = self.state.get(task_id)
            return StatusChangeOutcome(
                task_id=task_id,
                result=StatusChangeResult.NOOP,
                status=task.status if task else None,
            )
        return await self.settle(pending)
