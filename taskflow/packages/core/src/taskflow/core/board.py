"""看板 / 列表投影

从控制器的可见任务集合派生渲染结构，不修改输入。
看板模式按状态稳定分桶，列表模式输出扁平行，状态作为行元数据。
拖拽过程中的可落点列按流转规则实时计算，不做缓存。
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .models.enums import (
    STATUS_LABELS,
    STATUS_ORDER,
    TaskPriority,
    TaskStatus,
    is_valid_transition,
)
from .models.task import AssigneeInfo, Task
from .optimistic import OptimisticUpdateController, StatusChangeOutcome

log = structlog.get_logger()

NO_DUE_DATE = "No due date"
INVALID_DATE = "Invalid date"

SortKey = Callable[[Task], object]


class BoardColumn(BaseModel):
    """看板列定义"""

    model_config = ConfigDict(frozen=True)

    status: TaskStatus
    title: str


BOARD_COLUMNS: tuple[BoardColumn, ...] = tuple(
    BoardColumn(status=status, title=STATUS_LABELS[status]) for status in STATUS_ORDER
)


class BoardColumnView(BaseModel):
    """看板单列的渲染数据"""

    status: TaskStatus
    title: str
    tasks: list[Task] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tasks)


class TaskRow(BaseModel):
    """列表模式的单行渲染数据"""

    task_id: str
    title: str
    description: str = ""
    status: TaskStatus
    status_label: str
    priority: TaskPriority
    due_date_label: str
    is_overdue: bool = False
    assignee_name: str
    assignee_initials: str
    assignee_avatar: str = ""


def parse_due_date(due_date: str) -> date | None:
    """解析截止日期字符串，空值或非法值返回 None"""
    if not due_date:
        return None
    try:
        return datetime.fromisoformat(due_date.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_due_date(due_date: str) -> str:
    if not due_date:
        return NO_DUE_DATE
    parsed = parse_due_date(due_date)
    if parsed is None:
        return INVALID_DATE
    return parsed.isoformat()


def is_overdue(task: Task, today: date | None = None) -> bool:
    """截止日期早于今天且未完成"""
    due = parse_due_date(task.due_date)
    if due is None or task.status == TaskStatus.DONE:
        return False
    return due < (today or date.today())


def project_board(
    tasks: Iterable[Task],
    sort_key: SortKey | None = None,
) -> list[BoardColumnView]:
    """按状态稳定分桶

    每列内保持源集合中的相对顺序；提供 sort_key 时在列内按其排序。
    """
    buckets: dict[TaskStatus, list[Task]] = {column.status: [] for column in BOARD_COLUMNS}
    for task in tasks:
        buckets[task.status].append(task)
    if sort_key is not None:
        for status, bucket in buckets.items():
            buckets[status] = sorted(bucket, key=sort_key)
    return [
        BoardColumnView(status=column.status, title=column.title, tasks=buckets[column.status])
        for column in BOARD_COLUMNS
    ]


def project_list(
    tasks: Iterable[Task],
    sort_key: SortKey | None = None,
    today: date | None = None,
) -> list[TaskRow]:
    """列表模式：单一有序序列，状态作为每行元数据"""
    ordered = sorted(tasks, key=sort_key) if sort_key is not None else list(tasks)
    rows: list[TaskRow] = []
    for task in ordered:
        assignee = task.assignee or AssigneeInfo(user_id=task.assignee_id)
        rows.append(
            TaskRow(
                task_id=task.task_id,
                title=task.title,
                description=task.description,
                status=task.status,
                status_label=STATUS_LABELS[task.status],
                priority=task.priority,
                due_date_label=format_due_date(task.due_date),
                is_overdue=is_overdue(task, today),
                assignee_name=assignee.name,
                assignee_initials=assignee.initials,
                assignee_avatar=assignee.avatar,
            )
        )
    return rows


def admissible_drop_targets(
    active_task: Task | None,
    columns: Sequence[BoardColumn] = BOARD_COLUMNS,
) -> list[BoardColumn]:
    """可落点列：没有拖拽中的任务时全部可落，否则只保留合法流转的目标列"""
    if active_task is None:
        return list(columns)
    return [c for c in columns if is_valid_transition(active_task.status, c.status)]


class BoardSession:
    """一块看板的拖拽会话

    持有当前拖拽的任务 ID，所有视图都从控制器的可见任务实时派生。
    """

    def __init__(
        self,
        controller: OptimisticUpdateController,
        columns: Sequence[BoardColumn] = BOARD_COLUMNS,
    ) -> None:
        self.controller = controller
        self._columns = tuple(columns)
        self.active_task_id: str | None = None

    @property
    def active_task(self) -> Task | None:
        if self.active_task_id is None:
            return None
        return self.controller.get_task(self.active_task_id)

    def drag_start(self, task_id: str) -> Task | None:
        self.active_task_id = task_id
        return self.active_task

    def drag_over(self, candidate_ids: Iterable[str] | None = None) -> list[TaskStatus]:
        """返回当前可命中的列状态

        每次调用都按拖拽中任务的当前可见状态重新计算。

        Args:
            candidate_ids: 指针下方的候选列状态，None 表示全部列
        """
        admissible = [c.status for c in admissible_drop_targets(self.active_task, self._columns)]
        if candidate_ids is None:
            return admissible
        candidates = set(candidate_ids)
        return [status for status in admissible if status.value in candidates]

    async def drag_end(self, over_id: str | None) -> StatusChangeOutcome | None:
        """结束拖拽：落在合法列上时发起状态变更

        Returns:
            状态变更结果（非法流转为 REJECTED）；没有落点、任务不存在或落在原列时返回 None
        """
        task = self.active_task
        self.active_task_id = None
        if over_id is None or task is None:
            return None

        try:
            target = TaskStatus(over_id)
        except ValueError:
            log.debug("drop_target_not_a_column", over_id=over_id)
            return None
        if target == task.status:
            return None

        # 非法流转由控制器拒绝并提示
        return await self.controller.request_status_change(task.task_id, target)

    def drag_cancel(self) -> None:
        self.active_task_id = None

    def board(self, sort_key: SortKey | None = None) -> list[BoardColumnView]:
        return project_board(self.controller.visible_tasks, sort_key)

    def rows(self, sort_key: SortKey | None = None, today: date | None = None) -> list[TaskRow]:
        return project_list(self.controller.visible_tasks, sort_key, today)
