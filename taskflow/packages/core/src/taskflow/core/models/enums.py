"""枚举定义

包含 TaskStatus 看板状态、TaskPriority、ActivityType、NotificationVariant 枚举，
以及相邻状态流转规则 is_valid_transition 和由其派生的 VALID_TRANSITIONS 映射。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 看板状态 -- 全序 todo < in-progress < done，无终态"""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


# 看板列顺序，决定哪些流转相邻
STATUS_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
)

STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}

# 历史数据中出现过的状态写法（读取边界统一归一化）
LEGACY_STATUS_ALIASES: dict[str, TaskStatus] = {
    "in_progress": TaskStatus.IN_PROGRESS,
    "inProgress": TaskStatus.IN_PROGRESS,
    "doing": TaskStatus.IN_PROGRESS,
    "to-do": TaskStatus.TODO,
}


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActivityType(StrEnum):
    """活动流记录类型"""

    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    TASK_DELETED = "TASK_DELETED"


class NotificationVariant(StrEnum):
    """用户提示样式"""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


def is_valid_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    只允许相邻列之间移动（todo <-> in-progress <-> done），
    同状态视为无需流转，返回 False。

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    if from_status == to_status:
        return False
    from_index = STATUS_ORDER.index(TaskStatus(from_status))
    to_index = STATUS_ORDER.index(TaskStatus(to_status))
    return abs(from_index - to_index) == 1


# 由规则派生的合法流转映射（供展示和校验使用）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    status: {target for target in STATUS_ORDER if is_valid_transition(status, target)}
    for status in STATUS_ORDER
}


def describe_invalid_transition(from_status: TaskStatus, to_status: TaskStatus) -> str:
    """生成非法流转的用户提示文案（包含当前状态与目标状态）"""
    return (
        f"Cannot move task directly from {STATUS_LABELS[TaskStatus(from_status)]} "
        f"to {STATUS_LABELS[TaskStatus(to_status)]}. "
        "Please move to adjacent status only."
    )
