"""TaskFlow Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .activity import Activity
from .enums import (
    STATUS_LABELS,
    STATUS_ORDER,
    VALID_TRANSITIONS,
    ActivityType,
    NotificationVariant,
    TaskPriority,
    TaskStatus,
    describe_invalid_transition,
    is_valid_transition,
)
from .notification import Notification, TaskChange
from .payloads import (
    StatusChangedPayload,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskUpdatedPayload,
)
from .project import (
    Project,
    ProjectCreate,
    TaskCounts,
    normalize_counts,
    normalize_project,
)
from .task import (
    AssigneeInfo,
    Task,
    TaskCreate,
    TaskUpdate,
    normalize_status,
    normalize_task,
    resolve_assignee,
)
from .user import User, normalize_user

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "ActivityType",
    "NotificationVariant",
    "STATUS_ORDER",
    "STATUS_LABELS",
    # 状态流转规则
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "describe_invalid_transition",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "AssigneeInfo",
    "normalize_task",
    "normalize_status",
    "resolve_assignee",
    # Project
    "Project",
    "ProjectCreate",
    "TaskCounts",
    "normalize_project",
    "normalize_counts",
    # User
    "User",
    "normalize_user",
    # Activity
    "Activity",
    "TaskCreatedPayload",
    "TaskUpdatedPayload",
    "StatusChangedPayload",
    "TaskDeletedPayload",
    # Notification
    "Notification",
    "TaskChange",
]
