"""Task Domain Model

Task 归属唯一的 Project（生命周期内不可迁移），status 只能是三种看板状态之一。
存储层读出的原始记录统一经过 normalize_task 归一化，消费方不再做兜底。
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import LEGACY_STATUS_ALIASES, TaskPriority, TaskStatus
from .user import User

UNKNOWN_ASSIGNEE_NAME = "Unknown"
UNASSIGNED_NAME = "Unassigned"
UNTITLED_TASK = "Untitled task"


class AssigneeInfo(BaseModel):
    """负责人展示信息（悬空引用时为占位符）"""

    user_id: str | None = Field(default=None, description="负责人用户 ID，None 表示未分配")
    name: str = Field(default=UNASSIGNED_NAME, description="展示名")
    avatar: str = Field(default="", description="头像 URL")

    @property
    def initials(self) -> str:
        if self.user_id is None:
            return "UN"
        if self.name == UNKNOWN_ASSIGNEE_NAME:
            return "UK"
        return self.name[:2].upper()


class Task(BaseModel):
    """Task 数据模型

    task_id 由存储层在创建时分配（ULID），project_id 创建后不可修改。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(min_length=1, description="任务标题")
    description: str = Field(default="", description="任务描述，可为空")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="看板状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    due_date: str = Field(default="", description="截止日期（日期字符串）")
    project_id: str = Field(min_length=1, description="所属项目 ID")
    assignee_id: str | None = Field(default=None, description="负责人用户 ID")
    assignee: AssigneeInfo | None = Field(default=None, description="解析后的负责人信息")
    created_by: str = Field(default="", description="创建者用户 ID")
    created_at: datetime = Field(description="创建时间")


class TaskCreate(BaseModel):
    """创建任务的输入（ID 与创建元数据由服务端填充）"""

    title: str = Field(min_length=1)
    description: str = ""
    status: TaskStatus | None = Field(default=None, description="为空时使用默认初始状态")
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: str = ""
    project_id: str = Field(min_length=1)
    assignee_id: str | None = None


class TaskUpdate(BaseModel):
    """任务字段更新（status 走独立的状态流转接口）"""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    priority: TaskPriority | None = None
    due_date: str | None = None
    assignee_id: str | None = None
    project_id: str | None = Field(default=None, description="不支持迁移项目，仅用于拒绝")


def normalize_status(value: Any) -> TaskStatus:
    """将原始状态值归一化为 TaskStatus，无法识别时回落到 todo"""
    if isinstance(value, TaskStatus):
        return value
    text = str(value or "").strip()
    if text in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[text]
    try:
        return TaskStatus(text.lower())
    except ValueError:
        return TaskStatus.TODO


def normalize_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(str(value or "").strip().lower())
    except ValueError:
        return TaskPriority.MEDIUM


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.fromtimestamp(0, UTC)


def resolve_assignee(
    assignee_id: str | None,
    users: Mapping[str, User] | None,
) -> AssigneeInfo | None:
    """解析负责人；用户不存在时返回占位信息而不是报错"""
    if not assignee_id:
        return None
    user = (users or {}).get(assignee_id)
    if user is None:
        return AssigneeInfo(user_id=assignee_id, name=UNKNOWN_ASSIGNEE_NAME)
    return AssigneeInfo(
        user_id=assignee_id,
        name=user.name.strip() or UNKNOWN_ASSIGNEE_NAME,
        avatar=user.avatar,
    )


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def normalize_task(
    raw: Mapping[str, Any],
    users: Mapping[str, User] | None = None,
) -> Task:
    """读取边界的唯一归一化入口

    兼容 snake_case 与旧版 camelCase 字段名，缺省字段填充默认值，
    旧状态写法（in_progress/doing）统一映射到 in-progress。

    Raises:
        ValueError: 缺少 task_id 或 project_id
    """
    task_id = _pick(raw, "task_id", "id")
    project_id = _pick(raw, "project_id", "projectId")
    if not task_id:
        raise ValueError("task record is missing an id")
    if not project_id:
        raise ValueError(f"task {task_id} is missing a project reference")

    assignee_id = _pick(raw, "assignee_id", "assigneeId") or None
    title = str(_pick(raw, "title", default="")).strip() or UNTITLED_TASK

    return Task(
        task_id=str(task_id),
        title=title,
        description=str(_pick(raw, "description", default="")),
        status=normalize_status(raw.get("status")),
        priority=normalize_priority(raw.get("priority")),
        due_date=str(_pick(raw, "due_date", "dueDate", default="")),
        project_id=str(project_id),
        assignee_id=assignee_id,
        assignee=resolve_assignee(assignee_id, users),
        created_by=str(_pick(raw, "created_by", "createdBy", default="")),
        created_at=_parse_timestamp(_pick(raw, "created_at", "createdAt")),
    )
