"""Activity Payload 子类型

所有活动记录的结构化 payload 定义。
"""

from pydantic import BaseModel, Field

from .enums import TaskStatus


class TaskCreatedPayload(BaseModel):
    """TASK_CREATED 活动 payload"""

    title: str
    status: TaskStatus
    assignee_id: str | None = None


class TaskUpdatedPayload(BaseModel):
    """TASK_UPDATED 活动 payload"""

    fields: list[str] = Field(default_factory=list, description="被修改的字段名")


class StatusChangedPayload(BaseModel):
    """TASK_STATUS_CHANGED 活动 payload"""

    from_status: TaskStatus
    to_status: TaskStatus


class TaskDeletedPayload(BaseModel):
    """TASK_DELETED 活动 payload"""

    title: str
    status: TaskStatus

