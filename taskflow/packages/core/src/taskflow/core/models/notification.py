"""Notification / TaskChange 模型

Notification 是一次性的用户提示（toast），TaskChange 是存储层向订阅者推送的变更通知。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ActivityType, NotificationVariant, TaskStatus


class Notification(BaseModel):
    """用户提示 -- variant 区分成功提示与错误提示"""

    title: str
    description: str = ""
    variant: NotificationVariant = NotificationVariant.DEFAULT


class TaskChange(BaseModel):
    """任务变更通知（按项目广播）"""

    project_id: str = Field(description="所属项目 ID")
    task_id: str = Field(description="发生变更的任务 ID")
    type: ActivityType = Field(description="变更类型")
    status: TaskStatus | None = Field(default=None, description="变更后的状态（删除时为空）")
    ts: datetime = Field(description="变更时间")
    activity_id: str | None = Field(default=None, description="对应的活动记录 ID")
