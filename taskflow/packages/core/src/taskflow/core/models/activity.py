"""Activity Domain Model

活动流 append-only，只允许插入，不允许更新或删除。
activity_id 使用 ULID 格式，时间有序；任务状态写入与活动记录在同一事务内提交。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ActivityType


class Activity(BaseModel):
    """Activity 数据模型

    task_id 在任务删除后仍保留，用于展示历史记录。
    """

    activity_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    project_id: str = Field(description="关联的 Project ID")
    task_id: str | None = Field(default=None, description="关联的 Task ID")
    ts: datetime = Field(description="活动时间戳")
    type: ActivityType = Field(description="活动类型")
    actor_id: str = Field(default="system", description="操作者用户 ID")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
