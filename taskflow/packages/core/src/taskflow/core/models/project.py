"""Project Domain Model

tasks_count 是按状态分桶的冗余计数，只允许由 CounterRecalculator 写入，
在任务变更与重算完成之间允许短暂过期（最终一致）。
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROJECT_NAME = "Unnamed Project"
DEFAULT_PROJECT_DESCRIPTION = "No description available"
DEFAULT_PROJECT_COLOR = "#6b7280"


class TaskCounts(BaseModel):
    """按状态分桶的任务计数（序列化字段名 todo/inProgress/done）"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    todo: int = Field(default=0, ge=0)
    in_progress: int = Field(default=0, ge=0, alias="inProgress")
    done: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.todo + self.in_progress + self.done

    @property
    def progress(self) -> int:
        """完成百分比（四舍五入），无任务时为 0"""
        if self.total == 0:
            return 0
        return round(self.done / self.total * 100)


class Project(BaseModel):
    """Project 数据模型"""

    project_id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="项目名称")
    description: str = Field(default="", description="项目描述")
    color: str = Field(default=DEFAULT_PROJECT_COLOR, description="展示颜色")
    members: list[str] = Field(default_factory=list, description="成员用户 ID 列表")
    tasks_count: TaskCounts = Field(default_factory=TaskCounts, description="冗余任务计数")
    created_by: str = Field(default="", description="创建者用户 ID")
    created_at: datetime = Field(description="创建时间")
    next_due_date: str | None = Field(default=None, description="下一个截止日期")

    @property
    def progress(self) -> int:
        return self.tasks_count.progress


class ProjectCreate(BaseModel):
    """创建项目的输入"""

    name: str = Field(min_length=1)
    description: str = ""
    color: str = DEFAULT_PROJECT_COLOR
    members: list[str] = Field(default_factory=list)
    next_due_date: str | None = None


def normalize_counts(raw: Any) -> TaskCounts:
    """计数对象归一化：缺失或非法值按 0 处理"""
    if isinstance(raw, TaskCounts):
        return raw
    if not isinstance(raw, Mapping):
        return TaskCounts()

    def _value(*keys: str) -> int:
        for key in keys:
            try:
                return max(int(raw[key]), 0)
            except (KeyError, TypeError, ValueError):
                continue
        return 0

    return TaskCounts(
        todo=_value("todo"),
        in_progress=_value("inProgress", "in_progress"),
        done=_value("done"),
    )


def normalize_project(raw: Mapping[str, Any]) -> Project:
    """读取边界的 Project 归一化（兼容旧版 camelCase 字段名）"""
    project_id = raw.get("project_id") or raw.get("id")
    if not project_id:
        raise ValueError("project record is missing an id")

    members = raw.get("members")
    if isinstance(members, Mapping):
        # 实时数据库导出中数组可能以 {index: value} 形式出现
        members = list(members.values())
    if not isinstance(members, list):
        members = []

    created_at = raw.get("created_at") or raw.get("createdAt")
    if isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        except ValueError:
            created_at = None
    if not isinstance(created_at, datetime):
        created_at = datetime.fromtimestamp(0, UTC)

    return Project(
        project_id=str(project_id),
        name=str(raw.get("name") or "").strip() or DEFAULT_PROJECT_NAME,
        description=str(raw.get("description") or "").strip() or DEFAULT_PROJECT_DESCRIPTION,
        color=str(raw.get("color") or "").strip() or DEFAULT_PROJECT_COLOR,
        members=[str(m) for m in members],
        tasks_count=normalize_counts(raw.get("tasks_count", raw.get("tasksCount"))),
        created_by=str(raw.get("created_by") or raw.get("createdBy") or ""),
        created_at=created_at,
        next_due_date=raw.get("next_due_date") or raw.get("nextDueDate") or None,
    )
