"""Store Protocol 接口定义

AggregateStore 是乐观更新控制器与计数重算唯一依赖的存储接口，
SQLite 实现与 gateway HTTP 客户端都按结构化子类型（duck typing）满足它。
"""

import asyncio
from typing import Protocol

from ..models.enums import TaskStatus
from ..models.project import TaskCounts
from ..models.task import Task


class TaskStatusWriter(Protocol):
    """任务状态写入接口"""

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        """更新任务状态：I/O 失败时抛出异常，不允许部分生效"""
        ...


class AggregateStore(TaskStatusWriter, Protocol):
    """任务/项目聚合存储接口"""

    async def get_tasks_by_project(self, project_id: str) -> list[Task]:
        """读取项目下全部任务的当前权威数据（无分页）"""
        ...

    async def update_project_counters(self, project_id: str, counts: TaskCounts) -> None:
        """写入项目的冗余任务计数"""
        ...


class SubscribableStore(AggregateStore, Protocol):
    """支持按项目订阅任务变更的聚合存储"""

    async def subscribe(self, project_id: str) -> asyncio.Queue:
        """订阅项目任务变更，返回推送 TaskChange 的队列"""
        ...

    async def unsubscribe(self, project_id: str, queue: asyncio.Queue) -> None:
        """取消订阅"""
        ...
