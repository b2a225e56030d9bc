"""项目计数重算模块

从权威存储重新读取项目下全部任务，按状态分桶计数后整体写回 Project.tasks_count。
不做 +1/-1 增量调整：每次任务变更后冗余调用即可，重复执行结果相同。
"""

import time
from collections.abc import Iterable

import structlog

from .models.enums import TaskStatus
from .models.project import TaskCounts
from .models.task import Task
from .store.protocols import AggregateStore

log = structlog.get_logger()


def count_tasks(tasks: Iterable[Task]) -> TaskCounts:
    """按状态统计任务数量"""
    buckets = {status: 0 for status in TaskStatus}
    for task in tasks:
        buckets[task.status] += 1
    return TaskCounts(
        todo=buckets[TaskStatus.TODO],
        in_progress=buckets[TaskStatus.IN_PROGRESS],
        done=buckets[TaskStatus.DONE],
    )


class CounterRecalculator:
    """项目冗余计数重算器

    只依赖 AggregateStore 的 get_tasks_by_project / update_project_counters，
    因此同时适用于本地 SQLite 存储和远端 gateway 客户端。
    """

    def __init__(self, store: AggregateStore) -> None:
        self._store = store

    async def recalculate(self, project_id: str) -> TaskCounts:
        """重算并写回项目计数

        Args:
            project_id: 项目 ID

        Returns:
            写入的计数

        Raises:
            存储读取或写入失败时原样抛出
        """
        tasks = await self._store.get_tasks_by_project(project_id)
        counts = count_tasks(tasks)
        await self._store.update_project_counters(project_id, counts)
        await log.adebug(
            "project_counters_recalculated",
            project_id=project_id,
            todo=counts.todo,
            in_progress=counts.in_progress,
            done=counts.done,
        )
        return counts

    async def refresh(self, project_id: str) -> TaskCounts | None:
        """任务变更后的计数刷新：失败只记录日志，不影响已提交的变更"""
        try:
            return await self.recalculate(project_id)
        except Exception as e:
            await log.awarning(
                "counter_recalculation_failed",
                project_id=project_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None


async def recalculate_all(store_group) -> dict[str, TaskCounts]:
    """重算所有项目的计数（维护命令使用）

    Args:
        store_group: StoreGroup 实例

    Returns:
        project_id -> 写入的计数
    """
    start_time = time.monotonic()
    recalculator = CounterRecalculator(store_group.aggregate_store())
    projects = await store_group.project_store.list_projects()

    await log.ainfo("counter_rebuild_started", project_count=len(projects))

    results: dict[str, TaskCounts] = {}
    for project in projects:
        results[project.project_id] = await recalculator.recalculate(project.project_id)

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "counter_rebuild_completed",
        project_count=len(results),
        elapsed_ms=elapsed_ms,
    )
    return results
