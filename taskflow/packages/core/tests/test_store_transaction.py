"""事务一致性单元测试

测试内容：
1. 状态更新 + 活动记录原子提交
2. 失败时整体回滚（状态与活动都不写入）
3. 条件更新（expected_status）冲突
4. 并发条件写入只有一个生效
5. 项目计数写入
"""

import asyncio
from datetime import UTC, datetime

import pytest
from taskflow.core.exceptions import ProjectNotFoundError, TaskNotFoundError
from taskflow.core.models import (
    Activity,
    ActivityType,
    StatusChangedPayload,
    TaskCounts,
    TaskStatus,
)
from taskflow.core.store.transaction import (
    TaskStatusConflictError,
    update_status_with_activity,
    write_project_counters,
)


def _status_activity(activity_id: str, task_id: str, from_status, to_status) -> Activity:
    return Activity(
        activity_id=activity_id,
        project_id="P",
        task_id=task_id,
        ts=datetime.now(UTC),
        type=ActivityType.TASK_STATUS_CHANGED,
        payload=StatusChangedPayload(
            from_status=from_status, to_status=to_status
        ).model_dump(mode="json"),
    )


class TestStatusTransaction:
    """状态写入事务"""

    async def test_status_and_activity_atomic_success(self, store_group, task_factory):
        """状态更新和活动记录在同一事务内成功"""
        await store_group.task_store.create_task(task_factory("t1"))
        await store_group.conn.commit()

        await update_status_with_activity(
            store_group.conn,
            store_group.task_store,
            store_group.activity_store,
            "t1",
            TaskStatus.IN_PROGRESS,
            _status_activity("a1", "t1", TaskStatus.TODO, TaskStatus.IN_PROGRESS),
        )

        task = await store_group.task_store.get_task("t1")
        assert task is not None
        assert task.status == TaskStatus.IN_PROGRESS

        activities = await store_group.activity_store.list_for_task("t1")
        assert len(activities) == 1
        assert activities[0].payload == {"from_status": "todo", "to_status": "in-progress"}

    async def test_rollback_on_duplicate_activity(self, store_group, task_factory):
        """活动写入失败时状态更新一并回滚"""
        await store_group.task_store.create_task(task_factory("t1"))
        await store_group.conn.commit()

        await update_status_with_activity(
            store_group.conn,
            store_group.task_store,
            store_group.activity_store,
            "t1",
            TaskStatus.IN_PROGRESS,
            _status_activity("dup", "t1", TaskStatus.TODO, TaskStatus.IN_PROGRESS),
        )

        # 重复 activity_id 触发主键冲突
        with pytest.raises(Exception):
            await update_status_with_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                "t1",
                TaskStatus.DONE,
                _status_activity("dup", "t1", TaskStatus.IN_PROGRESS, TaskStatus.DONE),
            )

        task = await store_group.task_store.get_task("t1")
        assert task.status == TaskStatus.IN_PROGRESS
        assert len(await store_group.activity_store.list_for_task("t1")) == 1

    async def test_missing_task_raises(self, store_group):
        with pytest.raises(TaskNotFoundError):
            await update_status_with_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                "missing",
                TaskStatus.DONE,
            )

    async def test_expected_status_conflict(self, store_group, task_factory):
        """当前状态与预期不符时不写入"""
        await store_group.task_store.create_task(task_factory("t1", TaskStatus.DONE))
        await store_group.conn.commit()

        with pytest.raises(TaskStatusConflictError):
            await update_status_with_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                "t1",
                TaskStatus.IN_PROGRESS,
                expected_status=TaskStatus.TODO,
            )

        task = await store_group.task_store.get_task("t1")
        assert task.status == TaskStatus.DONE

    async def test_expected_status_matches_legacy_alias(self, store_group, task_factory):
        """存储为旧写法 in_progress 的任务按 in-progress 参与条件更新"""
        await store_group.task_store.create_task(task_factory("t1"))
        await store_group.conn.execute(
            "UPDATE tasks SET status = 'in_progress' WHERE task_id = 't1'"
        )
        await store_group.conn.commit()

        await update_status_with_activity(
            store_group.conn,
            store_group.task_store,
            store_group.activity_store,
            "t1",
            TaskStatus.DONE,
            _status_activity("a1", "t1", TaskStatus.IN_PROGRESS, TaskStatus.DONE),
            expected_status=TaskStatus.IN_PROGRESS,
        )

        assert await store_group.task_store.get_raw_status("t1") == "done"
        assert len(await store_group.activity_store.list_for_task("t1")) == 1


class TestConcurrentStatusWrites:
    """同一连接上的并发状态写入"""

    async def test_concurrent_conditional_writes_single_winner(self, store_group, task_factory):
        """两个基于同一预期状态的写入并发执行，只有一个生效，另一个冲突"""
        await store_group.task_store.create_task(task_factory("t1", TaskStatus.IN_PROGRESS))
        await store_group.conn.commit()
        aggregate = store_group.aggregate_store("u-alice")

        results = await asyncio.gather(
            aggregate.update_task_status(
                "t1", TaskStatus.TODO, expected_status=TaskStatus.IN_PROGRESS
            ),
            aggregate.update_task_status(
                "t1", TaskStatus.DONE, expected_status=TaskStatus.IN_PROGRESS
            ),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, TaskStatusConflictError)]
        written = [r for r in results if not isinstance(r, BaseException)]
        assert len(conflicts) == 1
        assert len(written) == 1

        task = await store_group.task_store.get_task("t1")
        assert task.status == written[0].status
        activities = await store_group.activity_store.list_for_task("t1")
        assert [a.type for a in activities] == [ActivityType.TASK_STATUS_CHANGED]
        assert activities[0].payload == {
            "from_status": "in-progress",
            "to_status": written[0].status.value,
        }

    async def test_failed_write_keeps_concurrent_success(self, store_group, task_factory):
        """一个写入回滚不会撤销另一个并发写入"""
        await store_group.task_store.create_task(task_factory("t1"))
        await store_group.task_store.create_task(task_factory("t2", minutes=1))
        await store_group.activity_store.append_activity(
            _status_activity("dup", "t2", TaskStatus.TODO, TaskStatus.TODO)
        )
        await store_group.conn.commit()

        results = await asyncio.gather(
            update_status_with_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                "t1",
                TaskStatus.IN_PROGRESS,
                _status_activity("a1", "t1", TaskStatus.TODO, TaskStatus.IN_PROGRESS),
            ),
            update_status_with_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                "t2",
                TaskStatus.DONE,
                _status_activity("dup", "t2", TaskStatus.TODO, TaskStatus.DONE),
            ),
            return_exceptions=True,
        )

        assert results[0] is None
        assert isinstance(results[1], Exception)
        assert (await store_group.task_store.get_task("t1")).status == TaskStatus.IN_PROGRESS
        assert (await store_group.task_store.get_task("t2")).status == TaskStatus.TODO
        assert len(await store_group.activity_store.list_for_task("t1")) == 1


class TestCounterWrite:
    """项目计数写入"""

    async def test_write_counters(self, store_group):
        counts = TaskCounts(todo=2, in_progress=1, done=3)
        await write_project_counters(store_group.conn, store_group.project_store, "P", counts)
        project = await store_group.project_store.get_project("P")
        assert project.tasks_count == counts

    async def test_missing_project_raises(self, store_group):
        with pytest.raises(ProjectNotFoundError):
            await write_project_counters(
                store_group.conn, store_group.project_store, "nope", TaskCounts()
            )
