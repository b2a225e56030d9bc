"""乐观更新控制器单元测试

测试内容：
1. 存储失败回滚，锁释放
2. 存储确认前已应用新状态
3. 在途时重复请求被忽略，不发出第二次写入
4. 非相邻流转在写入前被拒绝
5. 计数刷新失败不回滚已提交的状态
6. 端到端看板场景
"""

import asyncio

import pytest
from taskflow.core.counters import CounterRecalculator
from taskflow.core.exceptions import InvalidTransitionError, PendingUpdateConflictError
from taskflow.core.models import NotificationVariant, TaskCounts, TaskStatus
from taskflow.core.optimistic import OptimisticUpdateController, StatusChangeResult


@pytest.fixture
def board_tasks(task_factory):
    return [
        task_factory("T1", TaskStatus.TODO, minutes=1),
        task_factory("T2", TaskStatus.IN_PROGRESS, minutes=0),
    ]


@pytest.fixture
def store(fake_store_factory, board_tasks):
    return fake_store_factory(board_tasks)


@pytest.fixture
def controller(store, notifier, board_tasks):
    return OptimisticUpdateController(
        store,
        notifier,
        recalculator=CounterRecalculator(store),
        tasks=board_tasks,
    )


def _status(controller, task_id):
    return controller.get_task(task_id).status


class TestRollback:
    """存储失败回滚"""

    async def test_failed_write_restores_previous_status(self, controller, store, notifier):
        store.fail_status_update = True
        before = controller.get_task("T1")

        outcome = await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)

        assert outcome.result == StatusChangeResult.ROLLED_BACK
        assert outcome.status == TaskStatus.TODO
        assert isinstance(outcome.error, ConnectionError)
        assert controller.get_task("T1") == before
        assert "T1" not in controller.pending_task_ids

        assert notifier.notifications[-1].title == "Error"
        assert notifier.notifications[-1].description == (
            "Failed to update task status. Please try again."
        )
        assert notifier.notifications[-1].variant == NotificationVariant.DESTRUCTIVE

    async def test_failed_write_skips_recalculation(self, controller, store):
        store.fail_status_update = True
        await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        assert store.counter_writes == []

    async def test_retry_after_failure_is_allowed(self, controller, store):
        """失败后锁已释放，用户可以重新发起"""
        store.fail_status_update = True
        await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)

        store.fail_status_update = False
        outcome = await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)

        assert outcome.result == StatusChangeResult.COMMITTED
        assert len(store.status_calls) == 2


class TestOptimisticApply:
    """写入确认前的乐观应用"""

    async def test_status_visible_before_store_resolves(self, controller, store):
        store.gate = asyncio.Event()

        request = asyncio.create_task(
            controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        )
        await store.started.wait()

        assert _status(controller, "T1") == TaskStatus.IN_PROGRESS
        assert controller.pending_task_ids == {"T1"}

        store.gate.set()
        outcome = await request

        assert outcome.result == StatusChangeResult.COMMITTED
        assert controller.pending_task_ids == frozenset()

    def test_begin_applies_synchronously(self, controller):
        pending = controller.begin("T1", TaskStatus.IN_PROGRESS)

        assert pending is not None
        assert pending.previous_status == TaskStatus.TODO
        assert pending.project_id == "P"
        assert _status(controller, "T1") == TaskStatus.IN_PROGRESS

    def test_begin_does_not_mutate_input_tasks(self, controller, board_tasks):
        controller.begin("T1", TaskStatus.IN_PROGRESS)
        assert board_tasks[0].status == TaskStatus.TODO


class TestDuplicateSuppression:
    """同一任务的在途互斥"""

    async def test_second_request_ignored_while_pending(self, controller, store, notifier):
        store.gate = asyncio.Event()
        first = asyncio.create_task(
            controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        )
        await store.started.wait()

        second = await controller.request_status_change("T1", TaskStatus.DONE)

        assert second.result == StatusChangeResult.IGNORED
        assert len(store.status_calls) == 1
        assert controller.pending_task_ids == {"T1"}
        # 重复请求不提示用户
        assert notifier.notifications == []

        store.gate.set()
        await first
        assert _status(controller, "T1") == TaskStatus.IN_PROGRESS

    def test_begin_raises_conflict(self, controller):
        controller.begin("T1", TaskStatus.IN_PROGRESS)
        with pytest.raises(PendingUpdateConflictError):
            controller.begin("T1", TaskStatus.DONE)

    def test_pending_lock_checked_before_policy(self, controller):
        """进行中的任务再次拖动时先命中锁，即使目标流转本身非法"""
        controller.begin("T2", TaskStatus.DONE)
        with pytest.raises(PendingUpdateConflictError):
            controller.begin("T2", TaskStatus.TODO)

    async def test_unrelated_tasks_update_concurrently(self, controller, store):
        store.gate = asyncio.Event()
        first = asyncio.create_task(
            controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        )
        second = asyncio.create_task(controller.request_status_change("T2", TaskStatus.DONE))
        await asyncio.sleep(0)
        await store.started.wait()

        assert controller.pending_task_ids == {"T1", "T2"}

        store.gate.set()
        results = await asyncio.gather(first, second)
        assert [r.result for r in results] == [StatusChangeResult.COMMITTED] * 2


class TestRejection:
    """非法流转与无效请求"""

    async def test_skip_column_rejected_before_write(self, controller, store, notifier):
        outcome = await controller.request_status_change("T1", TaskStatus.DONE)

        assert outcome.result == StatusChangeResult.REJECTED
        assert outcome.status == TaskStatus.TODO
        assert store.status_calls == []
        assert _status(controller, "T1") == TaskStatus.TODO
        assert notifier.titles == ["Invalid Move"]
        assert notifier.notifications[0].variant == NotificationVariant.DESTRUCTIVE

    def test_begin_raises_invalid_transition(self, controller):
        with pytest.raises(InvalidTransitionError):
            controller.begin("T1", TaskStatus.DONE)
        assert controller.pending_task_ids == frozenset()

    async def test_same_status_is_noop(self, controller, store):
        outcome = await controller.request_status_change("T2", TaskStatus.IN_PROGRESS)
        assert outcome.result == StatusChangeResult.NOOP
        assert store.status_calls == []

    async def test_unknown_task_is_noop(self, controller, store, notifier):
        outcome = await controller.request_status_change("missing", TaskStatus.DONE)
        assert outcome.result == StatusChangeResult.NOOP
        assert outcome.status is None
        assert store.status_calls == []
        assert notifier.notifications == []


class TestCounterRefresh:
    """成功写入后的计数刷新"""

    async def test_success_notifies_and_recalculates(self, controller, store, notifier):
        outcome = await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)

        assert outcome.counts == TaskCounts(todo=0, in_progress=2, done=0)
        assert store.counter_writes == [("P", TaskCounts(in_progress=2))]
        assert notifier.titles == ["Task updated"]
        assert notifier.notifications[0].description == "Task moved to In Progress"

    async def test_recalculation_failure_keeps_status(self, controller, store):
        store.fail_counter_write = True

        outcome = await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)

        assert outcome.result == StatusChangeResult.COMMITTED
        assert outcome.counts is None
        assert _status(controller, "T1") == TaskStatus.IN_PROGRESS
        assert store.tasks["T1"].status == TaskStatus.IN_PROGRESS

    async def test_without_recalculator(self, store, notifier, board_tasks):
        controller = OptimisticUpdateController(store, notifier, tasks=board_tasks)
        outcome = await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        assert outcome.counts is None
        assert store.counter_writes == []


class TestSync:
    """上游集合同步"""

    async def test_sync_keeps_pending_overlay(self, controller, store, board_tasks):
        store.gate = asyncio.Event()
        request = asyncio.create_task(
            controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        )
        await store.started.wait()

        # 上游仍是旧数据
        controller.sync(board_tasks)
        assert _status(controller, "T1") == TaskStatus.IN_PROGRESS

        store.gate.set()
        await request
        controller.sync(await store.get_tasks_by_project("P"))
        assert _status(controller, "T1") == TaskStatus.IN_PROGRESS

    def test_sync_replaces_collection(self, controller, task_factory):
        controller.sync([task_factory("T9", TaskStatus.DONE)])
        assert [t.task_id for t in controller.visible_tasks] == ["T9"]
        assert controller.get_task("T1") is None


class TestEndToEndScenario:
    """项目 P：T1 todo、T2 in-progress"""

    async def test_board_scenario(self, controller, store):
        outcome = await controller.request_status_change("T1", TaskStatus.IN_PROGRESS)
        assert outcome.result == StatusChangeResult.COMMITTED
        assert [(t.task_id, t.status) for t in controller.visible_tasks] == [
            ("T1", TaskStatus.IN_PROGRESS),
            ("T2", TaskStatus.IN_PROGRESS),
        ]
        counts = await CounterRecalculator(store).recalculate("P")
        assert counts == TaskCounts(todo=0, in_progress=2, done=0)

        # 相邻回退合法
        back = await controller.request_status_change("T1", TaskStatus.TODO)
        assert back.result == StatusChangeResult.COMMITTED
        assert _status(controller, "T1") == TaskStatus.TODO

        # 跨列移动在写入前被拒绝
        calls_before = len(store.status_calls)
        skip = await controller.request_status_change("T1", TaskStatus.DONE)
        assert skip.result == StatusChangeResult.REJECTED
        assert len(store.status_calls) == calls_before
        assert _status(controller, "T1") == TaskStatus.TODO
