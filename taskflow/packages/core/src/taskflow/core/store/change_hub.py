"""ChangeHub -- 内存中任务变更广播器

每个订阅者持有一个 asyncio.Queue，按 project_id 分组 subscribe/unsubscribe/broadcast。
队列写满的订阅者视为掉线：移除订阅，清空队列并放入 None 表示订阅已关闭。
"""

import asyncio
from collections import defaultdict

import structlog

from ..config import CHANGE_QUEUE_MAXSIZE
from ..models.notification import TaskChange

log = structlog.get_logger()


class ChangeHub:
    """任务变更广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = CHANGE_QUEUE_MAXSIZE) -> None:
        # project_id -> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, project_id: str) -> asyncio.Queue:
        """订阅指定项目的任务变更

        Args:
            project_id: 要订阅的项目 ID

        Returns:
            asyncio.Queue 实例，新变更会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[project_id].add(queue)
        return queue

    async def unsubscribe(self, project_id: str, queue: asyncio.Queue) -> None:
        """取消订阅

        Args:
            project_id: 项目 ID
            queue: 之前订阅时返回的队列
        """
        self._subscribers[project_id].discard(queue)
        if not self._subscribers[project_id]:
            del self._subscribers[project_id]

    async def broadcast(self, change: TaskChange) -> None:
        """向变更所属项目的所有订阅者广播

        Args:
            change: 任务变更通知
        """
        project_id = change.project_id
        dead_queues = []
        for queue in self._subscribers.get(project_id, set()):
            try:
                queue.put_nowait(change)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        for q in dead_queues:
            self._subscribers[project_id].discard(q)
            _close(q)
            log.warning("change_subscriber_dropped", project_id=project_id)
        if project_id in self._subscribers and not self._subscribers[project_id]:
            del self._subscribers[project_id]

    def subscriber_count(self, project_id: str) -> int:
        return len(self._subscribers.get(project_id, ()))


def _close(queue: asyncio.Queue) -> None:
    """丢弃积压的变更并放入关闭标记 None"""
    while not queue.empty():
        queue.get_nowait()
    queue.put_nowait(None)
