"""SSE 变更流路由

GET /api/stream/project/{project_id}: SSE 实时推送指定项目的任务变更。
连接建立时先推送一次 snapshot（当前全部任务），之后推送 TaskChange，空闲时发送心跳。
订阅因积压被 ChangeHub 关闭时结束流，客户端重连后重新获取 snapshot。
"""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable

import structlog
from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse
from taskflow.core.config import SSE_HEARTBEAT_INTERVAL
from taskflow.core.models import TaskChange
from taskflow.core.store.protocols import SubscribableStore

from ..deps import get_store_group, get_subscribable_store
from ..services.project_service import ProjectService

log = structlog.get_logger()

router = APIRouter()


def _change_to_sse(change: TaskChange) -> dict:
    """将 TaskChange 转换为 SSE 消息"""
    return {
        "id": change.activity_id or "",
        "event": change.type.value,
        "data": change.model_dump_json(),
    }


async def _event_stream(
    store: SubscribableStore,
    project_id: str,
    is_disconnected: Callable[[], Awaitable[bool]],
    heartbeat_interval: float = SSE_HEARTBEAT_INTERVAL,
) -> AsyncIterator[dict]:
    # 先订阅再读取快照，避免两者之间的变更丢失
    queue = await store.subscribe(project_id)
    try:
        tasks = await store.get_tasks_by_project(project_id)
        yield {
            "event": "snapshot",
            "data": json.dumps(
                {
                    "project_id": project_id,
                    "tasks": [t.model_dump(mode="json") for t in tasks],
                },
                ensure_ascii=False,
            ),
        }
        while True:
            if await is_disconnected():
                return
            try:
                change = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
            except TimeoutError:
                # 心跳保活
                yield {"comment": "heartbeat"}
                continue
            if change is None:
                log.info("change_stream_closed", project_id=project_id)
                return
            yield _change_to_sse(change)
    finally:
        await store.unsubscribe(project_id, queue)


@router.get("/api/stream/project/{project_id}")
async def stream_project_changes(
    project_id: str,
    request: Request,
    store_group=Depends(get_store_group),
    store: SubscribableStore = Depends(get_subscribable_store),
):
    """SSE 变更流端点

    1. 项目不存在返回 404
    2. 推送 snapshot 事件（当前全部任务）
    3. 订阅项目变更实时推送
    4. 心跳保活，客户端断开或订阅被关闭后结束
    """
    # 项目不存在时抛出 ProjectNotFoundError -> 404
    await ProjectService(store_group).get_project(project_id)
    return EventSourceResponse(_event_stream(store, project_id, request.is_disconnected))
