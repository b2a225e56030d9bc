"""任务路由

POST   /api/tasks: 创建任务
GET    /api/tasks: 任务列表，支持 status 筛选
GET    /api/tasks/{task_id}: 任务详情，含活动记录
PATCH  /api/tasks/{task_id}: 更新普通字段
PATCH  /api/tasks/{task_id}/status: 状态流转（相邻规则），可选重算项目计数
DELETE /api/tasks/{task_id}: 删除任务
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.responses import JSONResponse
from taskflow.core.models import TaskCreate, TaskStatus, TaskUpdate

from ..deps import get_actor_id, get_store_group
from ..services.task_service import TaskService

router = APIRouter()


class StatusChangeRequest(BaseModel):
    """状态流转请求体"""

    status: TaskStatus


@router.post("/api/tasks", status_code=201)
async def create_task(
    data: TaskCreate,
    store_group=Depends(get_store_group),
    actor_id: str = Depends(get_actor_id),
):
    """创建任务，未指定状态时使用默认初始状态，未指定负责人时分配给创建者"""
    service = TaskService(store_group, actor_id)
    task = await service.create_task(data)
    return {"task": task.model_dump(mode="json")}


@router.get("/api/tasks")
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    store_group=Depends(get_store_group),
):
    """查询任务列表，按 created_at 倒序"""
    service = TaskService(store_group)
    tasks = await service.list_tasks(status.value if status else None)
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    store_group=Depends(get_store_group),
):
    """查询任务详情，包含按时间正序的活动记录"""
    service = TaskService(store_group)
    task = await service.get_task(task_id)
    activities = await store_group.activity_store.list_for_task(task_id)
    return {
        "task": task.model_dump(mode="json"),
        "activities": [a.model_dump(mode="json") for a in activities],
    }


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    data: TaskUpdate,
    store_group=Depends(get_store_group),
    actor_id: str = Depends(get_actor_id),
):
    """更新任务字段（状态请使用 /status 子路由）"""
    service = TaskService(store_group, actor_id)
    task = await service.update_task(task_id, data)
    return {"task": task.model_dump(mode="json")}


@router.patch("/api/tasks/{task_id}/status")
async def change_task_status(
    task_id: str,
    body: StatusChangeRequest,
    recalculate: bool = Query(default=True, description="写入后是否重算项目计数"),
    store_group=Depends(get_store_group),
    actor_id: str = Depends(get_actor_id),
):
    """变更任务状态

    - 200: 变更成功（同状态为 no-op）
    - 404: 任务不存在
    - 409: 非相邻流转或并发冲突
    """
    service = TaskService(store_group, actor_id)
    task, counts = await service.change_status(task_id, body.status, recalculate=recalculate)
    return {
        "task": task.model_dump(mode="json"),
        "counts": counts.model_dump(by_alias=True) if counts else None,
    }


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    store_group=Depends(get_store_group),
    actor_id: str = Depends(get_actor_id),
):
    service = TaskService(store_group, actor_id)
    task = await service.delete_task(task_id)
    return JSONResponse(
        status_code=200,
        content={"task_id": task.task_id, "deleted": True},
    )
