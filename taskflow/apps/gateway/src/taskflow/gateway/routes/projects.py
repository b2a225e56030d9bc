"""项目路由

POST /api/projects: 创建项目
GET  /api/projects: 项目列表，支持 member 筛选
GET  /api/projects/{project_id}: 项目详情
DELETE /api/projects/{project_id}: 删除项目（任务级联删除）
PUT  /api/projects/{project_id}/counters: 写入冗余计数
POST /api/projects/{project_id}/recalculate: 从任务表重算计数
GET  /api/projects/{project_id}/tasks: 项目全部任务（权威数据）
GET  /api/projects/{project_id}/board: 看板分列视图
GET  /api/projects/{project_id}/activities: 项目活动流
"""

from fastapi import APIRouter, Depends, Query
from taskflow.core.board import project_board
from taskflow.core.config import ACTIVITY_PAGE_LIMIT
from taskflow.core.models import Project, ProjectCreate, TaskCounts

from ..deps import get_actor_id, get_store_group
from ..services.project_service import ProjectService
from ..services.task_service import TaskService

router = APIRouter()


def _project_data(project: Project) -> dict:
    data = project.model_dump(mode="json", by_alias=True)
    data["progress"] = project.progress
    return data


@router.post("/api/projects", status_code=201)
async def create_project(
    data: ProjectCreate,
    store_group=Depends(get_store_group),
    actor_id: str = Depends(get_actor_id),
):
    service = ProjectService(store_group)
    project = await service.create_project(data, created_by=actor_id)
    return {"project": _project_data(project)}


@router.get("/api/projects")
async def list_projects(
    member: str | None = Query(default=None, description="只返回该用户参与的项目"),
    store_group=Depends(get_store_group),
):
    service = ProjectService(store_group)
    projects = await service.list_projects(member)
    return {"projects": [_project_data(p) for p in projects]}


@router.get("/api/projects/{project_id}")
async def get_project(
    project_id: str,
    store_group=Depends(get_store_group),
):
    service = ProjectService(store_group)
    project = await service.get_project(project_id)
    return {"project": _project_data(project)}


@router.delete("/api/projects/{project_id}")
async def delete_project(
    project_id: str,
    store_group=Depends(get_store_group),
):
    service = ProjectService(store_group)
    await service.delete_project(project_id)
    return {"project_id": project_id, "deleted": True}


@router.put("/api/projects/{project_id}/counters")
async def write_counters(
    project_id: str,
    counts: TaskCounts,
    store_group=Depends(get_store_group),
):
    """写入项目冗余计数（客户端重算器使用）"""
    service = ProjectService(store_group)
    project = await service.write_counters(project_id, counts)
    return {"project": _project_data(project)}


@router.post("/api/projects/{project_id}/recalculate")
async def recalculate_counters(
    project_id: str,
    store_group=Depends(get_store_group),
):
    """从任务表重算项目计数"""
    service = ProjectService(store_group)
    counts = await service.recalculate(project_id)
    return {"project_id": project_id, "counts": counts.model_dump(by_alias=True)}


@router.get("/api/projects/{project_id}/tasks")
async def list_project_tasks(
    project_id: str,
    store_group=Depends(get_store_group),
):
    """项目全部任务，按 created_at 倒序，无分页"""
    service = TaskService(store_group)
    tasks = await service.list_project_tasks(project_id)
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/projects/{project_id}/board")
async def get_project_board(
    project_id: str,
    store_group=Depends(get_store_group),
):
    """按状态分列的看板视图"""
    service = TaskService(store_group)
    tasks = await service.list_project_tasks(project_id)
    columns = project_board(tasks)
    return {
        "project_id": project_id,
        "columns": [
            {
                "status": column.status.value,
                "title": column.title,
                "count": column.count,
                "tasks": [t.model_dump(mode="json") for t in column.tasks],
            }
            for column in columns
        ],
    }


@router.get("/api/projects/{project_id}/activities")
async def list_project_activities(
    project_id: str,
    limit: int = Query(default=ACTIVITY_PAGE_LIMIT, ge=1, le=ACTIVITY_PAGE_LIMIT),
    store_group=Depends(get_store_group),
):
    """项目活动流，最新在前"""
    service = ProjectService(store_group)
    activities = await service.list_activities(project_id, limit)
    return {"activities": [a.model_dump(mode="json") for a in activities]}
