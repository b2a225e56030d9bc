"""用户资料路由

POST /api/users: 创建或更新用户资料
GET  /api/users: 用户列表
GET  /api/users/{user_id}: 用户资料
"""

from fastapi import APIRouter, Depends
from taskflow.core.models import User

from ..deps import get_store_group
from ..services.project_service import UserService

router = APIRouter()


@router.post("/api/users", status_code=201)
async def upsert_user(
    user: User,
    store_group=Depends(get_store_group),
):
    service = UserService(store_group)
    saved = await service.upsert_user(user)
    return {"user": saved.model_dump(mode="json")}


@router.get("/api/users")
async def list_users(store_group=Depends(get_store_group)):
    service = UserService(store_group)
    users = await service.list_users()
    return {"users": [u.model_dump(mode="json") for u in users]}


@router.get("/api/users/{user_id}")
async def get_user(user_id: str, store_group=Depends(get_store_group)):
    service = UserService(store_group)
    user = await service.get_user(user_id)
    return {"user": user.model_dump(mode="json")}
