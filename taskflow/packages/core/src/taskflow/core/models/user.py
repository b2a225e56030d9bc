"""User Domain Model

身份认证由外部提供，这里只保留解析负责人所需的用户资料。
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class User(BaseModel):
    """用户资料"""

    user_id: str = Field(description="用户 ID（身份提供方分配）")
    name: str = Field(default="", description="展示名")
    email: str = Field(default="", description="邮箱")
    role: str = Field(default="software_engineer", description="角色标识")
    avatar: str = Field(default="", description="头像 URL")
    is_active: bool = Field(default=True, description="是否启用")
    created_at: datetime | None = Field(default=None, description="创建时间")


def normalize_user(raw: Mapping[str, Any]) -> User:
    """兼容旧版 uid/isActive/createdAt 字段名"""
    user_id = raw.get("user_id") or raw.get("uid") or raw.get("id")
    if not user_id:
        raise ValueError("user record is missing an id")
    is_active = raw.get("is_active", raw.get("isActive", True))
    return User(
        user_id=str(user_id),
        name=str(raw.get("name") or ""),
        email=str(raw.get("email") or ""),
        role=str(raw.get("role") or "software_engineer"),
        avatar=str(raw.get("avatar") or ""),
        is_active=bool(is_active),
        created_at=raw.get("created_at") or raw.get("createdAt"),
    )
