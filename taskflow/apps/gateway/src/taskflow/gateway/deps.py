"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 实例与操作者

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from taskflow.core.store import StoreGroup
from taskflow.core.store.protocols import SubscribableStore

# 未携带 X-User-Id 时的操作者
SYSTEM_ACTOR = "system"


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_subscribable_store(request: Request) -> SubscribableStore:
    """可订阅变更的聚合存储（SSE 推送使用）"""
    return request.app.state.store_group.aggregate_store()


def get_actor_id(request: Request) -> str:
    """从 X-User-Id 请求头读取操作者 ID（身份认证由上游负责）"""
    return request.headers.get("x-user-id", "").strip() or SYSTEM_ACTOR
