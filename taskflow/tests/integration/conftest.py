"""集成测试共享 fixture

gateway app 与 GatewayStore 通过 httpx.ASGITransport 直接相连，
覆盖 客户端看板 -> REST -> SQLite -> 计数 的完整链路。
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskflow.client import GatewayStore
from taskflow.core.store import create_store_group


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications = []

    def notify(self, notification) -> None:
        self.notifications.append(notification)

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self.notifications]


@pytest_asyncio.fixture
async def integration_app(gateway_env):
    """集成测试用 FastAPI app"""
    from taskflow.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(str(gateway_env))
    app.state.store_group = store_group

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
        headers={"X-User-Id": "u-alice"},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def gateway_store(integration_app) -> AsyncGenerator[GatewayStore, None]:
    """以 u-bob 身份访问 gateway 的远端存储"""
    store = GatewayStore(
        gateway_url="http://test",
        actor_id="u-bob",
        transport=httpx.ASGITransport(app=integration_app),
    )
    async with store:
        yield store


@pytest_asyncio.fixture
async def seeded_project(client: AsyncClient) -> dict:
    """两位成员、三张任务（todo / todo / in-progress）的项目"""
    for user_id, name in (("u-alice", "Alice"), ("u-bob", "Bob")):
        await client.post("/api/users", json={"user_id": user_id, "name": name})
    resp = await client.post("/api/projects", json={"name": "Launch", "members": ["u-bob"]})
    project_id = resp.json()["project"]["project_id"]

    task_ids = {}
    for title, status in (("Plan", "todo"), ("Docs", "todo"), ("Build", "in-progress")):
        resp = await client.post(
            "/api/tasks",
            json={"title": title, "project_id": project_id, "status": status},
        )
        task_ids[title] = resp.json()["task"]["task_id"]
    return {"project_id": project_id, "task_ids": task_ids}


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
