"""apps/gateway 测试配置 -- httpx AsyncClient + 临时数据库"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskflow.core.store import create_store_group


@pytest_asyncio.fixture
async def test_app(gateway_env):
    """创建测试用 FastAPI app（手动初始化 StoreGroup，绕过 lifespan）"""
    from taskflow.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(str(gateway_env))
    app.state.store_group = store_group

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试，默认以 u-alice 身份请求"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        headers={"X-User-Id": "u-alice"},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def project_id(client: AsyncClient) -> str:
    """已创建的项目（成员 u-alice、u-bob），返回项目 ID"""
    for user_id, name in (("u-alice", "Alice"), ("u-bob", "Bob")):
        resp = await client.post(
            "/api/users",
            json={"user_id": user_id, "name": name, "email": f"{user_id}@example.com"},
        )
        assert resp.status_code == 201
    resp = await client.post(
        "/api/projects",
        json={"name": "Launch", "members": ["u-bob"]},
    )
    assert resp.status_code == 201
    return resp.json()["project"]["project_id"]
