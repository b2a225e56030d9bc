"""Client 包测试 fixtures"""

import pytest


@pytest.fixture
def task_payloads() -> list[dict]:
    """gateway /api/projects/P/tasks 响应中的任务数据"""
    return [
        {
            "task_id": "T1",
            "title": "Write docs",
            "status": "todo",
            "priority": "high",
            "project_id": "P",
            "assignee_id": "u-alice",
            "assignee": {"user_id": "u-alice", "name": "Alice", "avatar": ""},
            "created_at": "2025-01-02T00:00:00Z",
        },
        {
            "task_id": "T2",
            "title": "Ship it",
            "status": "in-progress",
            "project_id": "P",
            "created_at": "2025-01-01T00:00:00Z",
        },
    ]
