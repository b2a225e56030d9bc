"""Domain Models 单元测试

测试内容：
1. 枚举值
2. 读取边界归一化（旧字段名、旧状态写法、缺省值）
3. 负责人与项目占位信息
4. TaskCounts 序列化别名与进度
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError
from taskflow.core.models import (
    AssigneeInfo,
    Project,
    TaskCounts,
    TaskPriority,
    TaskStatus,
    User,
    normalize_counts,
    normalize_project,
    normalize_status,
    normalize_task,
    normalize_user,
)


class TestEnums:
    """枚举序列化测试"""

    def test_task_status_values(self):
        assert TaskStatus.TODO == "todo"
        assert TaskStatus.IN_PROGRESS == "in-progress"
        assert TaskStatus.DONE == "done"

    def test_priority_values(self):
        assert TaskPriority.LOW == "low"
        assert TaskPriority.MEDIUM == "medium"
        assert TaskPriority.HIGH == "high"


class TestNormalizeStatus:
    """状态归一化"""

    @pytest.mark.parametrize("raw", ["in_progress", "inProgress", "doing", "IN-PROGRESS"])
    def test_legacy_in_progress_spellings(self, raw):
        assert normalize_status(raw) == TaskStatus.IN_PROGRESS

    @pytest.mark.parametrize("raw", [None, "", "archived"])
    def test_unknown_falls_back_to_todo(self, raw):
        assert normalize_status(raw) == TaskStatus.TODO


class TestNormalizeTask:
    """Task 读取边界归一化"""

    def test_camel_case_record(self):
        """旧版 camelCase 记录可直接归一化"""
        task = normalize_task(
            {
                "id": "t1",
                "title": "Write docs",
                "status": "in_progress",
                "priority": "high",
                "projectId": "P",
                "assigneeId": "u-alice",
                "dueDate": "2025-03-01",
                "createdBy": "u-bob",
                "createdAt": "2025-01-02T03:04:05Z",
            },
            {"u-alice": User(user_id="u-alice", name="Alice")},
        )
        assert task.task_id == "t1"
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.priority == TaskPriority.HIGH
        assert task.project_id == "P"
        assert task.due_date == "2025-03-01"
        assert task.created_at == datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)
        assert task.assignee is not None
        assert task.assignee.name == "Alice"
        assert task.assignee.initials == "AL"

    def test_missing_fields_get_defaults(self):
        task = normalize_task({"task_id": "t2", "project_id": "P", "title": "  "})
        assert task.title == "Untitled task"
        assert task.priority == TaskPriority.MEDIUM
        assert task.status == TaskStatus.TODO
        assert task.assignee is None
        assert task.due_date == ""

    def test_dangling_assignee_becomes_unknown(self):
        """负责人引用的用户不存在时使用占位信息"""
        task = normalize_task({"task_id": "t3", "project_id": "P", "assignee_id": "ghost"}, {})
        assert task.assignee == AssigneeInfo(user_id="ghost", name="Unknown")
        assert task.assignee.initials == "UK"

    def test_missing_project_rejected(self):
        with pytest.raises(ValueError, match="project"):
            normalize_task({"task_id": "t4", "title": "orphan"})

    def test_missing_id_rejected(self):
        with pytest.raises(ValueError):
            normalize_task({"project_id": "P"})

    def test_unassigned_placeholder(self):
        info = AssigneeInfo()
        assert info.name == "Unassigned"
        assert info.initials == "UN"


class TestTaskCounts:
    """项目计数模型"""

    def test_alias_serialization(self):
        counts = TaskCounts(todo=2, in_progress=1, done=3)
        assert counts.model_dump(by_alias=True) == {"todo": 2, "inProgress": 1, "done": 3}

    def test_populate_by_alias(self):
        counts = TaskCounts.model_validate({"todo": 1, "inProgress": 4, "done": 0})
        assert counts.in_progress == 4

    def test_total_and_progress(self):
        counts = TaskCounts(todo=1, in_progress=1, done=1)
        assert counts.total == 3
        assert counts.progress == 33

    def test_progress_without_tasks(self):
        assert TaskCounts().progress == 0

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            TaskCounts(todo=-1)

    def test_normalize_counts_tolerates_garbage(self):
        counts = normalize_counts({"todo": "3", "in_progress": None, "done": "x"})
        assert counts == TaskCounts(todo=3, in_progress=0, done=0)
        assert normalize_counts(None) == TaskCounts()


class TestNormalizeProject:
    """Project 读取边界归一化"""

    def test_defaults_applied(self):
        project = normalize_project({"id": "P"})
        assert project.name == "Unnamed Project"
        assert project.description == "No description available"
        assert project.color == "#6b7280"
        assert project.members == []
        assert project.tasks_count == TaskCounts()

    def test_members_mapping_flattened(self):
        """实时数据库导出的 {index: id} 形式成员列表"""
        project = normalize_project(
            {
                "id": "P",
                "name": "Launch",
                "members": {"0": "u-alice", "1": "u-bob"},
                "tasksCount": {"todo": 1, "inProgress": 2, "done": 1},
            }
        )
        assert project.members == ["u-alice", "u-bob"]
        assert project.tasks_count.in_progress == 2
        assert project.progress == 25

    def test_project_requires_id(self):
        with pytest.raises(ValueError):
            normalize_project({"name": "nameless"})

    def test_project_model(self):
        project = Project(project_id="P", name="X", created_at=datetime.now(UTC))
        assert project.progress == 0


class TestNormalizeUser:
    def test_legacy_uid(self):
        user = normalize_user({"uid": "u1", "name": "Carol", "isActive": False})
        assert user.user_id == "u1"
        assert user.is_active is False
        assert user.role == "software_engineer"
