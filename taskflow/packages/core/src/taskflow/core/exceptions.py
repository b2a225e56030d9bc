"""TaskFlow Core 异常体系"""

from .models.enums import TaskStatus, describe_invalid_transition


class TaskflowError(Exception):
    """Core 包基础异常"""


class InvalidTransitionError(TaskflowError):
    """非相邻状态流转（如 todo -> done）

    在任何写入发生之前同步抛出，只用于提示，不是致命错误。
    """

    def __init__(self, from_status: TaskStatus, to_status: TaskStatus) -> None:
        super().__init__(describe_invalid_transition(from_status, to_status))
        self.from_status = TaskStatus(from_status)
        self.to_status = TaskStatus(to_status)


class PendingUpdateConflictError(TaskflowError):
    """同一任务已有状态更新在途（快速重复拖拽）"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Status update for task {task_id} is already pending")
        self.task_id = task_id


class TaskStatusConflictError(TaskflowError):
    """任务当前状态与预期不符（并发写入已改变状态）"""

    def __init__(self, task_id: str, expected_status: TaskStatus) -> None:
        super().__init__(
            f"Task {task_id} is no longer in status {TaskStatus(expected_status).value}"
        )
        self.task_id = task_id
        self.expected_status = TaskStatus(expected_status)


class TaskNotFoundError(TaskflowError):
    """任务不存在"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class ProjectNotFoundError(TaskflowError):
    """项目不存在"""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project with id {project_id} does not exist")
        self.project_id = project_id


class UserNotFoundError(TaskflowError):
    """用户不存在"""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User with id {user_id} does not exist")
        self.user_id = user_id


class ProjectReassignmentError(TaskflowError):
    """任务生命周期内不支持迁移到其他项目"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} cannot be moved to another project")
        self.task_id = task_id

