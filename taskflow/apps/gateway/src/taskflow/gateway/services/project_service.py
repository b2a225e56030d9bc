"""ProjectService -- 项目与用户管理业务逻辑"""

from datetime import UTC, datetime

import structlog
from taskflow.core.config import ACTIVITY_PAGE_LIMIT
from taskflow.core.counters import CounterRecalculator
from taskflow.core.exceptions import ProjectNotFoundError, UserNotFoundError
from taskflow.core.models import (
    Activity,
    Project,
    ProjectCreate,
    TaskCounts,
    User,
)
from taskflow.core.store import StoreGroup, write_project_counters, write_transaction
from ulid import ULID

log = structlog.get_logger()


class ProjectService:
    """项目业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def create_project(self, data: ProjectCreate, created_by: str) -> Project:
        """创建项目，创建者自动成为成员"""
        members = list(dict.fromkeys([created_by, *data.members]))
        project = Project(
            project_id=str(ULID()),
            name=data.name,
            description=data.description,
            color=data.color,
            members=members,
            created_by=created_by,
            created_at=datetime.now(UTC),
            next_due_date=data.next_due_date,
        )
        async with write_transaction(self._stores.conn):
            await self._stores.project_store.create_project(project)
        await log.ainfo("project_created", project_id=project.project_id)
        return await self.get_project(project.project_id)

    async def get_project(self, project_id: str) -> Project:
        """查询项目

        Raises:
            ProjectNotFoundError: 项目不存在
        """
        project = await self._stores.project_store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def list_projects(self, member_id: str | None = None) -> list[Project]:
        return await self._stores.project_store.list_projects(member_id)

    async def delete_project(self, project_id: str) -> None:
        """删除项目及其任务（外键级联），活动记录保留"""
        async with write_transaction(self._stores.conn):
            deleted = await self._stores.project_store.delete_project(project_id)
            if deleted == 0:
                raise ProjectNotFoundError(project_id)
        await log.ainfo("project_deleted", project_id=project_id)

    async def write_counters(self, project_id: str, counts: TaskCounts) -> Project:
        """直接写入项目计数（远端重算器使用）"""
        await write_project_counters(
            self._stores.conn,
            self._stores.project_store,
            project_id,
            counts,
        )
        return await self.get_project(project_id)

    async def recalculate(self, project_id: str) -> TaskCounts:
        """手动触发项目计数重算"""
        await self.get_project(project_id)
        recalculator = CounterRecalculator(self._stores.aggregate_store())
        return await recalculator.recalculate(project_id)

    async def list_activities(
        self,
        project_id: str,
        limit: int = ACTIVITY_PAGE_LIMIT,
    ) -> list[Activity]:
        await self.get_project(project_id)
        return await self._stores.activity_store.list_for_project(project_id, limit)


class UserService:
    """用户资料服务（身份认证由外部提供）"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def upsert_user(self, user: User) -> User:
        if user.created_at is None:
            user = user.model_copy(update={"created_at": datetime.now(UTC)})
        async with write_transaction(self._stores.conn):
            await self._stores.user_store.create_user(user)
        return user

    async def get_user(self, user_id: str) -> User:
        user = await self._stores.user_store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def list_users(self) -> list[User]:
        return await self._stores.user_store.list_users()
