"""远端项目看板 -- 用 GatewayStore 组装控制器与拖拽会话"""

from taskflow.core.board import BoardSession
from taskflow.core.counters import CounterRecalculator
from taskflow.core.notifier import LogNotifier, Notifier
from taskflow.core.optimistic import OptimisticUpdateController

from .remote_store import GatewayStore


async def open_project_board(
    store: GatewayStore,
    project_id: str,
    notifier: Notifier | None = None,
) -> BoardSession:
    """读取项目任务并创建看板会话

    Args:
        store: gateway 客户端
        project_id: 项目 ID
        notifier: 用户提示通道，默认写日志

    Returns:
        BoardSession 实例，控制器已用当前任务集合初始化
    """
    tasks = await store.get_tasks_by_project(project_id)
    controller = OptimisticUpdateController(
        store,
        notifier or LogNotifier(),
        recalculator=CounterRecalculator(store),
        tasks=tasks,
    )
    return BoardSession(controller)


async def resync_board(session: BoardSession, store: GatewayStore, project_id: str) -> None:
    """用 gateway 最新数据刷新看板的可见任务"""
    session.controller.sync(await store.get_tasks_by_project(project_id))
