"""CLI 入口模块 -- python -m taskflow.core <command>

支持的命令：
  init-db                             初始化数据库表结构
  recalculate-counters [project_id]   从任务表重算项目计数（省略 project_id 时重算全部项目）
"""

import asyncio
import sys

from .config import get_db_path
from .logging_config import setup_logging

USAGE = """用法: python -m taskflow.core <command>
命令:
  init-db                             初始化数据库表结构
  recalculate-counters [project_id]   从任务表重算项目计数"""


def main() -> None:
    """CLI 主入口"""
    setup_logging()
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "recalculate-counters":
        project_id = sys.argv[2] if len(sys.argv) > 2 else None
        asyncio.run(recalculate_counters(project_id))
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, recalculate-counters")
        sys.exit(1)


async def init_database() -> None:
    """创建数据库文件与表结构"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        print("初始化完成")
    finally:
        await store_group.conn.close()


async def recalculate_counters(project_id: str | None = None) -> None:
    """执行项目计数重算"""
    from .counters import CounterRecalculator, recalculate_all
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        if project_id is None:
            results = await recalculate_all(store_group)
        else:
            recalculator = CounterRecalculator(store_group.aggregate_store())
            results = {project_id: await recalculator.recalculate(project_id)}
        for pid, counts in results.items():
            print(
                f"{pid}: todo={counts.todo} inProgress={counts.in_progress} done={counts.done}"
            )
        print(f"重算完成，共 {len(results)} 个项目")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
