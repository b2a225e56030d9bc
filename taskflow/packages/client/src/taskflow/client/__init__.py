"""TaskFlow Client -- gateway HTTP 客户端

packages/client 的公开接口导出。
"""

from .board import open_project_board, resync_board
from .config import ClientConfig, load_client_config
from .exceptions import ClientError, GatewayResponseError, GatewayUnreachableError
from .remote_store import GatewayStore

__all__ = [
    "GatewayStore",
    "open_project_board",
    "resync_board",
    "ClientConfig",
    "load_client_config",
    "ClientError",
    "GatewayUnreachableError",
    "GatewayResponseError",
]
