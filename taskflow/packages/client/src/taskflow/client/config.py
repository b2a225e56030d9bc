"""ClientConfig -- gateway 客户端配置加载

从环境变量加载配置，不硬编码 gateway 地址。
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class ClientConfig(BaseModel):
    """客户端配置 -- 从环境变量加载

    环境变量:
        TASKFLOW_GATEWAY_URL: gateway 地址（默认 http://localhost:8000）
        TASKFLOW_GATEWAY_TIMEOUT_S: 请求超时（秒，默认 10）
        TASKFLOW_ACTOR_ID: 写入活动记录时使用的操作者 ID
    """

    gateway_url: str = Field(
        default="http://localhost:8000",
        description="gateway 基础 URL",
    )
    timeout_s: float = Field(
        default=10,
        gt=0,
        description="请求超时（秒）",
    )
    actor_id: str = Field(
        default="",
        description="操作者用户 ID，空字符串表示不发送",
    )


def load_client_config() -> ClientConfig:
    """从环境变量加载客户端配置

    环境变量映射:
        TASKFLOW_GATEWAY_URL -> gateway_url (默认 "http://localhost:8000")
        TASKFLOW_GATEWAY_TIMEOUT_S -> timeout_s (默认 10)
        TASKFLOW_ACTOR_ID -> actor_id (默认 "")

    Returns:
        ClientConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKFLOW_GATEWAY_URL"):
        kwargs["gateway_url"] = val

    if val := os.environ.get("TASKFLOW_GATEWAY_TIMEOUT_S"):
        try:
            timeout = float(val)
            if timeout <= 0:
                raise ValueError(val)
            kwargs["timeout_s"] = timeout
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="TASKFLOW_GATEWAY_TIMEOUT_S",
                value=val,
                fallback=10,
            )
            # 使用默认值，不阻塞启动

    if val := os.environ.get("TASKFLOW_ACTOR_ID"):
        kwargs["actor_id"] = val

    return ClientConfig(**kwargs)
