"""用户提示通道

Notifier 是一次性的 fire-and-forget 提示接口；LogNotifier 把提示写入结构化日志，
用于没有界面的场景（CLI、服务端测试）。
"""

from typing import Protocol

import structlog

from .models.enums import NotificationVariant
from .models.notification import Notification

log = structlog.get_logger()


class Notifier(Protocol):
    """用户提示接口"""

    def notify(self, notification: Notification) -> None:
        """发出提示，不等待、不抛出"""
        ...


class LogNotifier:
    """把提示写入日志的 Notifier 实现"""

    def __init__(self, logger=None) -> None:
        self._log = logger or log

    def notify(self, notification: Notification) -> None:
        if notification.variant == NotificationVariant.DESTRUCTIVE:
            self._log.warning(
                "user_notification",
                title=notification.title,
                description=notification.description,
                variant=notification.variant.value,
            )
        else:
            self._log.info(
                "user_notification",
                title=notification.title,
                description=notification.description,
                variant=notification.variant.value,
            )
