"""User-facing notifications emitted by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Literal

from figgytales.utils.logger import logger

Level = Literal["success", "info", "warning", "error"]


@dataclass(frozen=True)
class Notification:
    level: Level
    title: str
    description: str = ""


Notifier = Callable[[Notification], None]


def log_notifier(notification: Notification) -> None:
    """Default sink when no UI is attached."""
    log = logger.warning if notification.level in ("warning", "error") else logger.info
    log("[{}] {} {}", notification.level, notification.title, notification.description)


class NotificationLog:
    """Collects notifications, e.g. to replay them after a Streamlit rerun."""

    def __init__(self) -> None:
        self.items: List[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.items.append(notification)

    def drain(self) -> List[Notification]:
        items, self.items = self.items, []
        return items


__all__ = ["Notification", "Notifier", "NotificationLog", "log_notifier"]
