"""Non-blocking notices surfaced to the signed-in user."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from uuid import uuid4

_MAX_NOTIFICATIONS = 50


@dataclass(slots=True)
class Notification:
    title: str
    message: str
    level: str = "info"  # success | info | warning | error
    read: bool = False
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationCenter:
    """Newest-first list of notices, capped so old ones fall off."""

    def __init__(self) -> None:
        self._items: deque[Notification] = deque(maxlen=_MAX_NOTIFICATIONS)
        self._lock = Lock()

    def add(self, title: str, message: str, level: str = "info") -> Notification:
        notification = Notification(title=title, message=message, level=level)
        with self._lock:
            self._items.appendleft(notification)
        return notification

    def list(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._items if not item.read)

    def mark_all_read(self) -> None:
        with self._lock:
            for item in self._items:
                item.read = True

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
