"""Signed-in user state with explicit load/save to local storage."""

from __future__ import annotations

from dataclasses import asdict
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Callable

from eurolytics.core.models import User
from eurolytics.core.record_parser import RecordFormatError, parse_user

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when an operation requires a signed-in user."""


class SessionContext:
    """Holds the signed-in user and mirrors it to a JSON file.

    ``storage_path`` of ``None`` keeps the session in memory only. Listeners
    registered with ``subscribe`` are called after every ``save``.
    """

    def __init__(self, storage_path: Path | None = None) -> None:
        self._storage_path = storage_path
        self._user: User | None = None
        self._lock = Lock()
        self._listeners: list[Callable[[User | None], None]] = []

    @property
    def user(self) -> User | None:
        with self._lock:
            return self._user

    def require_user(self) -> User:
        user = self.user
        if user is None:
            raise AuthenticationError("Sign in first.")
        return user

    def load(self) -> User | None:
        if self._storage_path is None or not self._storage_path.exists():
            return self.user
        try:
            data = json.loads(self._storage_path.read_text(encoding="utf-8"))
            user = parse_user(data)
        except (OSError, ValueError, RecordFormatError, AttributeError):
            logger.warning("Discarding unreadable session file %s", self._storage_path)
            self._storage_path.unlink(missing_ok=True)
            return None
        with self._lock:
            self._user = user
        return user

    def save(self) -> None:
        user = self.user
        if self._storage_path is not None:
            if user is None:
                self._storage_path.unlink(missing_ok=True)
            else:
                self._storage_path.parent.mkdir(parents=True, exist_ok=True)
                self._storage_path.write_text(json.dumps(asdict(user), default=str), encoding="utf-8")
        for listener in list(self._listeners):
            listener(user)

    def sign_in(self, user: User) -> None:
        with self._lock:
            self._user = user
        self.save()

    def sign_out(self) -> None:
        with self._lock:
            self._user = None
        self.save()

    def set_points(self, points: int, user_id: str | None = None) -> None:
        with self._lock:
            if self._user is None or (user_id is not None and self._user.id != user_id):
                return
            self._user.points = points
        self.save()

    def subscribe(self, listener: Callable[[User | None], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
