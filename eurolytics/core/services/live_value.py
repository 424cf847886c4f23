"""Polled value with an explicit start/stop lifecycle."""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveValue(Generic[T]):
    """Keeps the latest result of ``fetch`` and re-polls it every ``interval_seconds``.

    Use as a context manager so polling always stops when the owner goes away.
    A failed fetch keeps the previous value.
    """

    def __init__(self, fetch: Callable[[], T], initial: T, interval_seconds: float) -> None:
        self._fetch = fetch
        self._value = initial
        self._interval = interval_seconds
        self._lock = Lock()
        self._stopped = Event()
        self._thread: Thread | None = None
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            changed = value != self._value
            self._value = value
        if changed:
            for subscriber in list(self._subscribers):
                subscriber(value)

    def subscribe(self, subscriber: Callable[[T], None]) -> None:
        self._subscribers.append(subscriber)

    def refresh(self) -> T:
        try:
            fresh = self._fetch()
        except Exception as exc:
            logger.warning("Live value refresh failed: %s", exc)
            return self.value
        self.set(fresh)
        return fresh

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = Thread(target=self._run, name="LiveValuePoller", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval)
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> LiveValue[T]:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self.refresh()
