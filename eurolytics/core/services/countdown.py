"""Repeating background ticker used for the quiz countdown."""

from __future__ import annotations

import logging
from threading import Event, Thread, current_thread
from typing import Callable

logger = logging.getLogger(__name__)


class Countdown:
    """Calls ``on_tick`` every ``interval_seconds`` on a daemon thread until cancelled."""

    def __init__(self, on_tick: Callable[[], None], interval_seconds: float = 1.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        self._on_tick = on_tick
        self._interval = interval_seconds
        self._cancelled = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Countdown already started.")
        self._thread = Thread(target=self._run, name="QuizCountdown", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        # Does not join: the owner may hold a lock that an in-flight tick is waiting on.
        self._cancelled.set()

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread is not None and thread is not current_thread():
            thread.join(timeout=timeout)

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._cancelled.is_set()

    def _run(self) -> None:
        while not self._cancelled.wait(self._interval):
            try:
                self._on_tick()
            except Exception:
                logger.exception("Countdown tick failed; stopping timer.")
                self._cancelled.set()
