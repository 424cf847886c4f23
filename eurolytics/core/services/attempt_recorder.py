"""Detached persistence of completed quiz attempts."""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
import logging
from threading import Lock

from eurolytics.constants.quiz_constants import PERSIST_WORKER_COUNT
from eurolytics.core.models import AttemptRecord
from eurolytics.core.services.notifications import NotificationCenter
from eurolytics.core.session_context import SessionContext
from eurolytics.gateway.base import DataGateway, GatewayError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SaveOutcome:
    """What the two backend writes achieved; they are not transactional."""

    attempt: AttemptRecord | None
    new_points: int | None
    error: str | None = None

    @property
    def saved(self) -> bool:
        return self.error is None and self.attempt is not None and self.new_points is not None


class AttemptRecorder:
    """Writes the attempt record, then the user's new point total, off the caller's thread.

    Failures are logged and reported through the notification center; the
    returned future always resolves to a ``SaveOutcome`` and never raises.
    There is no retry.
    """

    def __init__(
        self,
        gateway: DataGateway,
        session: SessionContext,
        notifications: NotificationCenter | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._notifications = notifications or NotificationCenter()
        self._points_lock = Lock()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=PERSIST_WORKER_COUNT, thread_name_prefix="AttemptRecorder"
        )

    def submit(self, quiz_id: str, score: int, answers: dict[str, int]) -> Future[SaveOutcome]:
        user = self._session.user
        if user is None:
            future: Future[SaveOutcome] = Future()
            future.set_result(SaveOutcome(attempt=None, new_points=None, error="No signed-in user."))
            logger.warning("Quiz %s finished without a signed-in user; nothing saved.", quiz_id)
            return future
        return self._executor.submit(self._persist, user.id, quiz_id, score, dict(answers))

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _persist(self, user_id: str, quiz_id: str, score: int, answers: dict[str, int]) -> SaveOutcome:
        try:
            attempt = self._gateway.create_quiz_attempt(user_id, quiz_id, score, answers)
        except GatewayError as exc:
            logger.exception("Saving attempt for quiz %s failed", quiz_id)
            self._notifications.add("Quiz not saved", f"Your result could not be saved: {exc.message}", "error")
            return SaveOutcome(attempt=None, new_points=None, error=exc.message)

        # Read, update and cache the total under one lock.
        with self._points_lock:
            current = self._session.user
            try:
                if current is not None and current.id == user_id:
                    base_points = current.points
                else:
                    base_points = self._gateway.get_user(user_id).points
                updated = self._gateway.update_user_points(user_id, base_points + score)
            except GatewayError as exc:
                logger.exception("Updating points for user %s failed", user_id)
                self._notifications.add("Points not updated", f"Your points could not be updated: {exc.message}", "warning")
                return SaveOutcome(attempt=attempt, new_points=None, error=exc.message)

            try:
                self._session.set_points(updated.points, user_id=user_id)
            except OSError as exc:
                logger.exception("Storing the session for user %s failed", user_id)
                self._notifications.add("Session not stored", f"Your points were saved but not stored locally: {exc}", "warning")
                return SaveOutcome(attempt=attempt, new_points=updated.points, error=str(exc))

        self._notifications.add("Quiz completed", f"You earned {score} points.", "success")
        logger.info("Saved attempt %s for quiz %s (+%s points)", attempt.id, quiz_id, score)
        return SaveOutcome(attempt=attempt, new_points=updated.points)
