"""State machine for a single quiz sitting."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
import logging
from threading import RLock
from typing import Callable, Protocol

from eurolytics.constants.quiz_constants import TIMER_TICK_SECONDS
from eurolytics.core.models import Quiz, QuizQuestion
from eurolytics.core.services.attempt_recorder import AttemptRecorder, SaveOutcome
from eurolytics.core.services.countdown import Countdown
from eurolytics.core.services.scoring_engine import ScoreBreakdown, score_quiz
from eurolytics.gateway.base import DataGateway, GatewayError, NotFoundError

logger = logging.getLogger(__name__)


class QuizSessionError(RuntimeError):
    """Raised when a transition is not allowed; the session state is left unchanged."""


class QuizNotFoundError(QuizSessionError):
    pass


class SessionState(Enum):
    IDLE = auto()
    SELECTING = auto()
    ACTIVE = auto()
    COMPLETED = auto()


class CompletionReason(Enum):
    FINISHED = "finished"
    TIMED_OUT = "timed_out"


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[Callable[[], None]], Timer]


def default_timer_factory(on_tick: Callable[[], None]) -> Timer:
    return Countdown(on_tick, interval_seconds=TIMER_TICK_SECONDS)


@dataclass(slots=True)
class QuizResult:
    """Result shown as soon as the sitting ends; ``save`` resolves once persisted."""

    quiz_id: str
    quiz_title: str
    breakdown: ScoreBreakdown
    answers: dict[str, int]
    reason: CompletionReason
    completed_at: datetime
    save: Future[SaveOutcome] | None = field(default=None, repr=False)

    def save_status(self) -> str:
        if self.save is None:
            return "not_saved"
        if not self.save.done():
            return "saving"
        if self.save.exception() is not None:
            return "failed"
        return "saved" if self.save.result().saved else "failed"


@dataclass(slots=True)
class _Attempt:
    quiz: Quiz
    remaining_seconds: int
    generation: int
    question_index: int = 0
    answers: dict[str, int] = field(default_factory=dict)
    selected_option: int | None = None
    timer: Timer | None = None


@dataclass(slots=True, frozen=True)
class SessionView:
    """Read-only projection of the session for presentation."""

    state: SessionState
    quiz_id: str | None = None
    quiz_title: str | None = None
    question: QuizQuestion | None = None
    question_index: int = 0
    question_count: int = 0
    remaining_seconds: int = 0
    progress: float = 0.0
    selected_option: int | None = None
    result: QuizResult | None = None


class QuizSession:
    """Owns the in-progress attempt, its countdown and its completion.

    Ticks arrive on the timer thread, so every transition takes the session lock.
    Each attempt carries a generation number; ticks from a timer belonging to an
    earlier attempt are ignored.
    """

    def __init__(
        self,
        gateway: DataGateway,
        recorder: AttemptRecorder | None = None,
        timer_factory: TimerFactory = default_timer_factory,
    ) -> None:
        self._gateway = gateway
        self._recorder = recorder
        self._timer_factory = timer_factory
        self._lock = RLock()
        self._state = SessionState.IDLE
        self._attempt: _Attempt | None = None
        self._last_quiz: Quiz | None = None
        self._result: QuizResult | None = None
        self._generation = 0

    # --- Transitions ---

    def show_quizzes(self) -> None:
        with self._lock:
            if self._state is SessionState.ACTIVE:
                raise QuizSessionError("Finish or exit the current quiz first.")
            self._state = SessionState.SELECTING
            self._result = None

    def start(self, quiz_id: str) -> SessionView:
        with self._lock:
            if self._state is SessionState.ACTIVE:
                raise QuizSessionError("A quiz is already in progress.")
        try:
            quiz = self._gateway.get_quiz(quiz_id)
        except NotFoundError as exc:
            logger.info("Quiz %s not found", quiz_id)
            raise QuizNotFoundError("Quiz not found.") from exc
        except GatewayError as exc:
            logger.warning("Loading quiz %s failed: %s", quiz_id, exc)
            raise QuizSessionError("The quiz could not be loaded. Try again later.") from exc
        return self.start_with(quiz)

    def start_with(self, quiz: Quiz) -> SessionView:
        """Begin a fresh attempt on an already loaded quiz snapshot."""
        with self._lock:
            if self._state is SessionState.ACTIVE:
                raise QuizSessionError("A quiz is already in progress.")
            if not quiz.questions:
                raise QuizSessionError("This quiz has no questions yet.")
            self._generation += 1
            attempt = _Attempt(
                quiz=quiz,
                remaining_seconds=quiz.time_limit_seconds,
                generation=self._generation,
            )
            self._attempt = attempt
            self._last_quiz = quiz
            self._result = None
            self._state = SessionState.ACTIVE
            if attempt.remaining_seconds > 0:
                generation = attempt.generation
                attempt.timer = self._timer_factory(lambda: self.tick(generation))
                attempt.timer.start()
            logger.info("Started quiz %s (%s questions)", quiz.id, len(quiz.questions))
            return self.view()

    def retry(self) -> SessionView:
        with self._lock:
            if self._state is not SessionState.COMPLETED or self._last_quiz is None:
                raise QuizSessionError("There is no finished quiz to retry.")
            return self.start_with(self._last_quiz)

    def try_another(self) -> None:
        with self._lock:
            if self._state is not SessionState.COMPLETED:
                raise QuizSessionError("There is no finished quiz to leave.")
            self._state = SessionState.SELECTING
            self._result = None

    def select_option(self, option_index: int) -> None:
        with self._lock:
            attempt = self._require_active()
            question = attempt.quiz.questions[attempt.question_index]
            if not 0 <= option_index < len(question.options):
                raise ValueError(f"Option index {option_index} out of range")
            attempt.selected_option = option_index

    def advance(self) -> SessionView:
        with self._lock:
            attempt = self._require_active()
            if attempt.selected_option is None:
                raise QuizSessionError("Select an option before moving on.")
            question = attempt.quiz.questions[attempt.question_index]
            attempt.answers[question.id] = attempt.selected_option
            attempt.selected_option = None
            if attempt.question_index >= len(attempt.quiz.questions) - 1:
                self._complete(CompletionReason.FINISHED)
            else:
                attempt.question_index += 1
            return self.view()

    def tick(self, generation: int | None = None) -> None:
        """Advance the countdown by one second; expiry completes the quiz."""
        with self._lock:
            attempt = self._attempt
            if self._state is not SessionState.ACTIVE or attempt is None:
                return
            if generation is not None and generation != attempt.generation:
                return
            if attempt.remaining_seconds <= 0:
                return
            attempt.remaining_seconds -= 1
            if attempt.remaining_seconds == 0:
                self._complete(CompletionReason.TIMED_OUT)

    def exit(self) -> None:
        with self._lock:
            self._require_active()
            self._discard_attempt()
            self._state = SessionState.SELECTING
            logger.info("Quiz exited without saving")

    def close(self) -> None:
        """Tear down from any state; an unfinished attempt is dropped unsaved."""
        with self._lock:
            self._discard_attempt()
            self._result = None
            self._state = SessionState.IDLE

    # --- Projections ---

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def view(self) -> SessionView:
        with self._lock:
            if self._state is SessionState.COMPLETED and self._result is not None:
                return SessionView(
                    state=self._state,
                    quiz_id=self._result.quiz_id,
                    quiz_title=self._result.quiz_title,
                    result=self._result,
                )
            attempt = self._attempt
            if self._state is not SessionState.ACTIVE or attempt is None:
                return SessionView(state=self._state)
            count = len(attempt.quiz.questions)
            return SessionView(
                state=self._state,
                quiz_id=attempt.quiz.id,
                quiz_title=attempt.quiz.title,
                question=attempt.quiz.questions[attempt.question_index],
                question_index=attempt.question_index,
                question_count=count,
                remaining_seconds=attempt.remaining_seconds,
                progress=(attempt.question_index + 1) / count,
                selected_option=attempt.selected_option,
            )

    # --- Internals ---

    def _require_active(self) -> _Attempt:
        if self._state is not SessionState.ACTIVE or self._attempt is None:
            raise QuizSessionError("No quiz is in progress.")
        return self._attempt

    def _complete(self, reason: CompletionReason) -> None:
        attempt = self._require_active()
        answers = dict(attempt.answers)
        if attempt.selected_option is not None:
            # A pending selection counts even when time runs out before advancing.
            current = attempt.quiz.questions[attempt.question_index]
            answers[current.id] = attempt.selected_option
        breakdown = score_quiz(attempt.quiz, answers)
        self._discard_attempt()
        result = QuizResult(
            quiz_id=attempt.quiz.id,
            quiz_title=attempt.quiz.title,
            breakdown=breakdown,
            answers=answers,
            reason=reason,
            completed_at=datetime.now(timezone.utc),
        )
        self._result = result
        self._state = SessionState.COMPLETED
        logger.info(
            "Quiz %s %s: %s/%s (%s%%)",
            attempt.quiz.id,
            reason.value,
            breakdown.score,
            breakdown.display_max,
            breakdown.percentage,
        )
        if self._recorder is not None:
            result.save = self._recorder.submit(attempt.quiz.id, breakdown.score, answers)

    def _discard_attempt(self) -> None:
        attempt = self._attempt
        self._attempt = None
        if attempt is not None and attempt.timer is not None:
            attempt.timer.cancel()
