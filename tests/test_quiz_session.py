from concurrent.futures import Future
from threading import Event
import time

import pytest

from eurolytics.core.services.attempt_recorder import AttemptRecorder
from eurolytics.core.services.notifications import NotificationCenter
from eurolytics.core.services.quiz_session import (
    CompletionReason,
    QuizNotFoundError,
    QuizSession,
    QuizSessionError,
    SessionState,
)
from eurolytics.core.session_context import SessionContext
from eurolytics.gateway.base import GatewayError
from eurolytics.gateway.demo_gateway import DemoGateway


@pytest.fixture
def recorder(demo_gateway, signed_in_session):
    recorder = AttemptRecorder(demo_gateway, signed_in_session, NotificationCenter())
    yield recorder
    recorder.shutdown()


@pytest.fixture
def session(demo_gateway, recorder, timer_factory):
    quiz_session = QuizSession(demo_gateway, recorder, timer_factory)
    yield quiz_session
    quiz_session.close()


def _answer_all(session, choices):
    view = None
    for choice in choices:
        session.select_option(choice)
        view = session.advance()
    return view


def test_start_shows_first_question(session, timer_factory):
    view = session.start("q-compliance")
    assert view.state is SessionState.ACTIVE
    assert view.question_index == 0
    assert view.question_count == 3
    assert view.remaining_seconds == 300
    assert view.question.question_text == "Who may access customer payment data?"
    assert timer_factory.last.started


def test_full_run_scores_and_saves(session, demo_gateway, signed_in_session):
    session.start("q-compliance")
    view = _answer_all(session, [1, 2, 2])
    assert view.state is SessionState.COMPLETED
    result = view.result
    assert result.reason is CompletionReason.FINISHED
    assert result.breakdown.score == 60
    assert result.breakdown.percentage == 100

    outcome = result.save.result(timeout=5)
    assert outcome.saved
    assert outcome.new_points == 880
    assert demo_gateway.get_user("u-ana").points == 880
    assert signed_in_session.user.points == 880
    assert result.save_status() == "saved"


def test_advance_without_selection_is_rejected(session):
    """Advancing with nothing selected leaves the question unchanged."""
    session.start("q-compliance")
    with pytest.raises(QuizSessionError):
        session.advance()
    view = session.view()
    assert view.state is SessionState.ACTIVE
    assert view.question_index == 0


def test_select_option_out_of_range(session):
    session.start("q-compliance")
    with pytest.raises(ValueError):
        session.select_option(7)
    assert session.view().selected_option is None


def test_reselecting_replaces_choice(session):
    session.start("q-compliance")
    session.select_option(0)
    session.select_option(3)
    assert session.view().selected_option == 3


def test_empty_quiz_cannot_start(session):
    with pytest.raises(QuizSessionError):
        session.start("q-empty")
    assert session.state is SessionState.IDLE


def test_unknown_quiz_raises_not_found(session):
    with pytest.raises(QuizNotFoundError):
        session.start("does-not-exist")


def test_gateway_failure_on_load_is_session_error(recorder, timer_factory):
    class BrokenGateway:
        def get_quiz(self, quiz_id):
            raise GatewayError("backend down", 503)

    session = QuizSession(BrokenGateway(), recorder, timer_factory)
    with pytest.raises(QuizSessionError):
        session.start("q-compliance")
    assert session.state is SessionState.IDLE


def test_second_start_while_active_is_rejected(session):
    session.start("q-compliance")
    with pytest.raises(QuizSessionError):
        session.start("q-innovation")
    assert session.view().quiz_id == "q-compliance"


def test_ticks_count_down(session, timer_factory):
    session.start("q-innovation")
    timer_factory.last.fire(5)
    assert session.view().remaining_seconds == 115


def test_timeout_includes_pending_selection(session, timer_factory):
    """A selection made but not confirmed still counts when time runs out."""
    session.start("q-innovation")
    session.select_option(0)
    timer_factory.last.fire(120)
    view = session.view()
    assert view.state is SessionState.COMPLETED
    assert view.result.reason is CompletionReason.TIMED_OUT
    assert view.result.answers == {"q-innovation-1": 0}
    assert view.result.breakdown.earned == 15
    assert view.result.breakdown.percentage == 50
    assert timer_factory.last.cancelled


def test_timeout_completes_exactly_once(session, timer_factory):
    session.start("q-innovation")
    timer = timer_factory.last
    timer.fire(120)
    first = session.view().result
    timer.fire(3)
    assert session.view().result is first


def test_timeout_without_answers_scores_zero(session, timer_factory):
    session.start("q-innovation")
    timer_factory.last.fire(120)
    result = session.view().result
    assert result.answers == {}
    assert result.breakdown.earned == 0
    assert result.breakdown.incorrect_count == 2


def test_exit_discards_attempt(session, timer_factory, demo_gateway):
    session.start("q-compliance")
    session.select_option(1)
    session.advance()
    session.exit()
    assert session.state is SessionState.SELECTING
    assert timer_factory.last.cancelled
    assert len(demo_gateway.get_attempts_by_user("u-ana")) == 1


def test_exit_when_idle_is_rejected(session):
    with pytest.raises(QuizSessionError):
        session.exit()


def test_retry_starts_fresh_attempt(session, timer_factory):
    session.start("q-innovation")
    _answer_all(session, [0, 1])
    view = session.retry()
    assert view.state is SessionState.ACTIVE
    assert view.quiz_id == "q-innovation"
    assert view.question_index == 0
    assert view.remaining_seconds == 120
    assert len(timer_factory.timers) == 2


def test_retry_requires_completed_quiz(session):
    with pytest.raises(QuizSessionError):
        session.retry()


def test_stale_tick_from_previous_attempt_is_ignored(session, timer_factory):
    session.start("q-innovation")
    _answer_all(session, [0, 1])
    old_timer = timer_factory.last
    session.retry()
    old_timer.fire(10)
    assert session.view().remaining_seconds == 120


def test_try_another_returns_to_selection(session):
    session.start("q-innovation")
    _answer_all(session, [0, 1])
    session.try_another()
    assert session.state is SessionState.SELECTING
    assert session.view().result is None


def test_zero_time_limit_starts_no_timer(demo_gateway, recorder, timer_factory, quiz_factory):
    session = QuizSession(demo_gateway, recorder, timer_factory)
    session.start_with(quiz_factory(time_limit=0))
    assert timer_factory.timers == []
    assert session.state is SessionState.ACTIVE


def test_result_without_recorder_is_not_saved(demo_gateway, timer_factory, quiz_factory):
    session = QuizSession(demo_gateway, None, timer_factory)
    session.start_with(quiz_factory())
    _answer_all(session, [1, 2, 2])
    assert session.view().result.save_status() == "not_saved"


class BlockingGateway(DemoGateway):
    """Demo backend whose attempt insert waits until the test releases it."""

    def __init__(self):
        super().__init__()
        self.release = Event()

    def create_quiz_attempt(self, user_id, quiz_id, score, answers):
        self.release.wait(timeout=5)
        return super().create_quiz_attempt(user_id, quiz_id, score, answers)


class SlowPointsGateway(DemoGateway):
    def update_user_points(self, user_id, points):
        time.sleep(0.2)
        return super().update_user_points(user_id, points)


def test_completion_does_not_wait_for_save(timer_factory):
    gateway = BlockingGateway()
    user_session = SessionContext()
    user_session.sign_in(gateway.get_user("u-ana"))
    recorder = AttemptRecorder(gateway, user_session)
    quiz_session = QuizSession(gateway, recorder, timer_factory)
    try:
        quiz_session.start("q-compliance")
        view = _answer_all(quiz_session, [1, 2, 2])
        assert view.state is SessionState.COMPLETED
        assert view.result.breakdown.score == 60
        assert view.result.save_status() == "saving"
    finally:
        gateway.release.set()
        recorder.shutdown()
    assert view.result.save_status() == "saved"


def test_back_to_back_completions_credit_every_award(timer_factory):
    gateway = SlowPointsGateway()
    user_session = SessionContext()
    user_session.sign_in(gateway.get_user("u-ana"))
    recorder = AttemptRecorder(gateway, user_session)
    quiz_session = QuizSession(gateway, recorder, timer_factory)
    try:
        quiz_session.start("q-compliance")
        first = _answer_all(quiz_session, [1, 2, 2]).result
        quiz_session.retry()
        second = _answer_all(quiz_session, [1, 2, 2]).result
        first.save.result(timeout=5)
        outcome = second.save.result(timeout=5)
    finally:
        recorder.shutdown()
    assert outcome.new_points == 820 + 60 + 60
    assert gateway.get_user("u-ana").points == 940
    assert user_session.user.points == 940


def test_save_status_reports_failed_future(demo_gateway, timer_factory, quiz_factory):
    session = QuizSession(demo_gateway, None, timer_factory)
    session.start_with(quiz_factory())
    result = _answer_all(session, [1, 2, 2]).result
    broken: Future = Future()
    broken.set_exception(OSError("disk full"))
    result.save = broken
    assert result.save_status() == "failed"
