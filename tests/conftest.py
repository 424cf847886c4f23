import pytest

from eurolytics.core.models import Quiz, QuizQuestion
from eurolytics.core.session_context import SessionContext
from eurolytics.gateway.demo_gateway import DemoGateway


class ManualTimer:
    """Timer double: ticks only when the test calls ``fire``."""

    def __init__(self, on_tick):
        self.on_tick = on_tick
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self, times=1):
        for _ in range(times):
            self.on_tick()


class ManualTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, on_tick):
        timer = ManualTimer(on_tick)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


def make_quiz(points=(10, 20, 30), correct=(1, 2, 2), max_points=60, time_limit=300, quiz_id="quiz-1"):
    questions = tuple(
        QuizQuestion(
            id=f"{quiz_id}-q{index + 1}",
            question_text=f"Question {index + 1}?",
            options=("A", "B", "C", "D"),
            correct_option_index=answer,
            points=value,
        )
        for index, (value, answer) in enumerate(zip(points, correct))
    )
    return Quiz(
        id=quiz_id,
        title="Sample quiz",
        description="A quiz used in tests.",
        questions=questions,
        max_points=max_points,
        time_limit_seconds=time_limit,
    )


@pytest.fixture
def quiz_factory():
    return make_quiz


@pytest.fixture
def demo_gateway():
    """Fresh in-memory backend seeded with the demo tables."""
    return DemoGateway()


@pytest.fixture
def timer_factory():
    return ManualTimerFactory()


@pytest.fixture
def session_path(tmp_path):
    """Provide a temporary session file path for tests."""
    return tmp_path / "session.json"


@pytest.fixture
def signed_in_session(demo_gateway):
    """In-memory session with Ana (820 points, colaborador) signed in."""
    session = SessionContext()
    session.sign_in(demo_gateway.get_user("u-ana"))
    return session


@pytest.fixture
def reviewer_session(demo_gateway):
    """In-memory session with Bruno (gestor) signed in."""
    session = SessionContext()
    session.sign_in(demo_gateway.get_user("u-bruno"))
    return session
