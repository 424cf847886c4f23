"""Facade over the portal services shared by the web server and the entry point."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
import logging
import math
from threading import Lock
from typing import Callable, TypeVar

from eurolytics.constants.gamification_constants import (
    LEADERBOARD_SIZE,
    POINTS_REFRESH_INTERVAL_SECONDS,
    RANKING_FETCH_LIMIT,
)
from eurolytics.core.models import AttemptRecord, Idea, Quiz, User
from eurolytics.core.services.attempt_recorder import AttemptRecorder
from eurolytics.core.services.badges import ActivityCounts, BadgeStatus, evaluate_badges
from eurolytics.core.services.idea_workflow import IdeaWorkflow, require_reviewer
from eurolytics.core.services.live_value import LiveValue
from eurolytics.core.services.notifications import NotificationCenter
from eurolytics.core.services.project_participation import ProjectParticipation
from eurolytics.core.services.quiz_session import (
    QuizSession,
    SessionView,
    TimerFactory,
    default_timer_factory,
)
from eurolytics.core.services.ranking import (
    DepartmentStats,
    LeaderboardRow,
    LevelProgress,
    RankingScope,
    aggregate_period_points,
    build_leaderboard,
    department_stats,
    level_progress,
    portal_analytics,
    position_of,
)
from eurolytics.core.session_context import SessionContext
from eurolytics.gateway.base import DataGateway, GatewayError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class LeaderboardView:
    scope: RankingScope
    department: str | None
    rows: list[LeaderboardRow]
    user_position: int
    user_points: int
    ranked_count: int
    departments: list[str]


@dataclass(slots=True, frozen=True)
class QuizHistoryEntry:
    quiz_id: str
    best_score: int
    max_points: int
    attempts: int


@dataclass(slots=True, frozen=True)
class QuizHistory:
    entries: list[QuizHistoryEntry]
    completed_count: int
    average_percentage: int


@dataclass(slots=True, frozen=True)
class DashboardView:
    user: User
    level: LevelProgress
    position: int
    badges: list[BadgeStatus]
    completed_quizzes: int
    recent_ideas: list[Idea]


class PortalManager:
    """Facade for the portal services: session, quiz session, ranking, badges, ideas and projects."""

    def __init__(
        self,
        gateway: DataGateway,
        session: SessionContext | None = None,
        timer_factory: TimerFactory = default_timer_factory,
        points_refresh_seconds: float = POINTS_REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self._lock = Lock()
        self._gateway = gateway
        self._session = session or SessionContext()
        self._reads = ThreadPoolExecutor(max_workers=3, thread_name_prefix="PortalReads")

        # Services
        self.notifications = NotificationCenter()
        self._recorder = AttemptRecorder(gateway, self._session, self.notifications)
        self._quiz_session = QuizSession(gateway, self._recorder, timer_factory)
        self.ideas = IdeaWorkflow(gateway, self._session, self.notifications)
        self.projects = ProjectParticipation(gateway, self._session, self.notifications)

        initial = self._session.user.points if self._session.user else 0
        self._points = LiveValue(self._fetch_points, initial, points_refresh_seconds)
        self._unsubscribe = self._session.subscribe(self._on_session_saved)

    # --- Session Delegation ---

    @property
    def session(self) -> SessionContext:
        return self._session

    def restore_session(self) -> User | None:
        user = self._session.load()
        if user is not None:
            self._points.set(user.points)
        return user

    def login(self, email: str, password: str) -> User | None:
        try:
            user = self._gateway.verify_user_password(email.strip(), password)
        except GatewayError as exc:
            logger.error("Login failed for %s: %s", email, exc)
            return None
        if user is None:
            return None
        self._quiz_session.close()
        self._session.sign_in(user)
        logger.info("User %s signed in", user.id)
        return user

    def register(self, email: str, password: str, full_name: str, department: str, role: str = "colaborador") -> User:
        if not all(value.strip() for value in (email, password, full_name, department)):
            raise ValueError("E-mail, password, name and department are required.")
        return self._gateway.create_user(email.strip(), password, full_name.strip(), department.strip(), role)

    def logout(self) -> None:
        self._quiz_session.close()
        self._session.sign_out()

    def current_user(self) -> User | None:
        return self._session.user

    def current_points(self) -> int:
        return self._points.value

    def start_points_monitor(self) -> None:
        with self._lock:
            self._points.start()

    def stop_points_monitor(self) -> None:
        with self._lock:
            self._points.stop()

    # --- Quiz Session Delegation ---

    def list_quizzes(self) -> list[Quiz]:
        self._quiz_session.show_quizzes()
        return self._fetch_or_default(self._gateway.get_quizzes, [], "quiz list")

    def start_quiz(self, quiz_id: str) -> SessionView:
        self._session.require_user()
        return self._quiz_session.start(quiz_id)

    def select_option(self, option_index: int) -> SessionView:
        self._quiz_session.select_option(option_index)
        return self._quiz_session.view()

    def advance(self) -> SessionView:
        return self._quiz_session.advance()

    def exit_quiz(self) -> SessionView:
        self._quiz_session.exit()
        return self._quiz_session.view()

    def retry(self) -> SessionView:
        return self._quiz_session.retry()

    def try_another(self) -> SessionView:
        self._quiz_session.try_another()
        return self._quiz_session.view()

    def quiz_view(self) -> SessionView:
        return self._quiz_session.view()

    def quiz_history(self) -> QuizHistory:
        user = self._session.require_user()
        attempts = self._fetch_or_default(lambda: self._gateway.get_attempts_by_user(user.id), [], "quiz attempts")
        return summarize_attempts(attempts)

    # --- Ranking & Gamification ---

    def leaderboard(self, scope: RankingScope = RankingScope.ALL_TIME, department: str | None = None) -> LeaderboardView:
        user = self._session.require_user()
        users_future = self._reads.submit(self._gateway.get_ranking, RANKING_FETCH_LIMIT)
        period_future = self._period_points_future(scope)
        users = self._result_or_default(users_future, [], "ranking")
        period_points = self._result_or_default(period_future, {}, "period points") if period_future else None

        rows = build_leaderboard(users, period_points, department)
        if period_points is None:
            fetched = next((candidate for candidate in users if candidate.id == user.id), None)
            user_points = fetched.points if fetched is not None else user.points
        else:
            user_points = period_points.get(user.id, 0)
        return LeaderboardView(
            scope=scope,
            department=department,
            rows=rows[:LEADERBOARD_SIZE],
            user_position=position_of(rows, user.id),
            user_points=user_points,
            ranked_count=len(rows),
            departments=sorted({candidate.department for candidate in users}),
        )

    def user_position(self, scope: RankingScope = RankingScope.ALL_TIME, department: str | None = None) -> int:
        """0 when the signed-in user is not ranked in the scope."""
        return self.leaderboard(scope, department).user_position

    def department_stats(self) -> list[DepartmentStats]:
        users = self._fetch_or_default(lambda: self._gateway.get_ranking(RANKING_FETCH_LIMIT), [], "ranking")
        return department_stats(users)

    def badges(self) -> list[BadgeStatus]:
        user = self._session.require_user()
        counts, _ideas = self._activity_counts(user)
        return evaluate_badges(counts)

    def dashboard(self) -> DashboardView:
        user = self._session.require_user()
        fresh = self._fetch_or_default(lambda: self._gateway.get_user(user.id), user, "user")
        counts, ideas = self._activity_counts(fresh)
        return DashboardView(
            user=fresh,
            level=level_progress(fresh.points),
            position=counts.rank_position,
            badges=evaluate_badges(counts),
            completed_quizzes=counts.completed_quiz_count,
            recent_ideas=ideas[:3],
        )

    def analytics(self) -> dict[str, object]:
        require_reviewer(self._session.require_user())
        users_future = self._reads.submit(self._gateway.get_users)
        ideas_future = self._reads.submit(self._gateway.get_ideas)
        users = self._result_or_default(users_future, [], "users")
        ideas = self._result_or_default(ideas_future, [], "ideas")
        return portal_analytics(users, ideas)

    # --- Lifecycle ---

    def shutdown(self) -> None:
        self._quiz_session.close()
        self._points.stop()
        self._unsubscribe()
        self._recorder.shutdown()
        self._reads.shutdown(wait=True)

    # --- Internals ---

    def _activity_counts(self, user: User) -> tuple[ActivityCounts, list[Idea]]:
        ideas_future = self._reads.submit(self._gateway.get_ideas_by_user, user.id)
        ranking_future = self._reads.submit(self._gateway.get_ranking, RANKING_FETCH_LIMIT)
        attempts_future = self._reads.submit(self._gateway.get_attempts_by_user, user.id)
        ideas: list[Idea] = self._result_or_default(ideas_future, [], "ideas")
        ranking: list[User] = self._result_or_default(ranking_future, [], "ranking")
        attempts: list[AttemptRecord] = self._result_or_default(attempts_future, [], "quiz attempts")
        counts = ActivityCounts(
            idea_count=len(ideas),
            approved_idea_count=sum(1 for idea in ideas if idea.status == "aprovado"),
            completed_quiz_count=len(attempts),
            rank_position=position_of(build_leaderboard(ranking), user.id),
        )
        return counts, ideas

    def _period_points_future(self, scope: RankingScope) -> Future[dict[str, int]] | None:
        days = scope.window_days
        if days is None:
            return None
        return self._reads.submit(lambda: aggregate_period_points(self._gateway.get_ideas_since(days), days))

    def _fetch_points(self) -> int:
        user = self._session.user
        if user is None:
            return 0
        return self._gateway.get_user(user.id).points

    def _on_session_saved(self, user: User | None) -> None:
        self._points.set(user.points if user is not None else 0)

    @staticmethod
    def _fetch_or_default(fetch: Callable[[], T], default: T, label: str) -> T:
        try:
            return fetch()
        except GatewayError as exc:
            logger.warning("Falling back to empty %s: %s", label, exc)
            return default

    @staticmethod
    def _result_or_default(future: Future[T], default: T, label: str) -> T:
        try:
            return future.result()
        except GatewayError as exc:
            logger.warning("Falling back to empty %s: %s", label, exc)
            return default


def summarize_attempts(attempts: list[AttemptRecord]) -> QuizHistory:
    """Best score per quiz plus the average percentage across every attempt."""
    best: dict[str, QuizHistoryEntry] = {}
    percentages: list[float] = []
    for attempt in attempts:
        entry = best.get(attempt.quiz_id)
        if entry is None:
            best[attempt.quiz_id] = QuizHistoryEntry(attempt.quiz_id, attempt.score, attempt.quiz_max_points, 1)
        else:
            best[attempt.quiz_id] = QuizHistoryEntry(
                attempt.quiz_id, max(entry.best_score, attempt.score), entry.max_points, entry.attempts + 1
            )
        if attempt.quiz_max_points > 0:
            percentages.append(min(1.0, attempt.score / attempt.quiz_max_points))
    average = math.floor(sum(percentages) / len(percentages) * 100 + 0.5) if percentages else 0
    return QuizHistory(entries=list(best.values()), completed_count=len(attempts), average_percentage=average)
