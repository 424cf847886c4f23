import pytest

from eurolytics.core.portal_manager import PortalManager, summarize_attempts
from eurolytics.core.models import AttemptRecord
from eurolytics.core.services.quiz_session import SessionState
from eurolytics.core.services.ranking import RankingScope
from eurolytics.core.session_context import AuthenticationError, SessionContext
from eurolytics.gateway.base import GatewayError
from eurolytics.gateway.demo_data import DEMO_PASSWORD
from eurolytics.gateway.demo_gateway import DemoGateway


class RankingDownGateway(DemoGateway):
    def get_ranking(self, limit):
        raise GatewayError("ranking unavailable", 503)

    def get_ideas_since(self, days):
        raise GatewayError("ideas unavailable", 503)


@pytest.fixture
def manager(demo_gateway, timer_factory):
    portal = PortalManager(demo_gateway, SessionContext(), timer_factory=timer_factory)
    yield portal
    portal.shutdown()


def _login(manager, email="ana.souza@eurolytics.com"):
    user = manager.login(email, DEMO_PASSWORD)
    assert user is not None
    return user


def test_login_and_logout(manager):
    assert manager.login("ana.souza@eurolytics.com", "wrong") is None
    user = _login(manager)
    assert manager.current_user().id == user.id
    assert manager.current_points() == 820
    manager.logout()
    assert manager.current_user() is None
    assert manager.current_points() == 0


def test_register_validates_fields(manager):
    with pytest.raises(ValueError):
        manager.register("x@eurolytics.com", "pw", " ", "TI")
    user = manager.register("x@eurolytics.com", "pw", "Xavier", "TI")
    assert user.role == "colaborador"


def test_quiz_requires_sign_in(manager):
    with pytest.raises(AuthenticationError):
        manager.start_quiz("q-compliance")


def test_full_quiz_flow_updates_points(manager):
    _login(manager)
    assert [quiz.id for quiz in manager.list_quizzes()] == ["q-empty", "q-innovation", "q-compliance"]
    manager.start_quiz("q-compliance")
    for choice in (1, 2, 0):
        manager.select_option(choice)
        view = manager.advance()
    assert view.state is SessionState.COMPLETED
    assert view.result.breakdown.score == 30
    assert view.result.breakdown.percentage == 50

    outcome = view.result.save.result(timeout=5)
    assert outcome.saved
    assert manager.current_points() == 850
    assert manager.notifications.unread_count() == 1

    history = manager.quiz_history()
    assert history.completed_count == 2
    assert history.entries[0].best_score == 60
    assert history.entries[0].attempts == 2
    assert history.average_percentage == 75


def test_exit_retry_and_try_another(manager):
    _login(manager)
    manager.start_quiz("q-innovation")
    assert manager.exit_quiz().state is SessionState.SELECTING

    manager.start_quiz("q-innovation")
    for choice in (0, 1):
        manager.select_option(choice)
        manager.advance()
    assert manager.retry().state is SessionState.ACTIVE

    for choice in (1, 0):
        manager.select_option(choice)
        manager.advance()
    assert manager.quiz_view().result.breakdown.earned == 0
    assert manager.try_another().state is SessionState.SELECTING


def test_all_time_leaderboard(manager):
    _login(manager, "elisa.rocha@eurolytics.com")
    view = manager.leaderboard()
    assert [row.user_id for row in view.rows][:2] == ["u-ana", "u-bruno"]
    assert view.user_position == 5
    assert view.user_points == 120
    assert view.departments == ["Diretoria", "Financeiro", "Operações", "TI"]


def test_weekly_leaderboard_uses_recent_awards(manager):
    _login(manager)
    view = manager.leaderboard(RankingScope.WEEKLY)
    assert view.rows[0].user_id == "u-ana"
    assert view.rows[0].points == 100
    assert view.user_points == 100
    assert {row.position for row in view.rows[1:]} == {2}


def test_department_leaderboard(manager):
    _login(manager, "carla.mendes@eurolytics.com")
    view = manager.leaderboard(department="Financeiro")
    assert [row.user_id for row in view.rows] == ["u-ana", "u-carla"]
    assert view.user_position == 2
    assert manager.user_position(department="TI") == 0


def test_leaderboard_degrades_when_backend_fails(timer_factory):
    """A failed ranking fetch yields an empty board instead of an error."""
    portal = PortalManager(RankingDownGateway(), SessionContext(), timer_factory=timer_factory)
    try:
        _login(portal)
        view = portal.leaderboard(RankingScope.MONTHLY)
        assert view.rows == []
        assert view.user_position == 0
        assert portal.department_stats() == []
    finally:
        portal.shutdown()


def test_badges_and_dashboard(manager):
    _login(manager)
    earned = {badge.key for badge in manager.badges() if badge.earned}
    assert earned == {"first_idea", "leader"}

    dashboard = manager.dashboard()
    assert dashboard.position == 1
    assert dashboard.level.next_level_points == 1000
    assert dashboard.completed_quizzes == 1
    assert [idea.id for idea in dashboard.recent_ideas] == ["i-1", "i-4"]


def test_analytics_is_for_reviewers(manager):
    _login(manager)
    with pytest.raises(PermissionError):
        manager.analytics()
    manager.logout()
    _login(manager, "diego.alves@eurolytics.com")
    summary = manager.analytics()
    assert summary["total_ideas"] == 4
    assert summary["total_users"] == 6
    assert summary["active_users"] == 5


def test_department_stats(manager):
    stats = manager.department_stats()
    assert stats[0].department == "Financeiro"
    assert stats[0].average_points == 615


def test_summarize_attempts_without_history():
    history = summarize_attempts([])
    assert history.entries == []
    assert history.average_percentage == 0


def test_summarize_attempts_ignores_unknown_ceiling():
    attempts = [
        AttemptRecord("a", "u", "q1", 10, {}, quiz_max_points=40),
        AttemptRecord("b", "u", "q2", 10, {}, quiz_max_points=0),
    ]
    assert summarize_attempts(attempts).average_percentage == 25
