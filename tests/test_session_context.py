import pytest

from eurolytics.core.models import User
from eurolytics.core.session_context import AuthenticationError, SessionContext


def _user(points=10):
    return User(id="u1", email="u1@x.com", full_name="U One", role="gestor", department="TI", points=points)


def test_sign_in_persists_and_reloads(session_path):
    SessionContext(session_path).sign_in(_user(42))
    restored = SessionContext(session_path).load()
    assert restored.id == "u1"
    assert restored.role == "gestor"
    assert restored.points == 42


def test_sign_out_removes_file(session_path):
    session = SessionContext(session_path)
    session.sign_in(_user())
    session.sign_out()
    assert not session_path.exists()
    assert session.user is None


def test_corrupt_file_is_discarded(session_path):
    session_path.write_text("{not json", encoding="utf-8")
    assert SessionContext(session_path).load() is None
    assert not session_path.exists()


def test_require_user_without_sign_in():
    with pytest.raises(AuthenticationError):
        SessionContext().require_user()


def test_set_points_notifies_listeners():
    session = SessionContext()
    session.sign_in(_user(10))
    seen = []
    unsubscribe = session.subscribe(lambda user: seen.append(user.points if user else None))
    session.set_points(50)
    unsubscribe()
    session.set_points(60)
    assert seen == [50]


def test_set_points_for_other_user_is_ignored():
    session = SessionContext()
    session.sign_in(_user(10))
    session.set_points(999, user_id="someone-else")
    assert session.user.points == 10
