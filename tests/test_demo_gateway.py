import pytest

from eurolytics.gateway.base import GatewayError, NotFoundError
from eurolytics.gateway.demo_data import DEMO_PASSWORD


def test_login_with_demo_password(demo_gateway):
    user = demo_gateway.verify_user_password("ana.souza@eurolytics.com", DEMO_PASSWORD)
    assert user.id == "u-ana"
    assert demo_gateway.verify_user_password("ana.souza@eurolytics.com", "wrong") is None


def test_register_rejects_duplicate_email(demo_gateway):
    created = demo_gateway.create_user("new@eurolytics.com", "pw", "New Person", "TI")
    assert created.role == "colaborador"
    assert created.points == 0
    with pytest.raises(GatewayError) as excinfo:
        demo_gateway.create_user("new@eurolytics.com", "pw", "Again", "TI")
    assert excinfo.value.status_code == 409


def test_ranking_is_points_descending(demo_gateway):
    ranking = demo_gateway.get_ranking(3)
    assert [user.id for user in ranking] == ["u-ana", "u-bruno", "u-carla"]


def test_quiz_shapes_are_normalized(demo_gateway):
    compliance = demo_gateway.get_quiz("q-compliance")
    innovation = demo_gateway.get_quiz("q-innovation")
    assert [question.points for question in compliance.questions] == [10, 20, 30]
    assert innovation.questions[0].options == ("Managers and executives", "Any colleague", "Nobody")
    assert innovation.max_points == 0


def test_missing_rows_raise_not_found(demo_gateway):
    with pytest.raises(NotFoundError):
        demo_gateway.get_quiz("nope")
    with pytest.raises(NotFoundError):
        demo_gateway.get_user("nope")


def test_attempts_embed_quiz_ceiling(demo_gateway):
    demo_gateway.create_quiz_attempt("u-carla", "q-innovation", 15, {"q-innovation-1": 0})
    attempts = demo_gateway.get_attempts_by_user("u-carla")
    assert attempts[0].quiz_max_points == 30


def test_ideas_since_window(demo_gateway):
    users = {event.user_id for event in demo_gateway.get_ideas_since(7)}
    assert users == {"u-ana", "u-elisa"}


def test_instances_do_not_share_rows(demo_gateway):
    from eurolytics.gateway.demo_gateway import DemoGateway

    demo_gateway.update_user_points("u-ana", 1)
    assert DemoGateway().get_user("u-ana").points == 820
