import pytest

from eurolytics.core.services.notifications import NotificationCenter
from eurolytics.core.services.project_participation import ProjectJoinError, ProjectParticipation
from eurolytics.core.session_context import SessionContext


def _participation(gateway, user_id):
    session = SessionContext()
    session.sign_in(gateway.get_user(user_id))
    return ProjectParticipation(gateway, session, NotificationCenter()), session


def test_join_adds_participant_and_bonus(demo_gateway):
    participation, session = _participation(demo_gateway, "u-carla")
    project = participation.join("p-1")
    assert project.participant_ids == ["u-bruno", "u-carla"]
    assert demo_gateway.get_user("u-carla").points == 430
    assert session.user.points == 430


def test_manager_cannot_join_own_project(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-ana")
    with pytest.raises(ProjectJoinError):
        participation.join("p-1")


def test_cannot_join_twice(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-bruno")
    with pytest.raises(ProjectJoinError):
        participation.join("p-1")


def test_finished_project_is_closed(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-fabio")
    with pytest.raises(ProjectJoinError):
        participation.join("p-2")


def test_full_project_rejects_join(demo_gateway):
    """p-1 holds three people; the fourth is turned away."""
    _participation(demo_gateway, "u-carla")[0].join("p-1")
    _participation(demo_gateway, "u-elisa")[0].join("p-1")
    participation, session = _participation(demo_gateway, "u-fabio")
    with pytest.raises(ProjectJoinError):
        participation.join("p-1")
    assert session.user.points == 0


def test_list_projects_fills_participants(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-fabio")
    projects = {project.id: project for project in participation.list_projects()}
    assert projects["p-1"].participant_ids == ["u-bruno"]
    assert [project.id for project in participation.list_projects("concluido")] == ["p-2"]
    assert [user.id for user in participation.participants("p-2")] == ["u-elisa"]


def test_status_change_requires_reviewer(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-carla")
    with pytest.raises(PermissionError):
        participation.update_status("p-1", "pausado")


def test_status_change_validates_status(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-diego")
    with pytest.raises(ValueError):
        participation.update_status("p-1", "archived")
    project = participation.update_status("p-1", "Pausado", "Budget review")
    assert project.status == "pausado"
    assert project.justification == "Budget review"


def test_list_projects_search(demo_gateway):
    participation, _ = _participation(demo_gateway, "u-fabio")
    demo_gateway.create_project_from_idea("Redução de custos", "Acompanhar despesas", "u-carla", "Financeiro")
    assert [project.id for project in participation.list_projects(search="BUDGET")] == ["p-2"]
    assert [project.title for project in participation.list_projects(search="reducao")] == ["Redução de custos"]
    assert participation.list_projects("concluido", search="expense") == []
