"""Project listing, joining and lifecycle changes."""

from __future__ import annotations

import logging

from eurolytics.constants.gamification_constants import PROJECT_JOIN_POINTS
from eurolytics.core.models import Project, User
from eurolytics.core.services.idea_workflow import require_reviewer
from eurolytics.core.services.notifications import NotificationCenter
from eurolytics.core.session_context import SessionContext
from eurolytics.core.text_search import matches_search
from eurolytics.gateway.base import DataGateway, GatewayError

logger = logging.getLogger(__name__)

PROJECT_STATUSES = ("ativo", "pausado", "concluido")


class ProjectJoinError(RuntimeError):
    """Raised when the signed-in user may not join a project."""


class ProjectParticipation:
    def __init__(self, gateway: DataGateway, session: SessionContext, notifications: NotificationCenter) -> None:
        self._gateway = gateway
        self._session = session
        self._notifications = notifications

    def list_projects(self, status: str | None = None, search: str | None = None) -> list[Project]:
        projects = [
            project
            for project in self._gateway.get_projects()
            if (not status or project.status == status) and matches_search(search, project.title, project.description)
        ]
        for project in projects:
            try:
                project.participant_ids = self._gateway.get_project_participant_ids(project.id)
            except GatewayError as exc:
                logger.warning("Participants of project %s unavailable: %s", project.id, exc)
                project.participant_ids = []
        return projects

    def participants(self, project_id: str) -> list[User]:
        return self._gateway.get_users_by_ids(self._gateway.get_project_participant_ids(project_id))

    def join(self, project_id: str) -> Project:
        user = self._session.require_user()
        project = self._gateway.get_project(project_id)
        participant_ids = self._gateway.get_project_participant_ids(project_id)
        if project.status == "concluido":
            raise ProjectJoinError("Finished projects do not accept new participants.")
        if project.manager_id == user.id:
            raise ProjectJoinError("You already manage this project.")
        if user.id in participant_ids:
            raise ProjectJoinError("You already take part in this project.")
        if len(participant_ids) >= project.max_participants:
            raise ProjectJoinError("This project is full.")

        self._gateway.add_participant(project_id, user.id)
        project.participant_ids = [*participant_ids, user.id]
        try:
            updated = self._gateway.update_user_points(user.id, user.points + PROJECT_JOIN_POINTS)
            self._session.set_points(updated.points, user_id=user.id)
        except GatewayError as exc:
            logger.warning("Join bonus for %s failed: %s", user.id, exc)
            self._notifications.add("Points not updated", f"Joined, but the bonus failed: {exc.message}", "warning")
        else:
            self._notifications.add("Joined project", f"You joined \"{project.title}\" (+{PROJECT_JOIN_POINTS} points).", "success")
        return project

    def update_status(self, project_id: str, status: str, justification: str | None = None) -> Project:
        require_reviewer(self._session.require_user())
        normalized = status.strip().lower()
        if normalized not in PROJECT_STATUSES:
            raise ValueError(f"Unknown project status: {status}")
        return self._gateway.update_project_status(project_id, normalized, justification)
