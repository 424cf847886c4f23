"""Idea submission and review."""

from __future__ import annotations

import logging

from eurolytics.constants.gamification_constants import (
    DEFAULT_PROJECT_CAPACITY,
    IDEA_APPROVAL_POINTS,
    REVIEWER_ROLES,
)
from eurolytics.core.models import Idea, User
from eurolytics.core.services.notifications import NotificationCenter
from eurolytics.core.session_context import SessionContext
from eurolytics.core.text_search import matches_search
from eurolytics.gateway.base import DataGateway, GatewayError

logger = logging.getLogger(__name__)


def require_reviewer(user: User) -> None:
    """Client-side role check; the backend enforces the real authorization."""
    if user.role not in REVIEWER_ROLES:
        raise PermissionError("Only managers and executives can do this.")


class IdeaReviewError(RuntimeError):
    """Raised when a review decision targets an idea that was already reviewed."""


class IdeaWorkflow:
    """Submits ideas and applies review decisions, awarding points on approval."""

    def __init__(self, gateway: DataGateway, session: SessionContext, notifications: NotificationCenter) -> None:
        self._gateway = gateway
        self._session = session
        self._notifications = notifications

    def submit(
        self,
        title: str,
        description: str,
        category: str,
        propose_project: bool = False,
        project_max: int | None = None,
    ) -> Idea:
        user = self._session.require_user()
        cleaned = {"title": title.strip(), "description": description.strip(), "category": category.strip()}
        missing = [name for name, value in cleaned.items() if not value]
        if missing:
            raise ValueError(f"Missing fields: {', '.join(missing)}")
        if project_max is not None and project_max < 1:
            raise ValueError("A proposed project needs room for at least one participant.")
        idea = self._gateway.create_idea(
            user.id,
            cleaned["title"],
            cleaned["description"],
            cleaned["category"],
            propose_project=propose_project,
            project_max=(project_max or DEFAULT_PROJECT_CAPACITY) if propose_project else None,
        )
        logger.info("User %s submitted idea %s", user.id, idea.id)
        return idea

    def my_ideas(self, status: str | None = None, search: str | None = None) -> list[Idea]:
        user = self._session.require_user()
        return _filter_ideas(self._gateway.get_ideas_by_user(user.id), status, search)

    def all_ideas(self, status: str | None = None, search: str | None = None) -> list[Idea]:
        require_reviewer(self._session.require_user())
        return _filter_ideas(self._gateway.get_ideas(), status, search)

    def approve(self, idea_id: str, points: int = IDEA_APPROVAL_POINTS) -> Idea:
        """Approve a pending idea; crediting the author and creating the project are best-effort."""
        self._require_pending(idea_id)
        idea = self._gateway.update_idea_status(idea_id, "aprovado", points)
        author: User | None = None
        try:
            author = self._gateway.get_user(idea.user_id)
            updated = self._gateway.update_user_points(author.id, author.points + idea.points_awarded)
            self._session.set_points(updated.points, user_id=updated.id)
        except GatewayError as exc:
            logger.warning("Could not credit %s points to %s: %s", idea.points_awarded, idea.user_id, exc)
            self._notifications.add("Points not awarded", f"Idea approved but points failed: {exc.message}", "warning")
        if idea.propose_project:
            try:
                self._gateway.create_project_from_idea(
                    title=idea.title,
                    description=idea.description,
                    manager_id=idea.user_id,
                    department=author.department if author is not None else None,
                    max_participants=idea.project_max or DEFAULT_PROJECT_CAPACITY,
                )
            except GatewayError as exc:
                logger.warning("Could not create a project from idea %s: %s", idea.id, exc)
                self._notifications.add("Project not created", f"Idea approved but project failed: {exc.message}", "warning")
        self._notifications.add("Idea approved", f"\"{idea.title}\" was approved.", "success")
        return idea

    def reject(self, idea_id: str) -> Idea:
        self._require_pending(idea_id)
        idea = self._gateway.update_idea_status(idea_id, "rejeitado", 0)
        self._notifications.add("Idea rejected", f"\"{idea.title}\" was rejected.", "info")
        return idea

    def _require_pending(self, idea_id: str) -> Idea:
        require_reviewer(self._session.require_user())
        idea = self._gateway.get_idea(idea_id)
        if idea.status != "pendente":
            raise IdeaReviewError(f"Idea {idea_id} was already reviewed ({idea.status}).")
        return idea


def _filter_ideas(ideas: list[Idea], status: str | None, search: str | None) -> list[Idea]:
    return [
        idea
        for idea in ideas
        if (not status or idea.status == status) and matches_search(search, idea.title, idea.description)
    ]
