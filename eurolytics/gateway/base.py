"""Contract shared by every data gateway implementation."""

from __future__ import annotations

from typing import Protocol

from eurolytics.core.models import AttemptRecord, Idea, PointEvent, Project, Quiz, User


class GatewayError(Exception):
    """Raised when the backing store rejects or fails a request."""

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.message = message


class NotFoundError(GatewayError):

    status_code = 404


class DataGateway(Protocol):
    """Typed read/write calls for every portal entity."""

    # Auth
    def verify_user_password(self, email: str, password: str) -> User | None: ...

    def create_user(
        self, email: str, password: str, full_name: str, department: str, role: str = "colaborador"
    ) -> User: ...

    # Users
    def get_users(self) -> list[User]: ...

    def get_user(self, user_id: str) -> User: ...

    def get_users_by_ids(self, user_ids: list[str]) -> list[User]: ...

    def get_ranking(self, limit: int) -> list[User]: ...

    def update_user_points(self, user_id: str, points: int) -> User: ...

    # Quizzes
    def get_quizzes(self) -> list[Quiz]: ...

    def get_quiz(self, quiz_id: str) -> Quiz: ...

    def create_quiz_attempt(
        self, user_id: str, quiz_id: str, score: int, answers: dict[str, int]
    ) -> AttemptRecord: ...

    def get_attempts_by_user(self, user_id: str) -> list[AttemptRecord]: ...

    # Ideas
    def get_ideas(self) -> list[Idea]: ...

    def get_ideas_by_user(self, user_id: str) -> list[Idea]: ...

    def get_ideas_since(self, days: int) -> list[PointEvent]: ...

    def get_idea(self, idea_id: str) -> Idea: ...

    def create_idea(
        self,
        user_id: str,
        title: str,
        description: str,
        category: str,
        propose_project: bool = False,
        project_max: int | None = None,
    ) -> Idea: ...

    def update_idea_status(self, idea_id: str, status: str, points_awarded: int = 0) -> Idea: ...

    # Projects
    def get_projects(self) -> list[Project]: ...

    def get_project(self, project_id: str) -> Project: ...

    def create_project_from_idea(
        self,
        title: str,
        description: str,
        manager_id: str,
        department: str | None = None,
        max_participants: int | None = None,
    ) -> Project: ...

    def get_project_participant_ids(self, project_id: str) -> list[str]: ...

    def add_participant(self, project_id: str, user_id: str) -> None: ...

    def update_project_status(self, project_id: str, status: str, justification: str | None = None) -> Project: ...
