"""Data gateway backed by the hosted Supabase REST interface."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Callable, TypeVar

import requests

from eurolytics.constants.backend_constants import (
    CREATE_USER_RPC,
    REQUEST_TIMEOUT_SECONDS,
    VERIFY_PASSWORD_RPC,
)
from eurolytics.constants.gamification_constants import DEFAULT_PROJECT_CAPACITY
from eurolytics.core.models import AttemptRecord, Idea, PointEvent, Project, Quiz, User
from eurolytics.core.record_parser import (
    RecordFormatError,
    parse_attempt,
    parse_idea,
    parse_point_event,
    parse_project,
    parse_quiz,
    parse_user,
)
from eurolytics.gateway.base import GatewayError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SINGLE_OBJECT = "application/vnd.pgrst.object+json"
_RETURN_ROWS = "return=representation"


class _Tables:
    USERS = "users"
    IDEAS = "ideas"
    QUIZZES = "quizzes"
    QUIZ_ATTEMPTS = "quiz_attempts"
    PROJECTS = "projects"
    PROJECT_PARTICIPANTS = "project_participants"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SupabaseGateway:
    """Issues PostgREST calls for every table the portal reads or writes."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not url or not api_key:
            raise GatewayError("Backend URL and API key must be configured.", 500)
        self._base_url = url.rstrip("/") + "/rest/v1"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    # ---------- Auth ----------
    def verify_user_password(self, email: str, password: str) -> User | None:
        try:
            data = self._rpc(VERIFY_PASSWORD_RPC, {"p_email": email, "p_password": password})
        except GatewayError as exc:
            if exc.status_code >= 500:
                raise
            logger.info("Password verification rejected for %s", email)
            return None
        row = _first_row(data)
        return parse_user(row) if row else None

    def create_user(
        self, email: str, password: str, full_name: str, department: str, role: str = "colaborador"
    ) -> User:
        data = self._rpc(
            CREATE_USER_RPC,
            {
                "p_email": email,
                "p_password": password,
                "p_full_name": full_name,
                "p_department": department,
                "p_role": role or "colaborador",
            },
        )
        row = _first_row(data)
        if not row:
            raise GatewayError("User creation returned no row.")
        return self._parse_one(parse_user, row)

    # ---------- Users ----------
    def get_users(self) -> list[User]:
        rows = self._request("GET", _Tables.USERS, params={"select": "*", "order": "points.desc"})
        return self._parse_many(parse_user, rows)

    def get_user(self, user_id: str) -> User:
        row = self._request(
            "GET", _Tables.USERS, params={"select": "*", "id": f"eq.{user_id}"}, single=True
        )
        return self._parse_one(parse_user, row)

    def get_users_by_ids(self, user_ids: list[str]) -> list[User]:
        if not user_ids:
            return []
        rows = self._request(
            "GET", _Tables.USERS, params={"select": "*", "id": f"in.({','.join(user_ids)})"}
        )
        return self._parse_many(parse_user, rows)

    def get_ranking(self, limit: int) -> list[User]:
        rows = self._request(
            "GET",
            _Tables.USERS,
            params={"select": "*", "order": "points.desc", "limit": str(limit)},
        )
        return self._parse_many(parse_user, rows)

    def update_user_points(self, user_id: str, points: int) -> User:
        row = self._request(
            "PATCH",
            _Tables.USERS,
            params={"id": f"eq.{user_id}"},
            json_body={"points": points},
            single=True,
            prefer=_RETURN_ROWS,
        )
        return self._parse_one(parse_user, row)

    # ---------- Quizzes ----------
    def get_quizzes(self) -> list[Quiz]:
        rows = self._request(
            "GET",
            _Tables.QUIZZES,
            params={"select": "*,quiz_questions(*)", "order": "created_at.desc"},
        )
        return self._parse_many(parse_quiz, rows)

    def get_quiz(self, quiz_id: str) -> Quiz:
        row = self._request(
            "GET",
            _Tables.QUIZZES,
            params={"select": "*,quiz_questions(*)", "id": f"eq.{quiz_id}"},
            single=True,
        )
        return self._parse_one(parse_quiz, row)

    def create_quiz_attempt(
        self, user_id: str, quiz_id: str, score: int, answers: dict[str, int]
    ) -> AttemptRecord:
        row = self._request(
            "POST",
            _Tables.QUIZ_ATTEMPTS,
            json_body=[{"user_id": user_id, "quiz_id": quiz_id, "score": score, "answers": answers}],
            single=True,
            prefer=_RETURN_ROWS,
        )
        return self._parse_one(parse_attempt, row)

    def get_attempts_by_user(self, user_id: str) -> list[AttemptRecord]:
        rows = self._request(
            "GET",
            _Tables.QUIZ_ATTEMPTS,
            params={
                "select": "*,quizzes(*)",
                "user_id": f"eq.{user_id}",
                "order": "completed_at.desc",
            },
        )
        return self._parse_many(parse_attempt, rows)

    # ---------- Ideas ----------
    def get_ideas(self) -> list[Idea]:
        rows = self._request("GET", _Tables.IDEAS, params={"select": "*", "order": "created_at.desc"})
        return self._parse_many(parse_idea, rows)

    def get_ideas_by_user(self, user_id: str) -> list[Idea]:
        rows = self._request(
            "GET",
            _Tables.IDEAS,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )
        return self._parse_many(parse_idea, rows)

    def get_ideas_since(self, days: int) -> list[PointEvent]:
        since = utc_now() - timedelta(days=days)
        rows = self._request(
            "GET",
            _Tables.IDEAS,
            params={"select": "user_id,points_awarded,created_at", "created_at": f"gte.{since.isoformat()}"},
        )
        return [parse_point_event(row) for row in rows or []]

    def get_idea(self, idea_id: str) -> Idea:
        row = self._request(
            "GET", _Tables.IDEAS, params={"select": "*", "id": f"eq.{idea_id}"}, single=True
        )
        return self._parse_one(parse_idea, row)

    def create_idea(
        self,
        user_id: str,
        title: str,
        description: str,
        category: str,
        propose_project: bool = False,
        project_max: int | None = None,
    ) -> Idea:
        row = self._request(
            "POST",
            _Tables.IDEAS,
            json_body=[
                {
                    "user_id": user_id,
                    "title": title,
                    "description": description,
                    "category": category,
                    "status": "pendente",
                    "points_awarded": 0,
                    "propose_project": propose_project,
                    "project_max": project_max,
                }
            ],
            single=True,
            prefer=_RETURN_ROWS,
        )
        return self._parse_one(parse_idea, row)

    def update_idea_status(self, idea_id: str, status: str, points_awarded: int = 0) -> Idea:
        row = self._request(
            "PATCH",
            _Tables.IDEAS,
            params={"id": f"eq.{idea_id}"},
            json_body={
                "status": status,
                "points_awarded": points_awarded,
                "updated_at": utc_now().isoformat(),
            },
            single=True,
            prefer=_RETURN_ROWS,
        )
        return self._parse_one(parse_idea, row)

    # ---------- Projects ----------
    def get_projects(self) -> list[Project]:
        rows = self._request("GET", _Tables.PROJECTS, params={"select": "*", "order": "created_at.desc"})
        return self._parse_many(parse_project, rows)

    def get_project(self, project_id: str) -> Project:
        row = self._request(
            "GET", _Tables.PROJECTS, params={"select": "*", "id": f"eq.{project_id}"}, single=True
        )
        return self._parse_one(parse_project, row)

    def create_project_from_idea(
        self,
        title: str,
        description: str,
        manager_id: str,
        department: str | None = None,
        max_participants: int | None = None,
    ) -> Project:
        now = utc_now().isoformat()
        row = self._request(
            "POST",
            _Tables.PROJECTS,
            json_body=[
                {
                    "title": title,
                    "description": description,
                    "manager_id": manager_id,
                    "department": department,
                    "max_participants": max_participants or DEFAULT_PROJECT_CAPACITY,
                    "status": "ativo",
                    "created_at": now,
                    "updated_at": now,
                }
            ],
            single=True,
            prefer=_RETURN_ROWS,
        )
        return self._parse_one(parse_project, row)

    def get_project_participant_ids(self, project_id: str) -> list[str]:
        rows = self._request(
            "GET",
            _Tables.PROJECT_PARTICIPANTS,
            params={"select": "user_id", "project_id": f"eq.{project_id}"},
        )
        return [str(row["user_id"]) for row in rows or [] if row.get("user_id")]

    def add_participant(self, project_id: str, user_id: str) -> None:
        self._request(
            "POST",
            _Tables.PROJECT_PARTICIPANTS,
            json_body=[{"project_id": project_id, "user_id": user_id}],
        )

    def update_project_status(self, project_id: str, status: str, justification: str | None = None) -> Project:
        row = self._request(
            "PATCH",
            _Tables.PROJECTS,
            params={"id": f"eq.{project_id}"},
            json_body={
                "status": status,
                "justification": justification or None,
                "updated_at": utc_now().isoformat(),
            },
            single=True,
            prefer=_RETURN_ROWS,
        )
        return self._parse_one(parse_project, row)

    # ---------- Transport ----------
    def _rpc(self, function_name: str, payload: dict[str, Any]) -> Any:
        return self._request("POST", f"rpc/{function_name}", json_body=payload)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        single: bool = False,
        prefer: str | None = None,
    ) -> Any:
        headers: dict[str, str] = {}
        if single:
            headers["Accept"] = _SINGLE_OBJECT
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = self._session.request(
                method,
                f"{self._base_url}/{path}",
                params=params,
                json=json_body,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"{method} {path} failed: {exc}", 503) from exc

        # PostgREST answers 406 when a single-object request matched no rows.
        if single and response.status_code == 406:
            raise NotFoundError(f"No row found in {path}.")
        if response.status_code >= 400:
            raise GatewayError(_error_message(response), response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"{method} {path} returned invalid JSON.") from exc

    @staticmethod
    def _parse_one(parser: Callable[[Any], T], row: Any) -> T:
        if not row:
            raise NotFoundError("Expected a row but the backend returned none.")
        try:
            return parser(row)
        except RecordFormatError as exc:
            raise GatewayError(str(exc)) from exc

    @staticmethod
    def _parse_many(parser: Callable[[Any], T], rows: Any) -> list[T]:
        parsed: list[T] = []
        for row in rows or []:
            try:
                parsed.append(parser(row))
            except RecordFormatError as exc:
                logger.warning("Skipping malformed row: %s", exc)
        return parsed


def _first_row(data: Any) -> dict[str, Any] | None:
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Backend request failed with status {response.status_code}."
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
