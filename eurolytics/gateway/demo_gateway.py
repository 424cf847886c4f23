"""In-memory data gateway used in demo mode and in tests."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any
from uuid import uuid4

from eurolytics.constants.gamification_constants import DEFAULT_PROJECT_CAPACITY
from eurolytics.core.models import AttemptRecord, Idea, PointEvent, Project, Quiz, User
from eurolytics.core.record_parser import (
    RecordFormatError,
    parse_attempt,
    parse_idea,
    parse_point_event,
    parse_project,
    parse_quiz,
    parse_timestamp,
    parse_user,
)
from eurolytics.gateway.base import GatewayError, NotFoundError
from eurolytics.gateway.demo_data import build_demo_rows


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DemoGateway:
    """Keeps every table as a list of raw rows and parses them on the way out."""

    def __init__(self, rows: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._lock = Lock()
        self._rows = copy.deepcopy(rows) if rows is not None else build_demo_rows()
        for table in ("users", "quizzes", "ideas", "projects", "project_participants", "quiz_attempts", "passwords"):
            self._rows.setdefault(table, [])

    # ---------- Auth ----------
    def verify_user_password(self, email: str, password: str) -> User | None:
        with self._lock:
            match = next(
                (entry for entry in self._rows["passwords"] if entry["email"] == email and entry["password"] == password),
                None,
            )
            if match is None:
                return None
            row = self._find("users", "email", email)
            return parse_user(row) if row else None

    def create_user(
        self, email: str, password: str, full_name: str, department: str, role: str = "colaborador"
    ) -> User:
        with self._lock:
            if self._find("users", "email", email) is not None:
                raise GatewayError("E-mail already registered.", 409)
            row = {
                "id": uuid4().hex,
                "email": email,
                "full_name": full_name,
                "role": role or "colaborador",
                "department": department,
                "points": 0,
                "created_at": _now_iso(),
            }
            self._rows["users"].append(row)
            self._rows["passwords"].append({"email": email, "password": password})
            return parse_user(row)

    # ---------- Users ----------
    def get_users(self) -> list[User]:
        with self._lock:
            rows = sorted(self._rows["users"], key=lambda row: -int(row.get("points") or 0))
            return [parse_user(row) for row in rows]

    def get_user(self, user_id: str) -> User:
        with self._lock:
            return parse_user(self._require("users", user_id))

    def get_users_by_ids(self, user_ids: list[str]) -> list[User]:
        wanted = set(user_ids)
        with self._lock:
            return [parse_user(row) for row in self._rows["users"] if row["id"] in wanted]

    def get_ranking(self, limit: int) -> list[User]:
        return self.get_users()[:limit]

    def update_user_points(self, user_id: str, points: int) -> User:
        with self._lock:
            row = self._require("users", user_id)
            row["points"] = points
            return parse_user(row)

    # ---------- Quizzes ----------
    def get_quizzes(self) -> list[Quiz]:
        with self._lock:
            rows = sorted(self._rows["quizzes"], key=lambda row: row.get("created_at") or "", reverse=True)
            quizzes = []
            for row in rows:
                try:
                    quizzes.append(parse_quiz(row))
                except RecordFormatError:
                    continue
            return quizzes

    def get_quiz(self, quiz_id: str) -> Quiz:
        with self._lock:
            row = self._require("quizzes", quiz_id)
            try:
                return parse_quiz(row)
            except RecordFormatError as exc:
                raise GatewayError(str(exc)) from exc

    def create_quiz_attempt(
        self, user_id: str, quiz_id: str, score: int, answers: dict[str, int]
    ) -> AttemptRecord:
        with self._lock:
            row = {
                "id": uuid4().hex,
                "user_id": user_id,
                "quiz_id": quiz_id,
                "score": score,
                "answers": dict(answers),
                "completed_at": _now_iso(),
            }
            self._rows["quiz_attempts"].append(row)
            return parse_attempt(self._with_quiz(row))

    def get_attempts_by_user(self, user_id: str) -> list[AttemptRecord]:
        with self._lock:
            rows = [row for row in self._rows["quiz_attempts"] if row["user_id"] == user_id]
            rows.sort(key=lambda row: row.get("completed_at") or "", reverse=True)
            return [parse_attempt(self._with_quiz(row)) for row in rows]

    # ---------- Ideas ----------
    def get_ideas(self) -> list[Idea]:
        with self._lock:
            return [parse_idea(row) for row in self._newest_first(self._rows["ideas"])]

    def get_ideas_by_user(self, user_id: str) -> list[Idea]:
        with self._lock:
            rows = [row for row in self._rows["ideas"] if row["user_id"] == user_id]
            return [parse_idea(row) for row in self._newest_first(rows)]

    def get_ideas_since(self, days: int) -> list[PointEvent]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        with self._lock:
            events = []
            for row in self._rows["ideas"]:
                created = parse_timestamp(row.get("created_at"))
                if created is not None and created >= since:
                    events.append(parse_point_event(row))
            return events

    def get_idea(self, idea_id: str) -> Idea:
        with self._lock:
            return parse_idea(self._require("ideas", idea_id))

    def create_idea(
        self,
        user_id: str,
        title: str,
        description: str,
        category: str,
        propose_project: bool = False,
        project_max: int | None = None,
    ) -> Idea:
        with self._lock:
            now = _now_iso()
            row = {
                "id": uuid4().hex,
                "user_id": user_id,
                "title": title,
                "description": description,
                "category": category,
                "status": "pendente",
                "points_awarded": 0,
                "created_at": now,
                "updated_at": now,
                "propose_project": propose_project,
                "project_max": project_max,
            }
            self._rows["ideas"].append(row)
            return parse_idea(row)

    def update_idea_status(self, idea_id: str, status: str, points_awarded: int = 0) -> Idea:
        with self._lock:
            row = self._require("ideas", idea_id)
            row.update({"status": status, "points_awarded": points_awarded, "updated_at": _now_iso()})
            return parse_idea(row)

    # ---------- Projects ----------
    def get_projects(self) -> list[Project]:
        with self._lock:
            return [parse_project(row) for row in self._newest_first(self._rows["projects"])]

    def get_project(self, project_id: str) -> Project:
        with self._lock:
            return parse_project(self._require("projects", project_id))

    def create_project_from_idea(
        self,
        title: str,
        description: str,
        manager_id: str,
        department: str | None = None,
        max_participants: int | None = None,
    ) -> Project:
        with self._lock:
            row = {
                "id": uuid4().hex,
                "title": title,
                "description": description,
                "manager_id": manager_id,
                "department": department,
                "max_participants": max_participants or DEFAULT_PROJECT_CAPACITY,
                "status": "ativo",
                "created_at": _now_iso(),
            }
            self._rows["projects"].append(row)
            return parse_project(row)

    def get_project_participant_ids(self, project_id: str) -> list[str]:
        with self._lock:
            return [row["user_id"] for row in self._rows["project_participants"] if row["project_id"] == project_id]

    def add_participant(self, project_id: str, user_id: str) -> None:
        with self._lock:
            self._require("projects", project_id)
            self._rows["project_participants"].append({"project_id": project_id, "user_id": user_id})

    def update_project_status(self, project_id: str, status: str, justification: str | None = None) -> Project:
        with self._lock:
            row = self._require("projects", project_id)
            row.update({"status": status, "justification": justification or None})
            return parse_project(row)

    # ---------- Helpers ----------
    def _find(self, table: str, key: str, value: Any) -> dict[str, Any] | None:
        return next((row for row in self._rows[table] if row.get(key) == value), None)

    def _require(self, table: str, row_id: str) -> dict[str, Any]:
        row = self._find(table, "id", row_id)
        if row is None:
            raise NotFoundError(f"No row {row_id} in {table}.")
        return row

    def _with_quiz(self, attempt_row: dict[str, Any]) -> dict[str, Any]:
        quiz_row = self._find("quizzes", "id", attempt_row["quiz_id"])
        return {**attempt_row, "quizzes": quiz_row}

    @staticmethod
    def _newest_first(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return sorted(rows, key=lambda row: row.get("created_at") or "", reverse=True)
