"""Normalization of raw backend rows into the portal's domain models.

Rows arrive from the hosted store as loosely-typed dictionaries. Quizzes in
particular come in more than one shape: questions may be embedded under
``quiz_questions`` (the relational embed) or ``questions`` (older rows), the
prompt may be named ``question``, ``prompt`` or ``question_text``, and option
lists are sometimes stored as JSON strings. Every accepted shape is mapped here,
once, so the scoring engine and the quiz session only ever see ``Quiz`` and
``QuizQuestion`` instances.

Missing answer keys are kept as ``None`` rather than rejected: such questions
are scored as incorrect instead of failing the whole quiz.
"""

from __future__ import annotations

from datetime import datetime
import json
from typing import Any, Mapping

from eurolytics.core.models import AttemptRecord, Idea, PointEvent, Project, Quiz, QuizQuestion, User

_LEGACY_ACTIVE_STATUSES = {"planejamento", "execucao"}


class RecordFormatError(Exception):
    """Raised when a backend row cannot be mapped onto a domain model."""


def parse_quiz(row: Mapping[str, Any]) -> Quiz:
    quiz_id = _require_id(row, "quiz")
    raw_questions = row.get("quiz_questions")
    if raw_questions is None:
        raw_questions = row.get("questions") or []
    if not isinstance(raw_questions, list):
        raise RecordFormatError(f"Quiz {quiz_id} has a malformed question list.")

    ordered = _order_question_rows(raw_questions)
    questions = tuple(parse_question(question_row) for question_row in ordered)
    return Quiz(
        id=quiz_id,
        title=str(row.get("title") or "").strip(),
        description=str(row.get("description") or "").strip(),
        questions=questions,
        max_points=_non_negative_int(row.get("max_points")),
        time_limit_seconds=_non_negative_int(row.get("time_limit")),
        created_at=parse_timestamp(row.get("created_at")),
    )


def parse_question(row: Mapping[str, Any]) -> QuizQuestion:
    question_id = _require_id(row, "question")
    text = row.get("question") or row.get("prompt") or row.get("question_text") or ""
    text = str(text).strip()
    if not text:
        raise RecordFormatError(f"Question {question_id} has no text.")

    options = _parse_options(row.get("options"), question_id)
    correct = row.get("correct_answer", row.get("correct_option_index"))
    correct_index = _optional_index(correct)
    if correct_index is not None and not 0 <= correct_index < len(options):
        correct_index = None

    return QuizQuestion(
        id=question_id,
        question_text=text,
        options=options,
        correct_option_index=correct_index,
        points=_non_negative_int(row.get("points")),
    )


def parse_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_require_id(row, "user"),
        email=str(row.get("email") or ""),
        full_name=str(row.get("full_name") or ""),
        role=str(row.get("role") or "colaborador"),
        department=str(row.get("department") or ""),
        points=_non_negative_int(row.get("points")),
        created_at=parse_timestamp(row.get("created_at")),
        avatar_url=row.get("avatar_url"),
    )


def parse_attempt(row: Mapping[str, Any]) -> AttemptRecord:
    quiz_row = row.get("quizzes")
    quiz_max = _embedded_quiz_max(quiz_row) if isinstance(quiz_row, Mapping) else 0
    raw_answers = row.get("answers") or {}
    if isinstance(raw_answers, str):
        try:
            raw_answers = json.loads(raw_answers)
        except json.JSONDecodeError:
            raw_answers = {}
    answers: dict[str, int] = {}
    if isinstance(raw_answers, Mapping):
        for key, value in raw_answers.items():
            index = _optional_index(value)
            if index is not None:
                answers[str(key)] = index
    return AttemptRecord(
        id=_require_id(row, "attempt"),
        user_id=str(row.get("user_id") or ""),
        quiz_id=str(row.get("quiz_id") or ""),
        score=_non_negative_int(row.get("score")),
        answers=answers,
        completed_at=parse_timestamp(row.get("completed_at")),
        quiz_max_points=quiz_max,
    )


def parse_idea(row: Mapping[str, Any]) -> Idea:
    return Idea(
        id=_require_id(row, "idea"),
        user_id=str(row.get("user_id") or ""),
        title=str(row.get("title") or ""),
        description=str(row.get("description") or ""),
        category=str(row.get("category") or ""),
        status=str(row.get("status") or "pendente"),
        points_awarded=_non_negative_int(row.get("points_awarded")),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        propose_project=bool(row.get("propose_project")),
        project_max=_non_negative_int(row.get("project_max")) or None,
    )


def parse_point_event(row: Mapping[str, Any]) -> PointEvent:
    return PointEvent(
        user_id=str(row.get("user_id") or ""),
        points_awarded=_non_negative_int(row.get("points_awarded")),
        created_at=parse_timestamp(row.get("created_at")),
    )


def parse_project(row: Mapping[str, Any]) -> Project:
    status = str(row.get("status") or "ativo").strip().lower()
    if status in _LEGACY_ACTIVE_STATUSES:
        status = "ativo"
    capacity = _non_negative_int(row.get("max_participants")) or 8
    return Project(
        id=_require_id(row, "project"),
        title=str(row.get("title") or ""),
        description=str(row.get("description") or ""),
        manager_id=str(row.get("manager_id") or ""),
        status=status,
        department=row.get("department"),
        max_participants=capacity,
        justification=row.get("justification"),
        created_at=parse_timestamp(row.get("created_at")),
    )


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _order_question_rows(rows: list[Any]) -> list[Mapping[str, Any]]:
    mappings = [row for row in rows if isinstance(row, Mapping)]
    if len(mappings) != len(rows):
        raise RecordFormatError("Question entries must be objects.")
    order_key = next((key for key in ("order", "position") if all(key in row for row in mappings)), None)
    if order_key is None:
        return mappings
    # sorted() is stable, so rows sharing an order value keep their fetch order.
    return sorted(mappings, key=lambda row: _non_negative_int(row.get(order_key)))


def _parse_options(raw: Any, question_id: str) -> tuple[str, ...]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RecordFormatError(f"Question {question_id} has unreadable options.") from exc
    if not isinstance(raw, list):
        raise RecordFormatError(f"Question {question_id} has no option list.")
    options = tuple(_option_text(option) for option in raw)
    if len(options) < 2:
        raise RecordFormatError(f"Question {question_id} needs at least two options.")
    return options


def _embedded_quiz_max(quiz_row: Mapping[str, Any]) -> int:
    """Display ceiling of an embedded quiz; falls back to the question point sum."""
    declared = _non_negative_int(quiz_row.get("max_points"))
    if declared > 0:
        return declared
    questions = quiz_row.get("quiz_questions") or quiz_row.get("questions") or []
    if not isinstance(questions, list):
        return 0
    return sum(_non_negative_int(question.get("points")) for question in questions if isinstance(question, Mapping))


def _option_text(option: Any) -> str:
    if isinstance(option, Mapping):
        return str(option.get("text") or "").strip()
    return str(option).strip()


def _require_id(row: Mapping[str, Any], kind: str) -> str:
    value = row.get("id")
    if value is None or str(value).strip() == "":
        raise RecordFormatError(f"A {kind} row is missing its id.")
    return str(value)


def _optional_index(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        index = int(value)
    except (TypeError, ValueError):
        return None
    return index if index >= 0 else None


def _non_negative_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)
