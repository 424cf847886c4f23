"""Domain models for the Eurolytics portal."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class QuizQuestion:
    """Multiple-choice question; immutable once loaded into a session."""

    id: str
    question_text: str
    options: tuple[str, ...]
    correct_option_index: int | None = None  # None means the row carried no answer key
    points: int = 0


@dataclass(slots=True, frozen=True)
class Quiz:
    """Quiz definition with its ordered question sequence."""

    id: str
    title: str
    description: str
    questions: tuple[QuizQuestion, ...]
    max_points: int = 0
    time_limit_seconds: int = 0
    created_at: datetime | None = None

    def question_points_total(self) -> int:
        return sum(question.points for question in self.questions)


@dataclass(slots=True)
class User:
    """Portal member as stored in the ``users`` table."""

    id: str
    email: str
    full_name: str
    role: str
    department: str
    points: int = 0
    created_at: datetime | None = None
    avatar_url: str | None = None


@dataclass(slots=True, frozen=True)
class AttemptRecord:
    """Completed quiz attempt; never mutated after creation."""

    id: str
    user_id: str
    quiz_id: str
    score: int
    answers: dict[str, int]
    completed_at: datetime | None = None
    quiz_max_points: int = 0


@dataclass(slots=True)
class Idea:
    id: str
    user_id: str
    title: str
    description: str
    category: str
    status: str = "pendente"
    points_awarded: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    propose_project: bool = False
    project_max: int | None = None


@dataclass(slots=True, frozen=True)
class PointEvent:
    """Slice of an idea row used for period point aggregation."""

    user_id: str
    points_awarded: int
    created_at: datetime | None


@dataclass(slots=True)
class Project:
    id: str
    title: str
    description: str
    manager_id: str
    status: str = "ativo"
    department: str | None = None
    max_participants: int = 8
    justification: str | None = None
    created_at: datetime | None = None
    participant_ids: list[str] = field(default_factory=list)
