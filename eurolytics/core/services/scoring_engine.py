"""Pure scoring of a quiz attempt."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Mapping

from eurolytics.core.models import Quiz


@dataclass(slots=True, frozen=True)
class ScoreBreakdown:
    """Outcome of scoring one answer mapping against a quiz."""

    earned: int
    score: int
    display_max: int
    percentage: int
    correct_count: int
    incorrect_count: int
    question_results: tuple[bool, ...]


def score_quiz(quiz: Quiz, answers: Mapping[str, int]) -> ScoreBreakdown:
    """Score ``answers`` (question id -> option index) against ``quiz``.

    Unanswered questions and questions without an answer key count as
    incorrect. ``score`` is ``earned`` clamped to the display ceiling and
    ``percentage`` is rounded half-up and clamped to [0, 100].
    """
    earned = 0
    question_results: list[bool] = []
    for question in quiz.questions:
        selected = answers.get(question.id)
        is_correct = (
            selected is not None
            and question.correct_option_index is not None
            and selected == question.correct_option_index
        )
        question_results.append(is_correct)
        if is_correct:
            earned += max(0, question.points)

    display_max = resolve_display_max(quiz)
    correct_count = sum(1 for result in question_results if result)
    return ScoreBreakdown(
        earned=earned,
        score=min(earned, display_max) if display_max > 0 else earned,
        display_max=display_max,
        percentage=percentage_of(earned, display_max),
        correct_count=correct_count,
        incorrect_count=len(question_results) - correct_count,
        question_results=tuple(question_results),
    )


def resolve_display_max(quiz: Quiz) -> int:
    if quiz.max_points > 0:
        return quiz.max_points
    return quiz.question_points_total()


def percentage_of(earned: int, display_max: int) -> int:
    if display_max <= 0:
        return 0
    raw = 100 * earned / display_max
    return max(0, min(100, math.floor(raw + 0.5)))
