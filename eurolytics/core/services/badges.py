"""Badge-earned predicates over a user's activity counts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from eurolytics.constants.gamification_constants import (
    ENGAGED_THRESHOLD,
    FIRST_IDEA_THRESHOLD,
    INNOVATOR_THRESHOLD,
    LEADER_MAX_POSITION,
    QUIZ_MASTER_THRESHOLD,
)


@dataclass(slots=True, frozen=True)
class ActivityCounts:
    """Aggregates the predicates read; build a fresh one for every evaluation."""

    idea_count: int = 0
    approved_idea_count: int = 0
    completed_quiz_count: int = 0
    rank_position: int = 0  # 0 means unranked


@dataclass(slots=True, frozen=True)
class BadgeRule:
    key: str
    name: str
    description: str
    icon: str
    is_earned: Callable[[ActivityCounts], bool]


@dataclass(slots=True, frozen=True)
class BadgeStatus:
    key: str
    name: str
    description: str
    icon: str
    earned: bool


BADGE_RULES: tuple[BadgeRule, ...] = (
    BadgeRule(
        key="first_idea",
        name="Primeira Ideia",
        description="Submeteu sua primeira ideia",
        icon="lightbulb",
        is_earned=lambda counts: counts.idea_count >= FIRST_IDEA_THRESHOLD,
    ),
    BadgeRule(
        key="quiz_master",
        name="Quiz Master",
        description=f"Completou {QUIZ_MASTER_THRESHOLD} quizzes",
        icon="trophy",
        is_earned=lambda counts: counts.completed_quiz_count >= QUIZ_MASTER_THRESHOLD,
    ),
    BadgeRule(
        key="innovator",
        name="Inovador",
        description=f"{INNOVATOR_THRESHOLD} ideias aprovadas",
        icon="star",
        is_earned=lambda counts: counts.approved_idea_count >= INNOVATOR_THRESHOLD,
    ),
    BadgeRule(
        key="engaged",
        name="Colaborador Engajado",
        description=f"Participou de {ENGAGED_THRESHOLD} atividades",
        icon="star",
        is_earned=lambda counts: counts.idea_count >= ENGAGED_THRESHOLD,
    ),
    BadgeRule(
        key="leader",
        name="Líder",
        description=f"Top {LEADER_MAX_POSITION} no ranking",
        icon="crown",
        is_earned=lambda counts: 0 < counts.rank_position <= LEADER_MAX_POSITION,
    ),
)


def evaluate_badges(counts: ActivityCounts) -> list[BadgeStatus]:
    return [
        BadgeStatus(
            key=rule.key,
            name=rule.name,
            description=rule.description,
            icon=rule.icon,
            earned=rule.is_earned(counts),
        )
        for rule in BADGE_RULES
    ]


def earned_badges(counts: ActivityCounts) -> list[BadgeStatus]:
    return [badge for badge in evaluate_badges(counts) if badge.earned]
