"""Leaderboards, positions and department statistics derived from user points."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import math
from typing import Iterable, Sequence

from eurolytics.constants.gamification_constants import (
    LEVEL_SIZE_POINTS,
    MONTHLY_WINDOW_DAYS,
    WEEKLY_WINDOW_DAYS,
)
from eurolytics.core.models import Idea, PointEvent, User


class RankingScope(Enum):
    ALL_TIME = "geral"
    WEEKLY = "semanal"
    MONTHLY = "mensal"

    @property
    def window_days(self) -> int | None:
        if self is RankingScope.WEEKLY:
            return WEEKLY_WINDOW_DAYS
        if self is RankingScope.MONTHLY:
            return MONTHLY_WINDOW_DAYS
        return None


@dataclass(slots=True, frozen=True)
class LeaderboardRow:
    """Immutable leaderboard entry returned to consumers."""

    position: int
    user_id: str
    full_name: str
    department: str
    role: str
    points: int


@dataclass(slots=True, frozen=True)
class DepartmentStats:
    department: str
    headcount: int
    total_points: int
    average_points: int


@dataclass(slots=True, frozen=True)
class LevelProgress:
    points: int
    next_level_points: int
    progress_percent: float


def aggregate_period_points(
    events: Iterable[PointEvent],
    window_days: int,
    now: datetime | None = None,
) -> dict[str, int]:
    """Sum awarded points per user for events inside the trailing window."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=window_days)
    totals: dict[str, int] = {}
    for event in events:
        if not event.user_id or event.created_at is None:
            continue
        created = event.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if created < since:
            continue
        totals[event.user_id] = totals.get(event.user_id, 0) + max(0, event.points_awarded)
    return totals


def build_leaderboard(
    users: Sequence[User],
    period_points: dict[str, int] | None = None,
    department: str | None = None,
) -> list[LeaderboardRow]:
    """Rank ``users`` by points in scope.

    ``period_points`` of ``None`` ranks by all-time totals. The sort is stable,
    so ties keep the incoming order, and tied users share a position.
    """
    scoped = [user for user in users if department is None or user.department == department]

    def points_in_scope(user: User) -> int:
        if period_points is None:
            return user.points
        return period_points.get(user.id, 0)

    ordered = sorted(scoped, key=points_in_scope, reverse=True)
    rows: list[LeaderboardRow] = []
    for index, user in enumerate(ordered):
        points = points_in_scope(user)
        if rows and rows[-1].points == points:
            position = rows[-1].position
        else:
            position = index + 1
        rows.append(
            LeaderboardRow(
                position=position,
                user_id=user.id,
                full_name=user.full_name,
                department=user.department,
                role=user.role,
                points=points,
            )
        )
    return rows


def position_of(rows: Sequence[LeaderboardRow], user_id: str) -> int:
    """Return the user's position, or 0 when the user is not ranked in this scope."""
    return next((row.position for row in rows if row.user_id == user_id), 0)


def department_stats(users: Iterable[User]) -> list[DepartmentStats]:
    headcounts: Counter[str] = Counter()
    totals: Counter[str] = Counter()
    for user in users:
        headcounts[user.department] += 1
        totals[user.department] += user.points
    stats = [
        DepartmentStats(
            department=department,
            headcount=count,
            total_points=totals[department],
            average_points=math.floor(totals[department] / count + 0.5),
        )
        for department, count in headcounts.items()
    ]
    return sorted(stats, key=lambda entry: entry.average_points, reverse=True)


def level_progress(points: int) -> LevelProgress:
    next_level = math.ceil(points / LEVEL_SIZE_POINTS) * LEVEL_SIZE_POINTS
    return LevelProgress(
        points=points,
        next_level_points=next_level,
        progress_percent=(points % LEVEL_SIZE_POINTS) / LEVEL_SIZE_POINTS * 100,
    )


def portal_analytics(users: Sequence[User], ideas: Sequence[Idea], top_limit: int = 10) -> dict[str, object]:
    """Headline numbers for the management view."""
    status_counts = Counter(idea.status for idea in ideas)
    return {
        "total_ideas": len(ideas),
        "approved_ideas": status_counts.get("aprovado", 0),
        "pending_ideas": status_counts.get("pendente", 0),
        "rejected_ideas": status_counts.get("rejeitado", 0),
        "total_users": len(users),
        "active_users": sum(1 for user in users if user.points > 0),
        "department_headcounts": dict(Counter(user.department for user in users)),
        "top_users": build_leaderboard(users)[:top_limit],
    }
