"""Point rewards, ranking scopes and badge thresholds."""

IDEA_APPROVAL_POINTS: int = 100
PROJECT_JOIN_POINTS: int = 20
DEFAULT_PROJECT_CAPACITY: int = 8
LEVEL_SIZE_POINTS: int = 500

RANKING_FETCH_LIMIT: int = 50
LEADERBOARD_SIZE: int = 10
WEEKLY_WINDOW_DAYS: int = 7
MONTHLY_WINDOW_DAYS: int = 30

POINTS_REFRESH_INTERVAL_SECONDS: float = 8.0

FIRST_IDEA_THRESHOLD: int = 1
QUIZ_MASTER_THRESHOLD: int = 3
INNOVATOR_THRESHOLD: int = 3
ENGAGED_THRESHOLD: int = 10
LEADER_MAX_POSITION: int = 5

REVIEWER_ROLES: frozenset[str] = frozenset({"gestor", "executivo"})
