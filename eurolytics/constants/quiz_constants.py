"""Quiz-related constants shared across the session and server layers."""

TIMER_TICK_SECONDS: float = 1.0
PERSIST_WORKER_COUNT: int = 1
