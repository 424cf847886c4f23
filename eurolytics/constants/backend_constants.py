"""Settings for the hosted backend, read from the environment."""

import os
from pathlib import Path

SUPABASE_URL: str = os.getenv("EUROLYTICS_SUPABASE_URL", "")
SUPABASE_KEY: str = os.getenv("EUROLYTICS_SUPABASE_KEY", "")
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("EUROLYTICS_REQUEST_TIMEOUT", "10"))
DEMO_MODE: bool = os.getenv("EUROLYTICS_DEMO_MODE", "False").lower() == "true"

SESSION_FILE_PATH: Path = Path(
    os.getenv("EUROLYTICS_SESSION_FILE", str(Path.home() / ".eurolytics" / "session.json"))
)

VERIFY_PASSWORD_RPC: str = "verify_user_password"
CREATE_USER_RPC: str = "create_user_with_password"
