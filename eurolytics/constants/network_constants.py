"""Network configuration constants for the portal web server."""

import os

# One signed-in session per process; loopback unless overridden.
DEFAULT_HOST: str = os.getenv("EUROLYTICS_HOST", "127.0.0.1")
DEFAULT_PORT: int = int(os.getenv("EUROLYTICS_PORT", "8000"))
