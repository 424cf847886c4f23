"""Application entry point for the Eurolytics portal."""

from __future__ import annotations

import socket

from eurolytics.constants.backend_constants import (
    DEMO_MODE,
    REQUEST_TIMEOUT_SECONDS,
    SESSION_FILE_PATH,
    SUPABASE_KEY,
    SUPABASE_URL,
)
from eurolytics.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from eurolytics.core.portal_manager import PortalManager
from eurolytics.core.session_context import SessionContext
from eurolytics.gateway.base import DataGateway
from eurolytics.gateway.demo_gateway import DemoGateway
from eurolytics.gateway.supabase_gateway import SupabaseGateway
from eurolytics.server.api_server import start_api_server
from eurolytics.utils.logging_config import configure_logging


def _determine_portal_url(host: str, port: int) -> str:
    """Best-effort determination of the local IP for the portal URL."""
    if host != "0.0.0.0":
        return f"http://{host}:{port}/"
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def build_gateway() -> DataGateway:
    if DEMO_MODE or not (SUPABASE_URL and SUPABASE_KEY):
        return DemoGateway()
    return SupabaseGateway(SUPABASE_URL, SUPABASE_KEY, timeout=REQUEST_TIMEOUT_SECONDS)


def main() -> None:
    """Initialize logging, restore the session and serve the portal until interrupted."""
    logger = configure_logging()
    logger.info("Starting Eurolytics portal...")

    gateway = build_gateway()
    if isinstance(gateway, DemoGateway):
        logger.warning("Backend not configured or demo mode on; serving in-memory demo data")

    portal_manager = PortalManager(gateway, SessionContext(SESSION_FILE_PATH))
    restored = portal_manager.restore_session()
    if restored is not None:
        logger.info("Restored session for %s", restored.email)
    portal_manager.start_points_monitor()

    server_thread = start_api_server(portal_manager=portal_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    logger.info("Portal available at %s", _determine_portal_url(DEFAULT_HOST, DEFAULT_PORT))
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        portal_manager.shutdown()


if __name__ == "__main__":
    main()
