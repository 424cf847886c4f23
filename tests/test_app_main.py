import importlib

from app_main import _determine_portal_url
from eurolytics.constants import network_constants


def test_portal_url_uses_bound_host():
    assert _determine_portal_url("127.0.0.1", 8000) == "http://127.0.0.1:8000/"


def test_default_host_is_loopback(monkeypatch):
    monkeypatch.delenv("EUROLYTICS_HOST", raising=False)
    try:
        assert importlib.reload(network_constants).DEFAULT_HOST == "127.0.0.1"
    finally:
        importlib.reload(network_constants)
