"""Constants used across the scanlink package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "scanlink"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / f".{APP_NAME}" / DEFAULT_CONFIG_FILENAME
DEFAULT_SESSION_PATH = Path.home() / f".{APP_NAME}" / "session.json"
DEFAULT_LOG_PATH = Path.home() / f".{APP_NAME}" / "logs" / f"{APP_NAME}.log"

DEFAULT_BACKEND_URL = "http://localhost:8000"

PROCESS_NEXT_PATH = "/api/process-next"
LOGIN_PATH = "/api/auth/login"
SIGNUP_PATH = "/api/auth/signup"
LOGOUT_PATH = "/api/auth/logout"
CURRENT_USER_PATH = "/api/auth/me"
ORDERS_PATH = "/api/orders"
DEFAULT_STREAM_PATH = "/ws/orders"

STATUS_DELIVERED = "DELIVERED"
