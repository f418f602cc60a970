"""Application configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()


def _positive_int(name: str, default: int) -> int:
    value = int(os.getenv(name, str(default)))
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


def _positive_float(name: str, default: float) -> float:
    value = float(os.getenv(name, str(default)))
    if value <= 0:
        raise ValueError(f"{name} must be a positive number, got {value}")
    return value


# HTTP control surface
SERVER_HOST = os.getenv("BROWSER_SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("BROWSER_SERVER_PORT", "3000"))
SERVER_URL = f"http://{SERVER_HOST}:{SERVER_PORT}"

# Sessions
MAX_SESSIONS = _positive_int("MAX_SESSIONS", 5)
SESSION_TIMEOUT = _positive_float("SESSION_TIMEOUT_SECONDS", 300)  # 5 minutes
CLEANUP_INTERVAL = _positive_float("CLEANUP_INTERVAL_SECONDS", 60)  # 1 minute

# Browser
BROWSER_HEADLESS = os.getenv("BROWSER_HEADLESS", "true").lower() == "true"
BROWSER_EXECUTABLE_PATH = os.getenv("BROWSER_EXECUTABLE_PATH") or None
NAVIGATION_TIMEOUT_MS = _positive_int("NAVIGATION_TIMEOUT_MS", 30000)
SELECTOR_TIMEOUT_MS = _positive_int("SELECTOR_TIMEOUT_MS", 10000)

# Responses
SCREENSHOT_MAX_WIDTH = _positive_int("SCREENSHOT_MAX_WIDTH", 800)
SCREENSHOT_MAX_HEIGHT = _positive_int("SCREENSHOT_MAX_HEIGHT", 600)
SCREENSHOT_QUALITY = _positive_int("SCREENSHOT_QUALITY", 60)
CONTENT_MAX_CHARS = _positive_int("CONTENT_MAX_CHARS", 10000)
