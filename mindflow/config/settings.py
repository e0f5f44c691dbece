"""Application-wide configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

# Redis (local key-value store backing every collection)
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
STORE_KEY_PREFIX: str = os.getenv("MINDFLOW_KEY_PREFIX", "")

# ── Metrics Engine ───────────────────────────────────────────────────────

# Behavioral profile used when the user has not picked one
DEFAULT_PROFILE: str = os.getenv("MINDFLOW_DEFAULT_PROFILE", "Speedsters")

# Streak walk-back window and weekly focus curve width (days)
STREAK_LOOKBACK_DAYS: int = int(os.getenv("STREAK_LOOKBACK_DAYS", "30"))
WEEKLY_WINDOW_DAYS: int = int(os.getenv("WEEKLY_WINDOW_DAYS", "7"))

# ── Focus Timer ──────────────────────────────────────────────────────────

FOCUS_TICK_SECONDS: float = float(os.getenv("FOCUS_TICK_SECONDS", "1"))
DEFAULT_FOCUS_MODE: str = os.getenv("DEFAULT_FOCUS_MODE", "pomodoro")
MANUAL_FOCUS_MINUTES: int = int(os.getenv("MANUAL_FOCUS_MINUTES", "25"))

# ── Server Configuration ─────────────────────────────────────────────────

SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
