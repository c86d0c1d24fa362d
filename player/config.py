"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool_env(name: str, default: bool) -> bool:
    """Parse boolean flag from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Backend
API_BASE_URL = os.environ.get(
    "API_BASE_URL", "https://igenius-back.demovoting.com/api"
).rstrip("/")
REQUEST_TIMEOUT_SECONDS = _parse_float_env("REQUEST_TIMEOUT_SECONDS", 15.0)

# Narration
NARRATION_BACKEND = os.environ.get("NARRATION_BACKEND", "gtts").strip().lower()
NARRATION_PLAYER = os.environ.get("NARRATION_PLAYER", "mpg123")
NARRATION_CACHE_DIR = Path(
    os.environ.get("NARRATION_CACHE_DIR", Path.cwd() / "data" / "narration")
)
NARRATION_LANG = os.environ.get("NARRATION_LANG", "en")
SPEAK_EQUALS = _parse_bool_env("SPEAK_EQUALS", False)
PREFERRED_VOICE_NAMES = ("Google", "Samantha", "Microsoft")
PLAYBACK_SPEEDS = (0.75, 1.0, 1.25, 1.5)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Playback timing (seconds)
DEFAULT_TIME_LIMIT = _parse_int_env("DEFAULT_TIME_LIMIT", 10)
AUTO_START_DELAY = 0.5
SEQUENCE_LEAD_IN = 0.5
COUNTDOWN_INTERVAL = 1.0
QUESTION_SETTLE_DELAY = 0.5
ADVANCE_SETTLE_DELAY = 0.2
SET_TRANSITION_PULSE = 0.5
COMPLETION_DELAY = 2.0
RESULTS_NAVIGATION_DELAY = 3.0

# Announcements
NEXT_QUESTION_CUE = "Next."
SESSION_COMPLETED_MESSAGE = "All questions completed. Well done!"
SINGLE_SET_LOAD_ERROR = "Failed to load questions. Please try again."
MULTI_SET_LOAD_ERROR = "Failed to load question sets. Please try again."
INVALID_PARAMETERS_ERROR = "Invalid parameters"
