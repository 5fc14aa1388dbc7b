# War Tracker Centralized Configuration
# Values come from the environment (a local .env file is loaded first).
import os

from dotenv import load_dotenv

from exceptions import InvalidConfigError, MissingConfigError

load_dotenv()


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfigError(f"{name} must be an integer, got {raw!r}")


def _env_float(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfigError(f"{name} must be a number, got {raw!r}")


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///wartracker.db")

# War log API
WAR_API_URL = os.getenv("WAR_API_URL", "https://api.clashroyale.com/v1")
WAR_API_TOKEN = os.getenv("WAR_API_TOKEN")
WAR_API_TIMEOUT = _env_int("WAR_API_TIMEOUT", 30)          # seconds per request
WAR_API_MAX_RETRIES = _env_int("WAR_API_MAX_RETRIES", 3)   # attempts on 429/5xx/connection errors
WAR_API_BACKOFF = _env_float("WAR_API_BACKOFF", 1.0)       # base seconds, doubled per attempt
WAR_LOG_CACHE_TTL = _env_int("WAR_LOG_CACHE_TTL", 300)     # reuse a fetched log for 5 minutes

# Pipeline
HIGH_TIER_TROPHY_THRESHOLD = _env_int("HIGH_TIER_TROPHY_THRESHOLD", 5000)
AVERAGE_WINDOW_WEEKS = _env_int("AVERAGE_WINDOW_WEEKS", 4)
MIN_AVERAGE_WINDOW_WEEKS = 1
MAX_AVERAGE_WINDOW_WEEKS = 10
WAR_HISTORY_WINDOW = _env_int("WAR_HISTORY_WINDOW", 1)     # most recent period only
MAX_CONCURRENT_CLANS = _env_int("MAX_CONCURRENT_CLANS", 1)

# Roster
ROSTER_CLAN_CAPACITY = _env_int("ROSTER_CLAN_CAPACITY", 50)
ROSTER_TIERS = tuple(
    t.strip().lower() for t in os.getenv("ROSTER_TIERS", "standard").split(",") if t.strip()
)
# The working roster lives under a placeholder period and is copied to the
# real period by the weekly update
CURRENT_ROSTER_SEASON = _env_int("CURRENT_ROSTER_SEASON", 999)
CURRENT_ROSTER_WEEK = _env_int("CURRENT_ROSTER_WEEK", 999)

# Manual corrections
MAX_FAME_PER_WEEK = 3600
MAX_DECKS_PER_WEEK = 16
MAX_BOAT_ATTACKS_PER_WEEK = 16
PLAYER_NOTES_MAX_LENGTH = 100

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "wartracker.log")
LOG_MAX_BYTES = _env_int("LOG_MAX_BYTES", 5 * 1024 * 1024)
LOG_BACKUP_COUNT = _env_int("LOG_BACKUP_COUNT", 5)


def require_api_token():
    """Return the API token or raise MissingConfigError"""
    if not WAR_API_TOKEN:
        raise MissingConfigError("WAR_API_TOKEN not found in environment")
    return WAR_API_TOKEN


def validate_settings():
    """Sanity-check values that have a restricted range"""
    if not MIN_AVERAGE_WINDOW_WEEKS <= AVERAGE_WINDOW_WEEKS <= MAX_AVERAGE_WINDOW_WEEKS:
        raise InvalidConfigError(
            f"AVERAGE_WINDOW_WEEKS must be between {MIN_AVERAGE_WINDOW_WEEKS} and {MAX_AVERAGE_WINDOW_WEEKS}"
        )
    if WAR_HISTORY_WINDOW < 1:
        raise InvalidConfigError("WAR_HISTORY_WINDOW must be at least 1")
    if ROSTER_CLAN_CAPACITY < 1:
        raise InvalidConfigError("ROSTER_CLAN_CAPACITY must be at least 1")
    if MAX_CONCURRENT_CLANS < 1:
        raise InvalidConfigError("MAX_CONCURRENT_CLANS must be at least 1")
    unknown = [t for t in ROSTER_TIERS if t not in ("high", "standard")]
    if unknown or not ROSTER_TIERS:
        raise InvalidConfigError(f"ROSTER_TIERS must list 'high' and/or 'standard', got {ROSTER_TIERS}")
