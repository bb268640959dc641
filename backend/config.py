"""Settings read from environment variables (and an optional .env file)."""
import os

from dotenv import load_dotenv

load_dotenv()

PLACEHOLDER_API_KEY = "your-api-key-here"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


DATABASE_PATH = os.getenv("DAYSTREAM_DB", "daystream.db")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
PLANNER_MODEL = os.getenv("DAYSTREAM_PLANNER_MODEL", "claude-sonnet-4-5")
PLANNER_MAX_TOKENS = _env_int("DAYSTREAM_PLANNER_MAX_TOKENS", 2048)
CORS_ORIGINS = _env_list("DAYSTREAM_CORS_ORIGINS", ["http://localhost:5173"])
LOG_LEVEL = os.getenv("DAYSTREAM_LOG_LEVEL", "INFO").upper()


def planner_configured(api_key: str | None = ANTHROPIC_API_KEY) -> bool:
    return bool(api_key) and api_key != PLACEHOLDER_API_KEY
