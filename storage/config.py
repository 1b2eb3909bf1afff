# storage/config.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv()


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


# -------------------------
# Persistence
# -------------------------
DB_PATH: Path = Path(_get_env("CRICKET_SCORER_DB_PATH", str(Path(__file__).parent / "cricket_scorer.db")))

# Snapshot slot the live scoring session reads and writes
MATCH_KEY: str = _get_env("CRICKET_SCORER_MATCH_KEY", "current")

# If 1, save/clear become no-ops (spectator view of a shared match)
STORAGE_DISABLED: bool = _get_env("CRICKET_SCORER_STORAGE_DISABLED", "0") == "1"


# -------------------------
# Match defaults
# -------------------------
DEFAULT_OVERS: int = _get_env_int("CRICKET_SCORER_DEFAULT_OVERS", 20)


# -------------------------
# API / logging
# -------------------------
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in _get_env("CRICKET_SCORER_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

LOG_LEVEL: str = _get_env("CRICKET_SCORER_LOG_LEVEL", "INFO").upper()


def validate_config() -> None:
    if DEFAULT_OVERS <= 0:
        raise RuntimeError("CRICKET_SCORER_DEFAULT_OVERS must be positive")

    if not MATCH_KEY:
        raise RuntimeError("CRICKET_SCORER_MATCH_KEY must not be empty")

    if not CORS_ORIGINS:
        raise RuntimeError("CRICKET_SCORER_CORS_ORIGINS must list at least one origin")
