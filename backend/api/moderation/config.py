# backend/api/moderation/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def load_env_once() -> None:
    """
    Loads .env from:
      1) ENV_PATH if provided
      2) backend/api/.env (project default)
      3) current working directory .env (fallback)

    Values already present in the process environment always win.
    """
    # 1) explicit ENV_PATH
    env_path = os.getenv("ENV_PATH")
    if env_path:
        p = Path(env_path)
        if p.exists():
            load_dotenv(p, override=False)
            return

    # 2) backend/api/.env (this file is backend/api/moderation/config.py)
    backend_api_dir = Path(__file__).resolve().parents[1]  # .../backend/api
    p2 = backend_api_dir / ".env"
    if p2.exists():
        load_dotenv(p2, override=False)
        return

    # 3) cwd .env
    p3 = Path.cwd() / ".env"
    if p3.exists():
        load_dotenv(p3, override=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")
    return max(value, minimum)


@dataclass(frozen=True)
class Settings:
    database_url: str | None
    log_level: str = "info"
    log_json: bool = True
    batch_max_workers: int = 1
    poll_interval_seconds: int = 30
    published_feed_limit: int = 50


def load_settings() -> Settings:
    load_env_once()
    return Settings(
        database_url=os.getenv("DATABASE_URL") or os.getenv("DB_URL"),
        log_level=(os.getenv("LOG_LEVEL") or "info").strip().lower(),
        log_json=_env_bool("LOG_JSON", True),
        batch_max_workers=_env_int("BATCH_MAX_WORKERS", 1),
        poll_interval_seconds=_env_int("MODERATION_POLL_INTERVAL_SECONDS", 30),
        published_feed_limit=_env_int("PUBLISHED_FEED_LIMIT", 50),
    )
