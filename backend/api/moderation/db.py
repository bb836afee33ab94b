# backend/api/moderation/db.py
from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from moderation.config import load_settings


_engine: Engine | None = None


def get_engine() -> Engine:
    global _engine

    if _engine is not None:
        return _engine

    settings = load_settings()
    if not settings.database_url:
        backend_api_dir = Path(__file__).resolve().parents[1]
        raise RuntimeError(
            "DATABASE_URL is not set. Ensure it exists in backend/api/.env or set ENV_PATH.\n"
            f"Tried: ENV_PATH, {backend_api_dir / '.env'}, {Path.cwd() / '.env'}"
        )

    _engine = create_engine(settings.database_url, pool_pre_ping=True, future=True)
    return _engine


def db_ping(engine: Engine) -> None:
    """Raises if the database cannot answer a trivial query."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
