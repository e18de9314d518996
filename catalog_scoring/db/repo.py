# =============================================
# File: catalog_scoring/db/repo.py
# Purpose: DB repository bootstrap: engine from DB_URL (default SQLite), init_db() for tables,
#          and a startup helper that waits for the database with retries.
# =============================================

from __future__ import annotations
import os
import time
from functools import lru_cache

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from ..utils.envcfg import to_positive_int
from . import models  # noqa: F401  (register tables on SQLModel.metadata)

DEFAULT_DB_URL = "sqlite:///./catalog.db"


def make_engine(url: str | None = None) -> Engine:
    url = url or os.getenv("DB_URL", DEFAULT_DB_URL)
    if url.startswith("postgresql"):
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            pool_size=to_positive_int(os.getenv("PG_POOL_MAX"), 10),
            pool_timeout=max(1, to_positive_int(os.getenv("PG_CONN_TIMEOUT_MS"), 30000) // 1000),
        )
    if url.startswith("sqlite"):
        # FastAPI runs sync routes in a threadpool
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return make_engine()


def init_db(engine: Engine | None = None) -> None:
    SQLModel.metadata.create_all(engine or get_engine())


def wait_for_connection(engine: Engine, retries: int = 5, delay_ms: int = 5000) -> None:
    """Probe the database with SELECT 1 until it answers; re-raise the last error after `retries` attempts."""
    last_err: Exception | None = None
    for attempt in range(1, max(1, retries) + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except Exception as e:
            last_err = e
            logger.warning(f"[db] connection attempt {attempt} failed: {e}")
            if attempt < retries:
                time.sleep(max(0, delay_ms) / 1000)
    raise last_err if last_err else RuntimeError("Failed to connect to DB")
