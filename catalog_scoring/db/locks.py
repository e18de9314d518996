# =============================================
# File: catalog_scoring/db/locks.py
# Purpose: Non-blocking, session-scoped advisory locks for recompute runs
# =============================================
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

# Dialects without advisory locks (SQLite in dev/tests) use a per-process registry.
# Only covers one process; multi-instance deployments run on PostgreSQL.
_local_locks: Dict[int, threading.Lock] = {}
_registry_lock = threading.Lock()


def _supports_advisory(conn: Connection) -> bool:
    return conn.dialect.name == "postgresql"


def _local_lock(key: int) -> threading.Lock:
    with _registry_lock:
        return _local_locks.setdefault(key, threading.Lock())


def _acquire(conn: Connection, key: int) -> bool:
    if not _supports_advisory(conn):
        return _local_lock(key).acquire(blocking=False)
    locked = conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": key}).scalar()
    # session-level lock survives the end of this implicit transaction
    conn.commit()
    return bool(locked)


def _release(conn: Connection, key: int) -> None:
    if not _supports_advisory(conn):
        _local_lock(key).release()
        return
    try:
        if conn.in_transaction():
            conn.rollback()
        conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
        conn.commit()
    except SQLAlchemyError as e:
        # closing the connection drops session-level locks anyway
        logger.warning(f"[lock] unlock failed for key={key}: {e}")
        conn.invalidate()


@contextmanager
def try_advisory_lock(conn: Connection, key: int) -> Iterator[bool]:
    """
    Try to take lock `key` on this connection without waiting.
    Yields True when held; the lock is released on every exit path.
    """
    locked = _acquire(conn, key)
    try:
        yield locked
    finally:
        if locked:
            _release(conn, key)
