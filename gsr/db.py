from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .settings import settings


LEVELS = {"DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"}


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a bind-mounted directory (Docker creates one
    when the mounted file does not exist yet), the DB file goes inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "gsr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    # Both loops write from worker threads; every write opens its own connection.
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              server TEXT,
              message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS rotations (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              server TEXT NOT NULL,
              server_index TEXT NOT NULL,
              scenario_id TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS restarts (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              container TEXT NOT NULL,
              reason TEXT NOT NULL, -- stale|hang
              delta_s REAL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_rotations_server ON rotations(server);
            """
        )


def log_event(level: str, message: str, server: str | None = None) -> None:
    level = level.upper()
    if level not in LEVELS:
        raise ValueError(f"Unknown event level {level!r}")
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, server, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level, server, message),
        )


def try_log_event(level: str, message: str, server: str | None = None) -> bool:
    """``log_event`` for callers that already changed state and must not fail now."""
    try:
        log_event(level, message, server=server)
        return True
    except sqlite3.Error:
        return False


def record_rotation(server: str, server_index: str, scenario_id: str) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO rotations (ts, server, server_index, scenario_id) VALUES (?, ?, ?, ?)",
            (utc_now(), server, server_index, scenario_id),
        )


def record_restart(container: str, reason: str, delta_s: float | None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO restarts (ts, container, reason, delta_s) VALUES (?, ?, ?, ?)",
            (utc_now(), container, reason, delta_s),
        )


def _latest(table: str, limit: int) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute(f"SELECT * FROM {table} ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    return _latest("events", limit)


def latest_rotations(limit: int = 100) -> list[dict[str, Any]]:
    return _latest("rotations", limit)


def latest_restarts(limit: int = 100) -> list[dict[str, Any]]:
    return _latest("restarts", limit)
