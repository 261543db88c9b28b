"""SQLite connection policy and UTC handling for stored timestamps."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import overload

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@overload
def to_storage(value: datetime) -> datetime: ...


@overload
def to_storage(value: None) -> None: ...


def to_storage(value: datetime | None) -> datetime | None:
    """Convert to the naive UTC form kept in SQLite; naive input is taken as UTC."""

    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


@overload
def from_storage(value: datetime) -> datetime: ...


@overload
def from_storage(value: None) -> None: ...


def from_storage(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def build_sqlite_engine(*, db_path: Path, busy_timeout_ms: int) -> Engine:
    """Engine for the curation store.

    Connections are not pooled, so each session sees the pragmas applied on
    connect and the file handle is released when the session ends.
    """

    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={
            "check_same_thread": False,
            "timeout": _timeout_seconds(busy_timeout_ms),
        },
        poolclass=NullPool,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: sqlite3.Connection, _record: object) -> None:
        apply_sqlite_policy(dbapi_connection, busy_timeout_ms=busy_timeout_ms)

    return engine


def open_raw_connection(*, db_path: Path, busy_timeout_ms: int) -> sqlite3.Connection:
    """Plain sqlite3 connection with the engine's pragmas and dict-like rows."""

    connection = sqlite3.connect(db_path, timeout=_timeout_seconds(busy_timeout_ms))
    try:
        apply_sqlite_policy(connection, busy_timeout_ms=busy_timeout_ms)
    except sqlite3.Error:
        connection.close()
        raise
    connection.row_factory = sqlite3.Row
    return connection


def apply_sqlite_policy(connection: sqlite3.Connection, *, busy_timeout_ms: int) -> None:
    cursor = connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute(f"PRAGMA busy_timeout = {max(1, busy_timeout_ms)}")
        # Cascades from users, feeds and episodes depend on this.
        cursor.execute("PRAGMA foreign_keys = ON")
    finally:
        cursor.close()


def _timeout_seconds(busy_timeout_ms: int) -> float:
    return max(1.0, busy_timeout_ms / 1000.0)
