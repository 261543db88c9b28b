"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from news_curator.repository import SQLiteRepository

EPISODE_TIME = datetime(2026, 2, 20, 12, 0, tzinfo=UTC)


@pytest.fixture()
def repo(tmp_path: Path) -> Iterator[SQLiteRepository]:
    repository = SQLiteRepository(tmp_path / "curation.db")
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


def count_rows(repository: SQLiteRepository, table: str) -> int:
    row = repository._connection.execute(f"SELECT COUNT(*) AS cnt FROM {table}").fetchone()
    assert row is not None
    return int(row["cnt"])
