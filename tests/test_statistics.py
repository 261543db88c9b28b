from __future__ import annotations

from datetime import date

import allure
import pytest
from conftest import count_rows

from news_curator.curation.errors import NotFoundError, ValidationError
from news_curator.curation.models import DateRange, TimeRange
from news_curator.curation.statistics import (
    StatisticsRecorder,
    inclusion_percentage,
    resolve_time_range,
)
from news_curator.repository import SQLiteRepository

pytestmark = [
    allure.epic("Relevance Filtering"),
    allure.feature("Filtering Statistics"),
]


def test_recording_same_day_twice_keeps_both_rows(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")
    recorder = StatisticsRecorder(repo)

    first = recorder.record(user_id, date(2026, 2, 20), 5, 2)
    second = recorder.record(user_id, date(2026, 2, 20), 5, 2)

    assert first != second
    assert count_rows(repo, "filtering_statistics") == 2
    aggregate = recorder.aggregate(user_id, DateRange())
    assert aggregate.total_articles == 14
    assert aggregate.included_articles == 10
    assert aggregate.filtered_out_articles == 4
    assert aggregate.inclusion_percentage == 71.4


def test_aggregate_without_rows_is_zero(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")

    aggregate = StatisticsRecorder(repo).aggregate(user_id, DateRange())

    assert aggregate.total_articles == 0
    assert aggregate.inclusion_percentage == 0.0


def test_aggregate_with_only_zero_counts_reports_zero_percent(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")
    recorder = StatisticsRecorder(repo)
    recorder.record(user_id, date(2026, 2, 20), 0, 0)

    assert recorder.aggregate(user_id, DateRange()).inclusion_percentage == 0.0


def test_aggregate_respects_inclusive_date_range(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")
    recorder = StatisticsRecorder(repo)
    recorder.record(user_id, date(2026, 2, 1), 1, 0)
    recorder.record(user_id, date(2026, 2, 10), 2, 1)
    recorder.record(user_id, date(2026, 2, 20), 4, 4)

    aggregate = recorder.aggregate(
        user_id,
        DateRange(start=date(2026, 2, 10), end=date(2026, 2, 20)),
    )

    assert aggregate.included_articles == 6
    assert aggregate.filtered_out_articles == 5
    assert recorder.aggregate(user_id, DateRange(end=date(2026, 2, 1))).total_articles == 1


def test_aggregate_is_scoped_to_user(repo: SQLiteRepository) -> None:
    first = repo.create_user("a@example.com")
    second = repo.create_user("b@example.com")
    recorder = StatisticsRecorder(repo)
    recorder.record(first, date(2026, 2, 20), 3, 1)

    assert recorder.aggregate(second, DateRange()).total_articles == 0


def test_aggregate_time_range_uses_trailing_days(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")
    recorder = StatisticsRecorder(repo)
    recorder.record(user_id, date(2026, 2, 20), 3, 1)
    recorder.record(user_id, date(2026, 2, 1), 1, 1)
    recorder.record(user_id, date(2025, 1, 1), 1, 0)

    today = date(2026, 2, 21)
    last_week = recorder.aggregate_time_range(user_id, TimeRange.LAST_7_DAYS, today=today)
    last_month = recorder.aggregate_time_range(user_id, "last_30_days", today=today)
    all_time = recorder.aggregate_time_range(user_id, TimeRange.ALL_TIME, today=today)

    assert last_week.total_articles == 4
    assert last_month.total_articles == 6
    assert all_time.total_articles == 7


def test_resolve_time_range_bounds() -> None:
    today = date(2026, 2, 21)

    assert resolve_time_range("last_7_days", today=today) == DateRange(
        start=date(2026, 2, 14),
        end=today,
    )
    assert resolve_time_range(TimeRange.ALL_TIME, today=today) == DateRange()


def test_resolve_time_range_rejects_unknown_name() -> None:
    with pytest.raises(ValidationError, match="Invalid time range"):
        resolve_time_range("last_year")


def test_aggregate_rejects_inverted_range(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")

    with pytest.raises(ValidationError, match="Invalid date range"):
        StatisticsRecorder(repo).aggregate(
            user_id,
            DateRange(start=date(2026, 2, 20), end=date(2026, 2, 1)),
        )


def test_unknown_user_is_not_found(repo: SQLiteRepository) -> None:
    recorder = StatisticsRecorder(repo)

    with pytest.raises(NotFoundError, match="User not found"):
        recorder.aggregate("missing-user", DateRange())
    with pytest.raises(NotFoundError):
        recorder.record("missing-user", date(2026, 2, 20), 1, 1)


def test_negative_counts_are_rejected(repo: SQLiteRepository) -> None:
    user_id = repo.create_user("reader@example.com")

    with pytest.raises(ValidationError):
        StatisticsRecorder(repo).record(user_id, date(2026, 2, 20), -1, 0)
    assert count_rows(repo, "filtering_statistics") == 0


@pytest.mark.parametrize(
    ("included", "filtered_out", "expected"),
    [(0, 0, 0.0), (1, 2, 33.3), (2, 1, 66.7), (3, 0, 100.0)],
)
def test_inclusion_percentage_rounding(included: int, filtered_out: int, expected: float) -> None:
    assert inclusion_percentage(included, filtered_out) == expected
