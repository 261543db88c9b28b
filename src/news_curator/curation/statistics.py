"""Append-only filtering statistics and their read-time aggregation."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta

from news_curator.curation.errors import ValidationError
from news_curator.curation.models import DateRange, FilteringAggregate, TimeRange
from news_curator.repository import SQLiteRepository

logger = logging.getLogger(__name__)

_TIME_RANGE_DAYS = {
    TimeRange.LAST_7_DAYS: 7,
    TimeRange.LAST_30_DAYS: 30,
}


class StatisticsRecorder:
    """Records one row per filtering event and sums rows at query time.

    Rows are never merged: recording the same user and date twice keeps both
    rows, and ``aggregate`` adds them up.
    """

    def __init__(self, repository: SQLiteRepository) -> None:
        self.repository = repository

    def record(self, user_id: str, stat_date: date, included: int, filtered_out: int) -> int:
        if included < 0 or filtered_out < 0:
            raise ValidationError(
                f"Statistics counts must be >= 0 (included={included}, "
                f"filtered_out={filtered_out}).",
            )
        row_id = self.repository.append_filtering_statistics(
            user_id=user_id,
            stat_date=stat_date,
            included=included,
            filtered_out=filtered_out,
        )
        logger.debug(
            "Filtering statistics recorded (user_id=%s date=%s included=%d filtered_out=%d)",
            user_id,
            stat_date.isoformat(),
            included,
            filtered_out,
        )
        return row_id

    def aggregate(self, user_id: str, date_range: DateRange) -> FilteringAggregate:
        if (
            date_range.start is not None
            and date_range.end is not None
            and date_range.start > date_range.end
        ):
            raise ValidationError(
                f"Invalid date range: {date_range.start.isoformat()} > "
                f"{date_range.end.isoformat()}",
            )
        included, filtered_out = self.repository.sum_filtering_statistics(
            user_id=user_id,
            start=date_range.start,
            end=date_range.end,
        )
        return FilteringAggregate(
            total_articles=included + filtered_out,
            included_articles=included,
            filtered_out_articles=filtered_out,
            inclusion_percentage=inclusion_percentage(included, filtered_out),
        )

    def aggregate_time_range(
        self,
        user_id: str,
        time_range: TimeRange | str,
        *,
        today: date | None = None,
    ) -> FilteringAggregate:
        return self.aggregate(user_id, resolve_time_range(time_range, today=today))


def inclusion_percentage(included: int, filtered_out: int) -> float:
    """Share of included articles, rounded to one decimal; 0.0 when nothing was filtered."""

    total = included + filtered_out
    if total == 0:
        return 0.0
    return round(included / total * 100, 1)


def resolve_time_range(time_range: TimeRange | str, *, today: date | None = None) -> DateRange:
    try:
        resolved = TimeRange(time_range)
    except ValueError as error:
        allowed = ", ".join(item.value for item in TimeRange)
        raise ValidationError(
            f"Invalid time range {time_range!r}. Must be one of: {allowed}",
        ) from error

    if resolved == TimeRange.ALL_TIME:
        return DateRange()
    end = today or datetime.now(tz=UTC).date()
    return DateRange(start=end - timedelta(days=_TIME_RANGE_DAYS[resolved]), end=end)
