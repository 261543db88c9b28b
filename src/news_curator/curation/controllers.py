"""Controllers for curation CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

from news_curator.config import Settings
from news_curator.curation.models import (
    BackfillStatus,
    DateRange,
    FilteringAggregate,
    RelevancePreferences,
)
from news_curator.curation.pipeline import EpisodeLinkOrchestrator
from news_curator.curation.preferences import PreferencesService
from news_curator.curation.relevance import RelevanceFilter
from news_curator.curation.statistics import StatisticsRecorder, resolve_time_range
from news_curator.repository import SQLiteRepository


@dataclass(slots=True)
class PreferencesShowCommand:
    """CLI inputs for showing preferences."""

    db_path: Path | None
    user_id: str


@dataclass(slots=True)
class PreferencesMutateCommand:
    """CLI inputs for preference mutations."""

    db_path: Path | None
    user_id: str
    keyword: str | None = None
    threshold: int | None = None
    topics: tuple[str, ...] = ()


@dataclass(slots=True)
class FilterCommand:
    """CLI inputs for relevance filtering over recently ingested articles."""

    db_path: Path | None
    user_id: str
    hours: int
    show_decisions: bool


@dataclass(slots=True)
class StatsCommand:
    """CLI inputs for filtering statistics."""

    db_path: Path | None
    user_id: str
    time_range: str | None
    start: date | None
    end: date | None


@dataclass(slots=True)
class EpisodeCommand:
    """CLI inputs for single-episode commands."""

    db_path: Path | None
    episode_id: str


@dataclass(slots=True)
class BackfillCommand:
    """CLI inputs for episode backfill."""

    db_path: Path | None
    user_id: str | None
    dry_run: bool


class CurationCliController:
    """Coordinates curation command execution."""

    def show_preferences(self, command: PreferencesShowCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            preferences = _preferences_service(settings, repository).get(command.user_id)
        return _preference_lines(command.user_id, preferences)

    def set_threshold(self, command: PreferencesMutateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        if command.threshold is None:
            raise ValueError("threshold is required")
        with _repository(settings) as repository:
            preferences = _preferences_service(settings, repository).update_threshold(
                command.user_id,
                command.threshold,
            )
        return _preference_lines(command.user_id, preferences)

    def add_keyword(self, command: PreferencesMutateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            preferences = _preferences_service(settings, repository).add_keyword(
                command.user_id,
                command.keyword or "",
            )
        return _preference_lines(command.user_id, preferences)

    def remove_keyword(self, command: PreferencesMutateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            preferences = _preferences_service(settings, repository).remove_keyword(
                command.user_id,
                command.keyword or "",
            )
        return _preference_lines(command.user_id, preferences)

    def set_topics(self, command: PreferencesMutateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            preferences = _preferences_service(settings, repository).set_topics(
                command.user_id,
                command.topics,
            )
        return _preference_lines(command.user_id, preferences)

    def filter(self, command: FilterCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        until = datetime.now(tz=UTC)
        since = until - timedelta(hours=command.hours)
        with _repository(settings) as repository:
            relevance_filter = RelevanceFilter(
                repository=repository,
                recorder=StatisticsRecorder(repository),
            )
            result = relevance_filter.filter_recent(command.user_id, since=since, until=until)

        lines = [
            f"Window: {since.isoformat()} .. {until.isoformat()} (last {command.hours}h)",
            "Relevance filter: "
            f"user_id={command.user_id} included={result.included_count} "
            f"filtered_out={result.filtered_out_count} "
            f"unprocessed_skipped={result.skipped_unprocessed} "
            f"recorded={'yes' if result.recorded else 'no'}",
        ]
        if command.show_decisions:
            for decision in result.decisions:
                role = "IN " if decision.included else "OUT"
                matched = ",".join((*decision.matched_topics, *decision.matched_keywords)) or "-"
                lines.append(
                    f"  {role} article={decision.article_id} score={decision.score} "
                    f"reason={decision.reason.value} matched={matched}",
                )
        return lines

    def stats(self, command: StatsCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        if command.time_range is not None:
            date_range = resolve_time_range(command.time_range)
            label = command.time_range
        else:
            date_range = DateRange(start=command.start, end=command.end)
            label = "custom" if command.start or command.end else "all_time"
        with _repository(settings) as repository:
            aggregate = StatisticsRecorder(repository).aggregate(command.user_id, date_range)
        return _aggregate_lines(command.user_id, label, date_range, aggregate)

    def window(self, command: EpisodeCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            orchestrator = EpisodeLinkOrchestrator(settings=settings, repository=repository)
            episode, articles = orchestrator.selector.select_for_episode(command.episode_id)

        lines = [
            f"Episode: {episode.episode_id} user_id={episode.user_id} "
            f"created={episode.created_at.isoformat()}",
            f"Window: {settings.curation.window_hours}h cap={settings.curation.episode_article_cap}",
            f"Eligible articles: {len(articles)}",
        ]
        for index, article in enumerate(articles, start=1):
            published = article.published_at.isoformat() if article.published_at else "-"
            lines.append(
                f"  {index}. {article.title} article={article.article_id} "
                f"published={published} ingested={article.created_at.isoformat()}",
            )
        return lines

    def link(self, command: EpisodeCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            summary = EpisodeLinkOrchestrator(settings=settings, repository=repository).link(
                command.episode_id,
            )
        return [
            f"Episode linked: episode_id={summary.assembly.episode_id} "
            f"selected={len(summary.articles)} linked={summary.assembly.linked} "
            f"already_linked={summary.assembly.already_linked}",
        ]

    def backfill(self, command: BackfillCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            orchestrator = EpisodeLinkOrchestrator(settings=settings, repository=repository)
            report = orchestrator.reconciler.run(
                user_id=command.user_id,
                dry_run=command.dry_run,
            )

        if not report.outcomes:
            return ["All episodes already have articles linked."]

        lines = [
            f"Backfill completed: dry_run={'yes' if report.dry_run else 'no'} "
            f"episodes={len(report.outcomes)} episodes_linked={report.episodes_linked} "
            f"articles_linked={report.articles_linked}",
        ]
        for outcome in report.outcomes:
            if outcome.status == BackfillStatus.LINKED:
                lines.append(
                    f"  episode={outcome.episode_id} user_id={outcome.user_id} "
                    f"linked {outcome.linked} articles",
                )
                lines.extend(
                    f"    {index}. {title}" for index, title in enumerate(outcome.titles, start=1)
                )
            elif outcome.status == BackfillStatus.NO_ELIGIBLE_ARTICLES:
                lines.append(
                    f"  episode={outcome.episode_id} user_id={outcome.user_id} "
                    "no eligible articles found",
                )
            elif outcome.status == BackfillStatus.SKIPPED_STALE:
                lines.append(
                    f"  episode={outcome.episode_id} user_id={outcome.user_id} "
                    "skipped (selected articles kept disappearing)",
                )
            else:
                lines.append(f"  episode={outcome.episode_id} skipped (episode no longer exists)")
        return lines


@contextmanager
def _repository(settings: Settings) -> Iterator[SQLiteRepository]:
    repository = SQLiteRepository(
        settings.db_path,
        busy_timeout_ms=settings.storage.busy_timeout_ms,
    )
    try:
        repository.init_schema()
        yield repository
    finally:
        repository.close()


def _preferences_service(settings: Settings, repository: SQLiteRepository) -> PreferencesService:
    return PreferencesService(
        repository=repository,
        default_threshold=settings.curation.default_relevance_threshold,
    )


def _preference_lines(user_id: str, preferences: RelevancePreferences) -> list[str]:
    topics = ", ".join(sorted(preferences.selected_topics)) or "-"
    keywords = ", ".join(preferences.custom_keywords) or "-"
    lines = [
        f"User: {user_id}",
        f"Topics: {topics}",
        f"Keywords: {keywords}",
        f"Relevance threshold: {preferences.relevance_threshold}",
    ]
    if not preferences.is_configured:
        lines.append("No topics or keywords configured: all processed articles are included.")
    return lines


def _aggregate_lines(
    user_id: str,
    label: str,
    date_range: DateRange,
    aggregate: FilteringAggregate,
) -> list[str]:
    start = date_range.start.isoformat() if date_range.start else "-"
    end = date_range.end.isoformat() if date_range.end else "-"
    return [
        f"User: {user_id} time_range={label} ({start} .. {end})",
        f"Total articles: {aggregate.total_articles}",
        f"Included: {aggregate.included_articles}",
        f"Filtered out: {aggregate.filtered_out_articles}",
        f"Inclusion: {aggregate.inclusion_percentage:.1f}%",
    ]
