"""CLI entrypoint for news-curator."""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import rich_click as click

from news_curator import __version__
from news_curator.curation.controllers import (
    BackfillCommand,
    CurationCliController,
    EpisodeCommand,
    FilterCommand,
    PreferencesMutateCommand,
    PreferencesShowCommand,
    StatsCommand,
)
from news_curator.curation.errors import CurationError
from news_curator.curation.models import TimeRange

click.rich_click.USE_MARKDOWN = True
CONTROLLER = CurationCliController()

_db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)


@click.group()
@click.version_option(version=__version__, prog_name="news-curator")
def news_curator() -> None:
    """News curation and episode assembly CLI."""


@news_curator.group()
def prefs() -> None:
    """Relevance preference commands."""


@prefs.command("show")
@_db_path_option
@click.option("--user-id", required=True, help="User to inspect.")
def prefs_show(db_path: Path | None, user_id: str) -> None:
    """Show topics, keywords and relevance threshold."""

    _emit(lambda: CONTROLLER.show_preferences(PreferencesShowCommand(db_path, user_id)))


@prefs.command("set-threshold")
@_db_path_option
@click.option("--user-id", required=True)
@click.option(
    "--threshold",
    type=int,
    required=True,
    help="Relevance threshold between 0 and 100.",
)
def prefs_set_threshold(db_path: Path | None, user_id: str, threshold: int) -> None:
    """Update the relevance threshold."""

    _emit(
        lambda: CONTROLLER.set_threshold(
            PreferencesMutateCommand(db_path=db_path, user_id=user_id, threshold=threshold),
        ),
    )


@prefs.command("add-keyword")
@_db_path_option
@click.option("--user-id", required=True)
@click.argument("keyword")
def prefs_add_keyword(db_path: Path | None, user_id: str, keyword: str) -> None:
    """Append a custom keyword."""

    _emit(
        lambda: CONTROLLER.add_keyword(
            PreferencesMutateCommand(db_path=db_path, user_id=user_id, keyword=keyword),
        ),
    )


@prefs.command("remove-keyword")
@_db_path_option
@click.option("--user-id", required=True)
@click.argument("keyword")
def prefs_remove_keyword(db_path: Path | None, user_id: str, keyword: str) -> None:
    """Remove a custom keyword."""

    _emit(
        lambda: CONTROLLER.remove_keyword(
            PreferencesMutateCommand(db_path=db_path, user_id=user_id, keyword=keyword),
        ),
    )


@prefs.command("set-topics")
@_db_path_option
@click.option("--user-id", required=True)
@click.option("--topic", "topics", multiple=True, help="Topic id. Can be repeated.")
def prefs_set_topics(db_path: Path | None, user_id: str, topics: tuple[str, ...]) -> None:
    """Replace the selected topics; pass no --topic to clear them."""

    _emit(
        lambda: CONTROLLER.set_topics(
            PreferencesMutateCommand(db_path=db_path, user_id=user_id, topics=topics),
        ),
    )


@news_curator.group()
def curate() -> None:
    """Relevance filtering commands."""


@curate.command("filter")
@_db_path_option
@click.option("--user-id", required=True)
@click.option(
    "--hours",
    type=click.IntRange(min=1),
    default=24,
    show_default=True,
    help="Filter articles ingested within this many hours.",
)
@click.option(
    "--show-decisions/--no-show-decisions",
    default=False,
    show_default=True,
    help="Print one line per decided article.",
)
def curate_filter(db_path: Path | None, user_id: str, hours: int, show_decisions: bool) -> None:
    """Filter recently ingested processed articles and record statistics."""

    _emit(
        lambda: CONTROLLER.filter(
            FilterCommand(
                db_path=db_path,
                user_id=user_id,
                hours=hours,
                show_decisions=show_decisions,
            ),
        ),
    )


@news_curator.group()
def stats() -> None:
    """Filtering statistics commands."""


@stats.command("show")
@_db_path_option
@click.option("--user-id", required=True)
@click.option(
    "--time-range",
    type=click.Choice([item.value for item in TimeRange]),
    default=None,
    help="Named range; overrides --start/--end.",
)
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--end", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
def stats_show(
    db_path: Path | None,
    user_id: str,
    time_range: str | None,
    start: datetime | None,
    end: datetime | None,
) -> None:
    """Show summed inclusion statistics for a date range."""

    _emit(
        lambda: CONTROLLER.stats(
            StatsCommand(
                db_path=db_path,
                user_id=user_id,
                time_range=time_range,
                start=start.date() if start else None,
                end=end.date() if end else None,
            ),
        ),
    )


@news_curator.group()
def episodes() -> None:
    """Episode assembly commands."""


@episodes.command("window")
@_db_path_option
@click.option("--episode-id", required=True)
def episodes_window(db_path: Path | None, episode_id: str) -> None:
    """Preview the articles eligible for an episode without linking them."""

    _emit(lambda: CONTROLLER.window(EpisodeCommand(db_path=db_path, episode_id=episode_id)))


@episodes.command("link")
@_db_path_option
@click.option("--episode-id", required=True)
def episodes_link(db_path: Path | None, episode_id: str) -> None:
    """Select the episode's window and link the articles."""

    _emit(lambda: CONTROLLER.link(EpisodeCommand(db_path=db_path, episode_id=episode_id)))


@episodes.command("backfill")
@_db_path_option
@click.option("--user-id", default=None, help="Limit reconciliation to one user.")
@click.option(
    "--dry-run/--no-dry-run",
    default=False,
    show_default=True,
    help="Report what would be linked without writing.",
)
def episodes_backfill(db_path: Path | None, user_id: str | None, dry_run: bool) -> None:
    """Link articles to every episode that has none."""

    _emit(
        lambda: CONTROLLER.backfill(
            BackfillCommand(db_path=db_path, user_id=user_id, dry_run=dry_run),
        ),
    )


def _emit(run: Callable[[], list[str]]) -> None:
    try:
        lines = run()
    except CurationError as error:
        raise click.ClickException(str(error)) from error
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    news_curator()
