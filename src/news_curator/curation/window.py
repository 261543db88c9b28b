"""Candidate selection from a trailing window before an episode's creation time."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from news_curator.config import CurationSettings
from news_curator.curation.errors import ValidationError, not_found
from news_curator.curation.models import EpisodeRef, WindowArticle, WindowParams
from news_curator.repository import SQLiteRepository


def window_params_from_settings(settings: CurationSettings) -> WindowParams:
    return WindowParams(window_hours=settings.window_hours, cap=settings.episode_article_cap)


def validate_window_params(params: WindowParams) -> None:
    if params.window_hours <= 0:
        raise ValidationError(f"Window length must be > 0 hours, got {params.window_hours}.")
    if params.cap <= 0:
        raise ValidationError(f"Episode article cap must be > 0, got {params.cap}.")


class EpisodeWindowSelector:
    """Selects the top-N processed articles ingested within ``[T - window, T]``.

    Ordering is published time descending (missing published time last), then
    ingestion time descending, then article id, so truncation at the cap is
    reproducible.
    """

    def __init__(self, *, repository: SQLiteRepository, params: WindowParams) -> None:
        validate_window_params(params)
        self.repository = repository
        self.params = params

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.params.window_hours)

    def select(self, user_id: str, episode_created_at: datetime) -> list[WindowArticle]:
        until = _as_utc(episode_created_at)
        return self.repository.list_window_articles(
            user_id=user_id,
            since=until - self.window,
            until=until,
            limit=self.params.cap,
        )

    def select_for_episode(self, episode_id: str) -> tuple[EpisodeRef, list[WindowArticle]]:
        """Resolve the episode's owner and creation time, then select.

        Raises NotFoundError when the episode does not exist.
        """

        episode = self.repository.get_episode(episode_id)
        if episode is None:
            raise not_found("Episode", episode_id)
        return episode, self.select(episode.user_id, episode.created_at)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
