"""Runtime configuration for the curation and episode assembly pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from news_curator.curation.errors import ValidationError

DEFAULT_WINDOW_HOURS = 48
DEFAULT_EPISODE_ARTICLE_CAP = 10
DEFAULT_RELEVANCE_THRESHOLD = 80


@dataclass(slots=True)
class CurationSettings:
    """Episode window and relevance settings."""

    window_hours: int = DEFAULT_WINDOW_HOURS
    episode_article_cap: int = DEFAULT_EPISODE_ARTICLE_CAP
    default_relevance_threshold: int = DEFAULT_RELEVANCE_THRESHOLD


@dataclass(slots=True)
class StorageSettings:
    """SQLite connection policy."""

    busy_timeout_ms: int = 5_000


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".news_curator.db")
    curation: CurationSettings = field(default_factory=CurationSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("NEWS_CURATOR_DB_PATH", ".news_curator.db")),
            curation=CurationSettings(
                window_hours=_env_int("NEWS_CURATOR_WINDOW_HOURS", DEFAULT_WINDOW_HOURS),
                episode_article_cap=_env_int(
                    "NEWS_CURATOR_EPISODE_ARTICLE_CAP",
                    DEFAULT_EPISODE_ARTICLE_CAP,
                ),
                default_relevance_threshold=_env_int(
                    "NEWS_CURATOR_DEFAULT_RELEVANCE_THRESHOLD",
                    DEFAULT_RELEVANCE_THRESHOLD,
                ),
            ),
            storage=StorageSettings(
                busy_timeout_ms=_env_int("NEWS_CURATOR_SQLITE_BUSY_TIMEOUT_MS", 5_000),
            ),
        )

    def validate(self) -> None:
        """Raise validation error if curation parameters are out of range."""

        if self.curation.window_hours <= 0:
            raise ValidationError("NEWS_CURATOR_WINDOW_HOURS must be > 0.")
        if self.curation.episode_article_cap <= 0:
            raise ValidationError("NEWS_CURATOR_EPISODE_ARTICLE_CAP must be > 0.")
        if not 0 <= self.curation.default_relevance_threshold <= 100:
            raise ValidationError(
                "NEWS_CURATOR_DEFAULT_RELEVANCE_THRESHOLD must be between 0 and 100.",
            )
        if self.storage.busy_timeout_ms <= 0:
            raise ValidationError("NEWS_CURATOR_SQLITE_BUSY_TIMEOUT_MS must be > 0.")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise ValidationError(f"Invalid integer value for {name}: {raw!r}") from error
