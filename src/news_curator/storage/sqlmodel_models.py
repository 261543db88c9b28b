"""SQLModel ORM tables for curation storage."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    user_id: str = Field(primary_key=True)
    email: str
    tier: str = Field(default="free")
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class UserPreferencesRow(SQLModel, table=True):
    __tablename__ = "user_preferences"  # type: ignore[bad-override]
    __table_args__ = (
        CheckConstraint(
            "relevance_threshold >= 0 AND relevance_threshold <= 100",
            name="ck_user_preferences_threshold_range",
        ),
    )

    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    selected_topics_json: str = Field(
        default="[]",
        sa_column=Column(Text, nullable=False, server_default="[]"),
    )
    custom_keywords_json: str = Field(
        default="[]",
        sa_column=Column(Text, nullable=False, server_default="[]"),
    )
    relevance_threshold: int = 80
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Feed(SQLModel, table=True):
    __tablename__ = "feeds"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("user_id", "url", name="uq_feeds_user_url"),)

    feed_id: str = Field(primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    url: str
    name: str | None = None
    category: str | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Article(SQLModel, table=True):
    __tablename__ = "articles"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("feed_id", "title", name="uq_articles_feed_title"),)

    article_id: str = Field(primary_key=True)
    feed_id: str = Field(
        sa_column=Column(
            ForeignKey("feeds.feed_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    title: str
    published_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    summary: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class Episode(SQLModel, table=True):
    __tablename__ = "episodes"  # type: ignore[bad-override]

    episode_id: str = Field(primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    script_text: str = Field(sa_column=Column(Text, nullable=False))
    audio_url: str
    duration_minutes: int
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class EpisodeArticle(SQLModel, table=True):
    __tablename__ = "episode_articles"  # type: ignore[bad-override]
    __table_args__ = (
        PrimaryKeyConstraint("episode_id", "article_id", name="pk_episode_articles"),
    )

    episode_id: str = Field(
        sa_column=Column(
            String,
            ForeignKey("episodes.episode_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    article_id: str = Field(
        sa_column=Column(
            String,
            ForeignKey("articles.article_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )


class FilteringStatistics(SQLModel, table=True):
    __tablename__ = "filtering_statistics"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_filtering_statistics_user_date", "user_id", "stat_date"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    stat_date: date = Field(sa_column=Column(Date, nullable=False))
    included_articles: int
    filtered_out_articles: int
    recorded_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
