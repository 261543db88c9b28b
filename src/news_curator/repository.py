"""SQLModel-backed storage facade for the curation pipeline."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from uuid import uuid4

from sqlalchemy import exists, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, col, delete, select

from news_curator.curation.errors import StorageUnavailableError, ValidationError, not_found
from news_curator.curation.models import (
    CandidateArticle,
    EpisodeRef,
    RelevancePreferences,
    UserTier,
    WindowArticle,
)
from news_curator.storage.alembic_runner import upgrade_head
from news_curator.storage.common import (
    build_sqlite_engine,
    from_storage,
    open_raw_connection,
    to_storage,
    utc_now,
)
from news_curator.storage.sqlmodel_models import (
    Article,
    Episode,
    EpisodeArticle,
    Feed,
    FilteringStatistics,
    User,
    UserPreferencesRow,
)

logger = logging.getLogger(__name__)


class SQLiteRepository:
    """Facade that persists curation entities using SQLModel and Alembic."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

        # Keep low-level connection for tests and ad-hoc debugging queries.
        try:
            self._connection = open_raw_connection(
                db_path=db_path,
                busy_timeout_ms=busy_timeout_ms,
            )
        except sqlite3.Error as error:
            self.engine.dispose()
            raise StorageUnavailableError(
                f"Storage unavailable: cannot open {db_path}: {error}",
            ) from error

    def close(self) -> None:
        self._connection.close()
        self.engine.dispose()

    def init_schema(self) -> None:
        try:
            upgrade_head(self.db_path)
        except (OperationalError, sqlite3.OperationalError) as error:
            raise StorageUnavailableError(
                f"Storage unavailable: failed to migrate {self.db_path}: {error}",
            ) from error

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except OperationalError as error:
            raise StorageUnavailableError(f"Storage unavailable: {error}") from error

    # Users and preferences

    def create_user(
        self,
        email: str,
        *,
        tier: UserTier = UserTier.FREE,
        user_id: str | None = None,
    ) -> str:
        resolved_user_id = user_id or str(uuid4())
        with self._session() as session:
            session.add(
                User(
                    user_id=resolved_user_id,
                    email=email,
                    tier=tier.value,
                    created_at=utc_now(),
                ),
            )
            session.commit()
        return resolved_user_id

    def user_exists(self, user_id: str) -> bool:
        with self._session() as session:
            return session.get(User, user_id) is not None

    def delete_user(self, user_id: str) -> bool:
        with self._session() as session:
            result = session.exec(delete(User).where(col(User.user_id) == user_id))
            session.commit()
            return bool(result.rowcount)

    def get_preferences(self, user_id: str) -> RelevancePreferences | None:
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            row = session.get(UserPreferencesRow, user_id)
            if row is None:
                return None
            return RelevancePreferences(
                selected_topics=frozenset(json.loads(row.selected_topics_json)),
                custom_keywords=tuple(json.loads(row.custom_keywords_json)),
                relevance_threshold=row.relevance_threshold,
            )

    def save_preferences(self, user_id: str, preferences: RelevancePreferences) -> None:
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            row = session.get(UserPreferencesRow, user_id)
            if row is None:
                row = UserPreferencesRow(user_id=user_id, updated_at=utc_now())
            row.selected_topics_json = json.dumps(
                sorted(preferences.selected_topics),
                ensure_ascii=False,
            )
            row.custom_keywords_json = json.dumps(
                list(preferences.custom_keywords),
                ensure_ascii=False,
            )
            row.relevance_threshold = preferences.relevance_threshold
            row.updated_at = utc_now()
            session.add(row)
            session.commit()

    # Feeds and articles

    def add_feed(
        self,
        user_id: str,
        url: str,
        *,
        name: str | None = None,
        category: str | None = None,
    ) -> str:
        feed_id = str(uuid4())
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            session.add(
                Feed(
                    feed_id=feed_id,
                    user_id=user_id,
                    url=url,
                    name=name,
                    category=category,
                    created_at=utc_now(),
                ),
            )
            session.commit()
        return feed_id

    def delete_feed(self, feed_id: str) -> bool:
        with self._session() as session:
            result = session.exec(delete(Feed).where(col(Feed.feed_id) == feed_id))
            session.commit()
            return bool(result.rowcount)

    def add_article(
        self,
        feed_id: str,
        title: str,
        *,
        published_at: datetime | None = None,
        summary: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Persist an ingested article; an existing (feed, title) pair is returned as is."""

        article_id = str(uuid4())
        with self._session() as session:
            if session.get(Feed, feed_id) is None:
                raise not_found("Feed", feed_id)
            session.add(
                Article(
                    article_id=article_id,
                    feed_id=feed_id,
                    title=title,
                    published_at=to_storage(published_at),
                    summary=summary,
                    created_at=to_storage(created_at or utc_now()),
                ),
            )
            try:
                session.commit()
                return article_id
            except IntegrityError:
                session.rollback()
                existing = session.exec(
                    select(Article.article_id).where(
                        Article.feed_id == feed_id,
                        Article.title == title,
                    ),
                ).one_or_none()
                if existing is None:
                    raise
                return existing

    def attach_summary(self, article_id: str, summary: str) -> None:
        with self._session() as session:
            row = session.get(Article, article_id)
            if row is None:
                raise not_found("Article", article_id)
            row.summary = summary
            session.add(row)
            session.commit()

    def list_articles_for_filtering(
        self,
        *,
        user_id: str,
        since: datetime,
        until: datetime,
    ) -> list[CandidateArticle]:
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            rows = session.exec(
                select(Article, Feed.category)
                .join(Feed, col(Feed.feed_id) == col(Article.feed_id))
                .where(
                    Feed.user_id == user_id,
                    col(Article.created_at) >= to_storage(since),
                    col(Article.created_at) <= to_storage(until),
                )
                .order_by(col(Article.created_at), col(Article.article_id)),
            ).all()

        return [
            CandidateArticle(
                article_id=article.article_id,
                title=article.title,
                summary=article.summary,
                topics=frozenset({category}) if category else frozenset(),
            )
            for article, category in rows
        ]

    # Episodes

    def create_episode(
        self,
        user_id: str,
        *,
        script_text: str = "",
        audio_url: str = "",
        duration_minutes: int = 0,
        created_at: datetime | None = None,
    ) -> str:
        episode_id = str(uuid4())
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            session.add(
                Episode(
                    episode_id=episode_id,
                    user_id=user_id,
                    script_text=script_text,
                    audio_url=audio_url,
                    duration_minutes=duration_minutes,
                    created_at=to_storage(created_at or utc_now()),
                ),
            )
            session.commit()
        return episode_id

    def delete_episode(self, episode_id: str) -> bool:
        with self._session() as session:
            result = session.exec(delete(Episode).where(col(Episode.episode_id) == episode_id))
            session.commit()
            return bool(result.rowcount)

    def get_episode(self, episode_id: str) -> EpisodeRef | None:
        with self._session() as session:
            row = session.get(Episode, episode_id)
            if row is None:
                return None
            return EpisodeRef(
                episode_id=row.episode_id,
                user_id=row.user_id,
                created_at=from_storage(row.created_at),
            )

    def list_episodes_without_articles(self, *, user_id: str | None = None) -> list[EpisodeRef]:
        with self._session() as session:
            statement = select(Episode).where(
                ~exists().where(col(EpisodeArticle.episode_id) == col(Episode.episode_id)),
            )
            if user_id is not None:
                statement = statement.where(Episode.user_id == user_id)
            rows = session.exec(
                statement.order_by(col(Episode.created_at), col(Episode.episode_id)),
            ).all()

        return [
            EpisodeRef(
                episode_id=row.episode_id,
                user_id=row.user_id,
                created_at=from_storage(row.created_at),
            )
            for row in rows
        ]

    def list_episode_article_ids(self, episode_id: str) -> list[str]:
        with self._session() as session:
            return list(
                session.exec(
                    select(EpisodeArticle.article_id)
                    .where(EpisodeArticle.episode_id == episode_id)
                    .order_by(col(EpisodeArticle.article_id)),
                ).all(),
            )

    def list_window_articles(
        self,
        *,
        user_id: str,
        since: datetime,
        until: datetime,
        limit: int,
    ) -> list[WindowArticle]:
        """Processed articles of the user's feeds ingested within [since, until], newest first."""

        with self._session() as session:
            rows = session.exec(
                select(Article)
                .join(Feed, col(Feed.feed_id) == col(Article.feed_id))
                .where(
                    Feed.user_id == user_id,
                    col(Article.summary).is_not(None),
                    col(Article.created_at) >= to_storage(since),
                    col(Article.created_at) <= to_storage(until),
                )
                .order_by(
                    col(Article.published_at).is_(None),
                    col(Article.published_at).desc(),
                    col(Article.created_at).desc(),
                    col(Article.article_id),
                )
                .limit(limit),
            ).all()

        return [
            WindowArticle(
                article_id=row.article_id,
                feed_id=row.feed_id,
                title=row.title,
                published_at=from_storage(row.published_at),
                created_at=from_storage(row.created_at),
            )
            for row in rows
        ]

    def link_episode_articles(
        self,
        *,
        episode_id: str,
        article_ids: Sequence[str],
        max_links: int | None = None,
    ) -> tuple[int, int]:
        """Insert missing links in one transaction; return (linked, already_linked).

        With ``max_links`` set, the episode's total link count after the insert
        may not exceed it; otherwise ValidationError is raised and nothing is written.
        """

        with self._session() as session:
            episode = session.get(Episode, episode_id)
            if episode is None:
                raise not_found("Episode", episode_id)
            if not article_ids:
                return 0, 0

            owned = set(
                session.exec(
                    select(Article.article_id)
                    .join(Feed, col(Feed.feed_id) == col(Article.feed_id))
                    .where(
                        Feed.user_id == episode.user_id,
                        col(Article.article_id).in_(list(article_ids)),
                    ),
                ).all(),
            )
            for article_id in article_ids:
                if article_id not in owned:
                    raise not_found("Article", article_id)

            linked_ids = set(
                session.exec(
                    select(EpisodeArticle.article_id).where(
                        EpisodeArticle.episode_id == episode_id,
                    ),
                ).all(),
            )
            missing = [article_id for article_id in article_ids if article_id not in linked_ids]
            if not missing:
                return 0, len(article_ids)
            if max_links is not None and len(linked_ids) + len(missing) > max_links:
                raise ValidationError(
                    f"Episode {episode_id} would have {len(linked_ids) + len(missing)} "
                    f"articles, above the cap of {max_links} "
                    f"({len(linked_ids)} already linked).",
                )

            statement = (
                sqlite_insert(EpisodeArticle.__table__)
                .values(
                    [
                        {"episode_id": episode_id, "article_id": article_id}
                        for article_id in missing
                    ],
                )
                .on_conflict_do_nothing(index_elements=["episode_id", "article_id"])
            )
            linked = int(session.connection().execute(statement).rowcount)
            session.commit()

        if linked < len(missing):
            logger.debug(
                "Concurrent links detected for episode %s: requested=%d inserted=%d",
                episode_id,
                len(missing),
                linked,
            )
        return linked, len(article_ids) - linked

    # Filtering statistics

    def append_filtering_statistics(
        self,
        *,
        user_id: str,
        stat_date: date,
        included: int,
        filtered_out: int,
    ) -> int:
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            row = FilteringStatistics(
                user_id=user_id,
                stat_date=stat_date,
                included_articles=included,
                filtered_out_articles=filtered_out,
                recorded_at=utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            if row.id is None:
                raise RuntimeError("Failed to persist filtering statistics")
            return int(row.id)

    def sum_filtering_statistics(
        self,
        *,
        user_id: str,
        start: date | None,
        end: date | None,
    ) -> tuple[int, int]:
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise not_found("User", user_id)
            statement = select(
                func.coalesce(func.sum(FilteringStatistics.included_articles), 0),
                func.coalesce(func.sum(FilteringStatistics.filtered_out_articles), 0),
            ).where(FilteringStatistics.user_id == user_id)
            if start is not None:
                statement = statement.where(col(FilteringStatistics.stat_date) >= start)
            if end is not None:
                statement = statement.where(col(FilteringStatistics.stat_date) <= end)
            included, filtered_out = session.exec(statement).one()
        return int(included), int(filtered_out)
