"""Persist links between an episode and its selected articles."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from news_curator.curation.errors import ValidationError
from news_curator.curation.models import AssemblyResult
from news_curator.repository import SQLiteRepository

logger = logging.getLogger(__name__)


class EpisodeAssembler:
    """Links articles to an episode in one atomic, conflict-tolerant batch."""

    def __init__(self, *, repository: SQLiteRepository, max_articles: int) -> None:
        if max_articles <= 0:
            raise ValidationError(f"Episode article cap must be > 0, got {max_articles}.")
        self.repository = repository
        self.max_articles = max_articles

    def assemble(self, episode_id: str, article_ids: Sequence[str]) -> AssemblyResult:
        unique_ids = list(dict.fromkeys(article_ids))
        if len(unique_ids) > self.max_articles:
            raise ValidationError(
                f"Too many articles for episode {episode_id}: "
                f"{len(unique_ids)} > {self.max_articles}.",
            )

        linked, already_linked = self.repository.link_episode_articles(
            episode_id=episode_id,
            article_ids=unique_ids,
            max_links=self.max_articles,
        )
        if unique_ids:
            logger.info(
                "Assembled episode %s: requested=%d linked=%d already_linked=%d",
                episode_id,
                len(unique_ids),
                linked,
                already_linked,
            )
        return AssemblyResult(
            episode_id=episode_id,
            requested=len(unique_ids),
            linked=linked,
            already_linked=already_linked,
        )
