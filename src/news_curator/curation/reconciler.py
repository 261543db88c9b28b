"""Backfill links for episodes that ended up with no articles."""

from __future__ import annotations

import logging

from news_curator.curation.assembler import EpisodeAssembler
from news_curator.curation.errors import NotFoundError
from news_curator.curation.models import (
    BackfillReport,
    BackfillStatus,
    EpisodeBackfillOutcome,
    EpisodeRef,
)
from news_curator.curation.window import EpisodeWindowSelector
from news_curator.repository import SQLiteRepository

logger = logging.getLogger(__name__)

# Selection is repeated once when articles vanish between selecting and linking.
SELECTION_ATTEMPTS = 2


class BackfillReconciler:
    """Re-runs window selection and assembly for every unlinked episode.

    Episodes that already have links are never touched, so repeated passes
    converge. Episodes are processed sequentially, oldest first, and a race on
    one episode never stops the pass: only storage errors propagate.
    """

    def __init__(
        self,
        *,
        repository: SQLiteRepository,
        selector: EpisodeWindowSelector,
        assembler: EpisodeAssembler,
    ) -> None:
        self.repository = repository
        self.selector = selector
        self.assembler = assembler

    def run(self, *, user_id: str | None = None, dry_run: bool = False) -> BackfillReport:
        pending = self.repository.list_episodes_without_articles(user_id=user_id)
        logger.info("Found %d episodes without linked articles", len(pending))

        report = BackfillReport(dry_run=dry_run)
        for episode in pending:
            report.outcomes.append(self._reconcile(episode, dry_run=dry_run))
        return report

    def _reconcile(self, episode: EpisodeRef, *, dry_run: bool) -> EpisodeBackfillOutcome:
        for attempt in range(1, SELECTION_ATTEMPTS + 1):
            try:
                return self._link_window(episode, dry_run=dry_run)
            except NotFoundError as error:
                if error.entity == "Episode":
                    logger.warning(
                        "Episode %s vanished before it could be reconciled; skipping",
                        episode.episode_id,
                    )
                    return EpisodeBackfillOutcome(
                        episode_id=episode.episode_id,
                        user_id=episode.user_id,
                        status=BackfillStatus.SKIPPED_MISSING,
                    )
                logger.warning(
                    "Episode %s: %s after selection (attempt %d of %d)",
                    episode.episode_id,
                    error,
                    attempt,
                    SELECTION_ATTEMPTS,
                )

        return EpisodeBackfillOutcome(
            episode_id=episode.episode_id,
            user_id=episode.user_id,
            status=BackfillStatus.SKIPPED_STALE,
        )

    def _link_window(self, episode: EpisodeRef, *, dry_run: bool) -> EpisodeBackfillOutcome:
        current, articles = self.selector.select_for_episode(episode.episode_id)
        if not articles:
            logger.info("Episode %s: no eligible articles found", episode.episode_id)
            return EpisodeBackfillOutcome(
                episode_id=episode.episode_id,
                user_id=current.user_id,
                status=BackfillStatus.NO_ELIGIBLE_ARTICLES,
            )

        if dry_run:
            linked = len(articles)
        else:
            linked = self.assembler.assemble(
                current.episode_id,
                [article.article_id for article in articles],
            ).linked
        logger.info(
            "Episode %s: linked %d articles%s",
            episode.episode_id,
            linked,
            " (dry run)" if dry_run else "",
        )
        return EpisodeBackfillOutcome(
            episode_id=episode.episode_id,
            user_id=current.user_id,
            status=BackfillStatus.LINKED,
            linked=linked,
            titles=[article.title for article in articles],
        )
