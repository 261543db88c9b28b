"""Episode-generation boundary: select a window and link it to a new episode."""

from __future__ import annotations

from dataclasses import dataclass

from news_curator.config import Settings
from news_curator.curation.assembler import EpisodeAssembler
from news_curator.curation.models import AssemblyResult, WindowArticle
from news_curator.curation.reconciler import BackfillReconciler
from news_curator.curation.window import EpisodeWindowSelector, window_params_from_settings
from news_curator.repository import SQLiteRepository


@dataclass(slots=True)
class EpisodeLinkSummary:
    """Articles selected for one episode and the assembly outcome."""

    articles: list[WindowArticle]
    assembly: AssemblyResult


class EpisodeLinkOrchestrator:
    """Wires the window selector, assembler and reconciler from settings."""

    def __init__(self, *, settings: Settings, repository: SQLiteRepository) -> None:
        settings.validate()
        self.settings = settings
        self.repository = repository

        self.selector = EpisodeWindowSelector(
            repository=repository,
            params=window_params_from_settings(settings.curation),
        )
        self.assembler = EpisodeAssembler(
            repository=repository,
            max_articles=settings.curation.episode_article_cap,
        )
        self.reconciler = BackfillReconciler(
            repository=repository,
            selector=self.selector,
            assembler=self.assembler,
        )

    def link(self, episode_id: str) -> EpisodeLinkSummary:
        episode, articles = self.selector.select_for_episode(episode_id)
        assembly = self.assembler.assemble(
            episode.episode_id,
            [article.article_id for article in articles],
        )
        return EpisodeLinkSummary(articles=articles, assembly=assembly)


def assemble_new_episode(
    *,
    settings: Settings,
    repository: SQLiteRepository,
    episode_id: str,
) -> EpisodeLinkSummary:
    """Link a freshly created episode to its window of articles."""

    return EpisodeLinkOrchestrator(settings=settings, repository=repository).link(episode_id)
