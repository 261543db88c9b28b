"""Rule-based relevance filter with a pluggable scoring strategy."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Protocol

from news_curator.curation.models import (
    CandidateArticle,
    DecisionReason,
    FilterBatchResult,
    RelevanceDecision,
    RelevancePreferences,
)
from news_curator.curation.statistics import StatisticsRecorder
from news_curator.repository import SQLiteRepository

logger = logging.getLogger(__name__)

TOPIC_TAG_SCORE = 100
TITLE_MATCH_SCORE = 90
SUMMARY_MATCH_SCORE = 70
EXTRA_MATCH_BONUS = 5


class RelevanceScorer(Protocol):
    """Scores an article against user preferences on a 0-100 scale."""

    def score(self, article: CandidateArticle, preferences: RelevancePreferences) -> int:
        """Return relevance score; values outside 0-100 are clamped by the filter."""
        raise NotImplementedError


class TermMatchScorer:
    """Scores by the strongest matching signal plus a bonus per extra matched term.

    A topic tag on the article scores highest, then a term in the title, then a
    term in the summary only.
    """

    def score(self, article: CandidateArticle, preferences: RelevancePreferences) -> int:
        matched_topics, matched_keywords = match_terms(article, preferences)
        title = article.title.casefold()
        tags = {topic.casefold() for topic in article.topics}

        best = 0
        for topic in matched_topics:
            if topic.casefold() in tags:
                best = max(best, TOPIC_TAG_SCORE)
            elif _topic_phrase(topic) in title:
                best = max(best, TITLE_MATCH_SCORE)
            else:
                best = max(best, SUMMARY_MATCH_SCORE)
        for keyword in matched_keywords:
            if keyword.casefold() in title:
                best = max(best, TITLE_MATCH_SCORE)
            else:
                best = max(best, SUMMARY_MATCH_SCORE)
        if best == 0:
            return 0

        extra = len(matched_topics) + len(matched_keywords) - 1
        return min(100, best + EXTRA_MATCH_BONUS * extra)


class RelevanceFilter:
    """Decides inclusion of processed articles and records batch statistics."""

    def __init__(
        self,
        *,
        repository: SQLiteRepository,
        recorder: StatisticsRecorder,
        scorer: RelevanceScorer | None = None,
    ) -> None:
        self.repository = repository
        self.recorder = recorder
        self.scorer = scorer or TermMatchScorer()

    def decide(
        self,
        article: CandidateArticle,
        preferences: RelevancePreferences | None,
    ) -> RelevanceDecision | None:
        """Return the decision for a processed article, or None for an unprocessed one."""

        if not article.is_processed:
            return None
        if preferences is None or not preferences.is_configured:
            return RelevanceDecision(
                article_id=article.article_id,
                included=True,
                score=100,
                reason=DecisionReason.NO_PREFERENCES,
            )

        matched_topics, matched_keywords = match_terms(article, preferences)
        score = _clamp(self.scorer.score(article, preferences))
        if not matched_topics and not matched_keywords:
            reason = DecisionReason.NO_MATCH
        elif score < preferences.relevance_threshold:
            reason = DecisionReason.BELOW_THRESHOLD
        else:
            reason = DecisionReason.MATCHED
        return RelevanceDecision(
            article_id=article.article_id,
            included=reason == DecisionReason.MATCHED,
            score=score,
            reason=reason,
            matched_topics=matched_topics,
            matched_keywords=matched_keywords,
        )

    def filter_articles(
        self,
        user_id: str,
        articles: Iterable[CandidateArticle],
        *,
        stat_date: date | None = None,
    ) -> FilterBatchResult:
        preferences = self.repository.get_preferences(user_id)
        result = FilterBatchResult(user_id=user_id)
        for article in articles:
            decision = self.decide(article, preferences)
            if decision is None:
                result.skipped_unprocessed += 1
                continue
            result.decisions.append(decision)

        if result.decisions:
            self.recorder.record(
                user_id,
                stat_date or datetime.now(tz=UTC).date(),
                result.included_count,
                result.filtered_out_count,
            )
            result.recorded = True

        logger.info(
            "Relevance filtering complete (user_id=%s included=%d filtered_out=%d "
            "unprocessed=%d)",
            user_id,
            result.included_count,
            result.filtered_out_count,
            result.skipped_unprocessed,
        )
        return result

    def filter_recent(
        self,
        user_id: str,
        *,
        since: datetime,
        until: datetime,
    ) -> FilterBatchResult:
        articles = self.repository.list_articles_for_filtering(
            user_id=user_id,
            since=since,
            until=until,
        )
        return self.filter_articles(user_id, articles, stat_date=_utc_date(until))


def match_terms(
    article: CandidateArticle,
    preferences: RelevancePreferences,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Return (matched topics, matched keywords), both case-insensitive."""

    haystack = f"{article.title}\n{article.summary or ''}".casefold()
    tags = {topic.casefold() for topic in article.topics}

    matched_topics = tuple(
        topic
        for topic in sorted(preferences.selected_topics)
        if topic.strip() and (topic.casefold() in tags or _topic_phrase(topic) in haystack)
    )
    matched_keywords = tuple(
        keyword
        for keyword in preferences.custom_keywords
        if keyword.strip() and keyword.casefold() in haystack
    )
    return matched_topics, matched_keywords


def _topic_phrase(topic: str) -> str:
    return topic.replace("_", " ").replace("-", " ").strip().casefold()


def _clamp(score: int) -> int:
    return max(0, min(100, int(score)))


def _utc_date(value: datetime) -> date:
    # Naive datetimes are already UTC throughout the pipeline.
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(UTC).date()
