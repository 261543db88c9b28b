"""User relevance preference management."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from news_curator.curation.errors import ValidationError
from news_curator.curation.models import RelevancePreferences
from news_curator.repository import SQLiteRepository


class PreferencesService:
    """Reads and mutates a user's topics, keywords and relevance threshold."""

    def __init__(self, *, repository: SQLiteRepository, default_threshold: int) -> None:
        self.repository = repository
        self.default_threshold = default_threshold

    def get(self, user_id: str) -> RelevancePreferences:
        stored = self.repository.get_preferences(user_id)
        if stored is None:
            return RelevancePreferences(relevance_threshold=self.default_threshold)
        return stored

    def add_keyword(self, user_id: str, keyword: str) -> RelevancePreferences:
        normalized = _normalize_keyword(keyword)
        current = self.get(user_id)
        # Matching ignores case, so "Python" and "python" are the same keyword.
        if normalized.casefold() in {item.casefold() for item in current.custom_keywords}:
            return current
        return self._save(
            user_id,
            replace(current, custom_keywords=(*current.custom_keywords, normalized)),
        )

    def remove_keyword(self, user_id: str, keyword: str) -> RelevancePreferences:
        normalized = _normalize_keyword(keyword)
        current = self.get(user_id)
        return self._save(
            user_id,
            replace(
                current,
                custom_keywords=tuple(
                    item
                    for item in current.custom_keywords
                    if item.casefold() != normalized.casefold()
                ),
            ),
        )

    def set_topics(self, user_id: str, topics: Iterable[str]) -> RelevancePreferences:
        selected = frozenset(topic.strip() for topic in topics if topic.strip())
        return self._save(user_id, replace(self.get(user_id), selected_topics=selected))

    def update_threshold(self, user_id: str, threshold: int) -> RelevancePreferences:
        validate_threshold(threshold)
        return self._save(user_id, replace(self.get(user_id), relevance_threshold=threshold))

    def _save(self, user_id: str, preferences: RelevancePreferences) -> RelevancePreferences:
        self.repository.save_preferences(user_id, preferences)
        return preferences


def validate_threshold(threshold: int) -> None:
    if not 0 <= threshold <= 100:
        raise ValidationError(f"Relevance threshold must be between 0 and 100, got {threshold}.")


def _normalize_keyword(keyword: str) -> str:
    normalized = keyword.strip()
    if not normalized:
        raise ValidationError("Keyword must not be empty.")
    return normalized
