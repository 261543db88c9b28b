"""Domain models for relevance filtering, statistics and episode assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class UserTier(str, Enum):
    """Subscription tiers."""

    FREE = "free"
    PRO = "pro"


class DecisionReason(str, Enum):
    """Why the relevance filter included or excluded an article."""

    NO_PREFERENCES = "no_preferences"
    MATCHED = "matched"
    NO_MATCH = "no_match"
    BELOW_THRESHOLD = "below_threshold"


class BackfillStatus(str, Enum):
    """Per-episode outcome of a backfill pass."""

    LINKED = "linked"
    NO_ELIGIBLE_ARTICLES = "no_eligible_articles"
    SKIPPED_MISSING = "skipped_missing"
    SKIPPED_STALE = "skipped_stale"


class TimeRange(str, Enum):
    """Named statistics ranges exposed by the read API."""

    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    ALL_TIME = "all_time"


@dataclass(slots=True)
class RelevancePreferences:
    """User relevance preferences."""

    selected_topics: frozenset[str] = frozenset()
    custom_keywords: tuple[str, ...] = ()
    relevance_threshold: int = 80

    @property
    def is_configured(self) -> bool:
        return bool(self.selected_topics or self.custom_keywords)


@dataclass(slots=True)
class CandidateArticle:
    """Article view consumed by the relevance filter."""

    article_id: str
    title: str
    summary: str | None
    topics: frozenset[str] = frozenset()

    @property
    def is_processed(self) -> bool:
        return self.summary is not None


@dataclass(slots=True)
class RelevanceDecision:
    """Explainable inclusion decision for one processed article."""

    article_id: str
    included: bool
    score: int
    reason: DecisionReason
    matched_topics: tuple[str, ...] = ()
    matched_keywords: tuple[str, ...] = ()


@dataclass(slots=True)
class FilterBatchResult:
    """Decisions for one filtered batch plus the statistics it contributed."""

    user_id: str
    decisions: list[RelevanceDecision] = field(default_factory=list)
    skipped_unprocessed: int = 0
    recorded: bool = False

    @property
    def included_count(self) -> int:
        return sum(1 for decision in self.decisions if decision.included)

    @property
    def filtered_out_count(self) -> int:
        return sum(1 for decision in self.decisions if not decision.included)

    @property
    def included_article_ids(self) -> list[str]:
        return [decision.article_id for decision in self.decisions if decision.included]


@dataclass(slots=True)
class FilteringAggregate:
    """Summed filtering statistics for a date range."""

    total_articles: int = 0
    included_articles: int = 0
    filtered_out_articles: int = 0
    inclusion_percentage: float = 0.0


@dataclass(slots=True)
class DateRange:
    """Inclusive date range; open ends mean unbounded."""

    start: date | None = None
    end: date | None = None


@dataclass(slots=True)
class WindowParams:
    """Trailing window length and per-episode cap."""

    window_hours: int
    cap: int


@dataclass(slots=True)
class WindowArticle:
    """Article selected into an episode window."""

    article_id: str
    feed_id: str
    title: str
    published_at: datetime | None
    created_at: datetime


@dataclass(slots=True)
class EpisodeRef:
    """Episode identity with owner and creation time."""

    episode_id: str
    user_id: str
    created_at: datetime


@dataclass(slots=True)
class AssemblyResult:
    """Result of linking articles to one episode."""

    episode_id: str
    requested: int = 0
    linked: int = 0
    already_linked: int = 0


@dataclass(slots=True)
class EpisodeBackfillOutcome:
    """What the reconciler did for one episode."""

    episode_id: str
    user_id: str
    status: BackfillStatus
    linked: int = 0
    titles: list[str] = field(default_factory=list)


@dataclass(slots=True)
class BackfillReport:
    """Outcomes of one reconciliation pass."""

    dry_run: bool
    outcomes: list[EpisodeBackfillOutcome] = field(default_factory=list)

    @property
    def episodes_linked(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == BackfillStatus.LINKED)

    @property
    def articles_linked(self) -> int:
        return sum(outcome.linked for outcome in self.outcomes)
