from __future__ import annotations

from datetime import timedelta

import allure
from conftest import EPISODE_TIME, count_rows

from news_curator.curation.assembler import EpisodeAssembler
from news_curator.curation.errors import NotFoundError
from news_curator.curation.models import BackfillStatus, WindowParams
from news_curator.curation.reconciler import BackfillReconciler
from news_curator.curation.window import EpisodeWindowSelector
from news_curator.repository import SQLiteRepository

pytestmark = [
    allure.epic("Episode Assembly"),
    allure.feature("Backfill Reconciliation"),
]


def _reconciler(repo: SQLiteRepository, *, cap: int = 10) -> BackfillReconciler:
    return BackfillReconciler(
        repository=repo,
        selector=EpisodeWindowSelector(
            repository=repo,
            params=WindowParams(window_hours=48, cap=cap),
        ),
        assembler=EpisodeAssembler(repository=repo, max_articles=cap),
    )


def _user_with_articles(
    repo: SQLiteRepository,
    email: str,
    *,
    hours_before: tuple[float, ...],
) -> tuple[str, list[str]]:
    user_id = repo.create_user(email)
    feed_id = repo.add_feed(user_id, f"https://{email.split('@')[0]}.example.com/feed.xml")
    article_ids = [
        repo.add_article(
            feed_id,
            f"{email} story {hours}",
            published_at=EPISODE_TIME - timedelta(hours=hours),
            summary="summary",
            created_at=EPISODE_TIME - timedelta(hours=hours),
        )
        for hours in hours_before
    ]
    return user_id, article_ids


def test_backfill_links_unlinked_episodes_using_their_own_time(repo: SQLiteRepository) -> None:
    user_id, article_ids = _user_with_articles(repo, "a@example.com", hours_before=(10, 30, 50))
    episode_id = repo.create_episode(user_id, created_at=EPISODE_TIME)

    report = _reconciler(repo).run()

    assert len(report.outcomes) == 1
    outcome = report.outcomes[0]
    assert outcome.episode_id == episode_id
    assert outcome.status == BackfillStatus.LINKED
    assert outcome.linked == 2
    assert outcome.titles == ["a@example.com story 10", "a@example.com story 30"]
    assert repo.list_episode_article_ids(episode_id) == sorted(article_ids[:2])


def test_backfill_reports_episodes_without_eligible_articles(repo: SQLiteRepository) -> None:
    user_id, _ = _user_with_articles(repo, "a@example.com", hours_before=(60,))
    episode_id = repo.create_episode(user_id, created_at=EPISODE_TIME)

    report = _reconciler(repo).run()

    assert [(item.episode_id, item.status) for item in report.outcomes] == [
        (episode_id, BackfillStatus.NO_ELIGIBLE_ARTICLES),
    ]
    assert report.articles_linked == 0
    assert count_rows(repo, "episode_articles") == 0


def test_backfill_skips_episodes_that_already_have_links(repo: SQLiteRepository) -> None:
    user_id, article_ids = _user_with_articles(repo, "a@example.com", hours_before=(1, 2, 3))
    linked_episode = repo.create_episode(user_id, created_at=EPISODE_TIME)
    EpisodeAssembler(repository=repo, max_articles=10).assemble(linked_episode, article_ids[:1])

    report = _reconciler(repo).run()

    assert report.outcomes == []
    assert repo.list_episode_article_ids(linked_episode) == [article_ids[0]]


def test_second_backfill_pass_is_a_no_op_for_linked_episodes(repo: SQLiteRepository) -> None:
    user_id, _ = _user_with_articles(repo, "a@example.com", hours_before=(1, 2))
    empty_user, _ = _user_with_articles(repo, "b@example.com", hours_before=())
    linked_episode = repo.create_episode(user_id, created_at=EPISODE_TIME)
    empty_episode = repo.create_episode(empty_user, created_at=EPISODE_TIME)
    reconciler = _reconciler(repo)

    first = reconciler.run()
    links_after_first = count_rows(repo, "episode_articles")
    second = reconciler.run()

    assert {item.episode_id for item in first.outcomes} == {linked_episode, empty_episode}
    assert [item.episode_id for item in second.outcomes] == [empty_episode]
    assert second.articles_linked == 0
    assert count_rows(repo, "episode_articles") == links_after_first == 2


def test_backfill_handles_users_independently(repo: SQLiteRepository) -> None:
    first_user, first_articles = _user_with_articles(repo, "a@example.com", hours_before=(1,))
    second_user, second_articles = _user_with_articles(repo, "b@example.com", hours_before=(2,))
    first_episode = repo.create_episode(first_user, created_at=EPISODE_TIME)
    second_episode = repo.create_episode(second_user, created_at=EPISODE_TIME)

    _reconciler(repo).run()

    assert repo.list_episode_article_ids(first_episode) == first_articles
    assert repo.list_episode_article_ids(second_episode) == second_articles


def test_backfill_can_be_scoped_to_one_user(repo: SQLiteRepository) -> None:
    first_user, _ = _user_with_articles(repo, "a@example.com", hours_before=(1,))
    second_user, _ = _user_with_articles(repo, "b@example.com", hours_before=(2,))
    repo.create_episode(first_user, created_at=EPISODE_TIME)
    second_episode = repo.create_episode(second_user, created_at=EPISODE_TIME)

    report = _reconciler(repo).run(user_id=second_user)

    assert [item.episode_id for item in report.outcomes] == [second_episode]
    assert count_rows(repo, "episode_articles") == 1


def test_backfill_dry_run_writes_nothing(repo: SQLiteRepository) -> None:
    user_id, _ = _user_with_articles(repo, "a@example.com", hours_before=(1, 2, 3))
    repo.create_episode(user_id, created_at=EPISODE_TIME)

    report = _reconciler(repo).run(dry_run=True)

    assert report.dry_run is True
    assert report.articles_linked == 3
    assert count_rows(repo, "episode_articles") == 0


def test_backfill_respects_cap(repo: SQLiteRepository) -> None:
    user_id, article_ids = _user_with_articles(repo, "a@example.com", hours_before=(1, 2, 3))
    episode_id = repo.create_episode(user_id, created_at=EPISODE_TIME)

    report = _reconciler(repo, cap=2).run()

    assert report.outcomes[0].linked == 2
    assert repo.list_episode_article_ids(episode_id) == sorted(article_ids[:2])


def test_backfill_skips_episode_deleted_after_enumeration(
    repo: SQLiteRepository,
    monkeypatch,
) -> None:
    user_id, _ = _user_with_articles(repo, "a@example.com", hours_before=(1,))
    vanished = repo.create_episode(user_id, created_at=EPISODE_TIME)
    survivor = repo.create_episode(user_id, created_at=EPISODE_TIME + timedelta(hours=1))
    original_get_episode = repo.get_episode

    def _get_episode(episode_id: str):
        if episode_id == vanished:
            repo.delete_episode(episode_id)
        return original_get_episode(episode_id)

    monkeypatch.setattr(repo, "get_episode", _get_episode)

    report = _reconciler(repo).run()

    assert [(item.episode_id, item.status) for item in report.outcomes] == [
        (vanished, BackfillStatus.SKIPPED_MISSING),
        (survivor, BackfillStatus.LINKED),
    ]


def test_backfill_reselects_when_a_feed_is_deleted_mid_pass(
    repo: SQLiteRepository,
    monkeypatch,
) -> None:
    first_user = repo.create_user("a@example.com")
    doomed_feed = repo.add_feed(first_user, "https://doomed.example.com/feed.xml")
    kept_feed = repo.add_feed(first_user, "https://kept.example.com/feed.xml")
    repo.add_article(
        doomed_feed,
        "Doomed story",
        summary="summary",
        created_at=EPISODE_TIME - timedelta(hours=1),
    )
    kept_article = repo.add_article(
        kept_feed,
        "Kept story",
        summary="summary",
        created_at=EPISODE_TIME - timedelta(hours=2),
    )
    first_episode = repo.create_episode(first_user, created_at=EPISODE_TIME)
    second_user, second_articles = _user_with_articles(repo, "b@example.com", hours_before=(2,))
    second_episode = repo.create_episode(
        second_user,
        created_at=EPISODE_TIME + timedelta(hours=1),
    )
    reconciler = _reconciler(repo)
    original_select = reconciler.selector.select_for_episode
    deleted: list[str] = []

    def _select_then_delete_feed(episode_id: str):
        selection = original_select(episode_id)
        if episode_id == first_episode and not deleted:
            repo.delete_feed(doomed_feed)
            deleted.append(doomed_feed)
        return selection

    monkeypatch.setattr(reconciler.selector, "select_for_episode", _select_then_delete_feed)

    report = reconciler.run()

    assert [(item.episode_id, item.status) for item in report.outcomes] == [
        (first_episode, BackfillStatus.LINKED),
        (second_episode, BackfillStatus.LINKED),
    ]
    assert repo.list_episode_article_ids(first_episode) == [kept_article]
    assert repo.list_episode_article_ids(second_episode) == second_articles


def test_backfill_skips_episode_whose_articles_keep_vanishing(
    repo: SQLiteRepository,
    monkeypatch,
) -> None:
    first_user, _ = _user_with_articles(repo, "a@example.com", hours_before=(1,))
    second_user, second_articles = _user_with_articles(repo, "b@example.com", hours_before=(2,))
    stale_episode = repo.create_episode(first_user, created_at=EPISODE_TIME)
    later_episode = repo.create_episode(second_user, created_at=EPISODE_TIME + timedelta(hours=1))
    reconciler = _reconciler(repo)
    original_assemble = reconciler.assembler.assemble

    def _assemble(episode_id: str, article_ids: list[str]):
        if episode_id == stale_episode:
            raise NotFoundError(
                message="Article not found: gone",
                entity="Article",
                entity_id="gone",
            )
        return original_assemble(episode_id, article_ids)

    monkeypatch.setattr(reconciler.assembler, "assemble", _assemble)

    report = reconciler.run()

    assert [(item.episode_id, item.status) for item in report.outcomes] == [
        (stale_episode, BackfillStatus.SKIPPED_STALE),
        (later_episode, BackfillStatus.LINKED),
    ]
    assert repo.list_episode_article_ids(stale_episode) == []
    assert repo.list_episode_article_ids(later_episode) == second_articles
