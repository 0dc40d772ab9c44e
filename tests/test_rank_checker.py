"""Routine and first-check modes, history backfill and bulk refresh."""

import httpx
from conftest import failed_task, historical_task, live_task, organic

from rank_monitor.db.models import KeywordPosition
from rank_monitor.providers.dataforseo import (
    HISTORICAL_SERPS_PATH,
    LIVE_SERP_PATH,
    RankProviderClient,
)
from rank_monitor.services.rank_checker import RankChecker
from rank_monitor.utils.dates import previous_month_starts, utc_today


def _rows(session, keyword_id):
    session.expire_all()
    return (
        session.query(KeywordPosition)
        .filter_by(keyword_id=keyword_id)
        .order_by(KeywordPosition.date.desc())
        .all()
    )


class TestRoutineCheck:
    def test_single_live_request_one_row(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: live_task([organic(6, "https://example.com/wash")])
        result = online_checker.check_position(session, keywords[0], domain)

        assert result.success
        assert result.position == 6
        live_requests = [tasks for path, tasks in fake_provider.requests if path.endswith(LIVE_SERP_PATH)]
        assert len(live_requests) == 1
        assert len(live_requests[0]) == 1
        rows = _rows(session, keywords[0].id)
        assert len(rows) == 1
        assert rows[0].date == utc_today()
        assert rows[0].position == 6

    def test_no_match_stores_null_position(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: live_task([organic(1, "https://other.org/")])
        result = online_checker.check_position(session, keywords[0], domain)

        assert result.success
        assert result.position is None
        assert _rows(session, keywords[0].id)[0].position is None

    def test_failed_task_is_not_success(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: failed_task("No Search Results.")
        result = online_checker.check_position(session, keywords[0], domain)

        assert not result.success
        assert result.error == "No Search Results."
        assert _rows(session, keywords[0].id) == []

    def test_metrics_are_best_effort(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: live_task([organic(3, "https://example.com/")])
        fake_provider.metrics = lambda task: failed_task("Internal Error.")
        assert online_checker.check_position(session, keywords[0], domain).success

    def test_metrics_update_keyword(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: live_task([organic(3, "https://example.com/")])
        fake_provider.metrics = lambda task: {
            "status_code": 20000,
            "result": [{"keyword": "car wash near me", "search_volume": 5400, "competition": 0.8}],
        }
        online_checker.check_position(session, keywords[0], domain)
        session.expire_all()
        assert keywords[0].difficulty == 80
        assert keywords[0].search_volume == 5400
        assert _rows(session, keywords[0].id)[0].difficulty == 80


class TestFirstCheck:
    def test_history_is_one_separate_batch(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: live_task([organic(2, "https://example.com/")])
        fake_provider.history = lambda task: historical_task([organic(15, "https://example.com/old")])
        result = online_checker.check_position(session, keywords[0], domain, with_history=True)

        assert result.success
        assert result.history_rows == 6
        history = [tasks for path, tasks in fake_provider.requests if path.endswith(HISTORICAL_SERPS_PATH)]
        assert len(history) == 1
        assert len(history[0]) == 6
        assert [t["date_from"] for t in history[0]] == [d.isoformat() for d in previous_month_starts(6)]

        rows = _rows(session, keywords[0].id)
        assert len(rows) == 7
        assert rows[0].date == utc_today()
        assert all(row.position == 15 for row in rows[1:])
        assert not any(row.is_estimate for row in rows)

    def test_gaps_filled_with_estimates(self, session, online_checker, fake_provider, domain, keywords):
        fake_provider.live = lambda task: live_task([])
        fake_provider.history = lambda task: failed_task()
        result = online_checker.check_position(session, keywords[1], domain, with_history=True)

        assert result.history_rows == 6
        rows = _rows(session, keywords[1].id)
        assert len(rows) == 7
        assert all(row.is_estimate for row in rows[1:])
        assert not rows[0].is_estimate

    def test_gaps_skipped_when_fill_disabled(
        self, session, provider_client, online_settings, fake_provider, domain, keywords
    ):
        settings = online_settings.model_copy(update={"history_fill_gaps": False})
        checker = RankChecker(provider_client, settings)
        fake_provider.history = lambda task: failed_task()
        result = checker.check_position(session, keywords[1], domain, with_history=True)

        assert result.success
        assert result.history_rows == 0
        assert len(_rows(session, keywords[1].id)) == 1

    def test_history_failure_keeps_primary_success(
        self, session, online_settings, fake_provider, domain, keywords
    ):
        fake_provider.live = lambda task: live_task([organic(2, "https://example.com/")])

        def handler(request):
            if request.url.path.endswith(HISTORICAL_SERPS_PATH):
                return httpx.Response(403, json={})
            return fake_provider(request)

        client = RankProviderClient(online_settings, transport=httpx.MockTransport(handler))
        checker = RankChecker(client, online_settings)
        result = checker.check_position(session, keywords[2], domain, with_history=True)

        assert result.success
        assert result.history_rows == 0
        assert len(_rows(session, keywords[2].id)) == 1


class TestOffline:
    def test_first_check_synthesizes_history(self, session, offline_checker, domain, keywords):
        result = offline_checker.check_position(session, keywords[0], domain, with_history=True)
        assert result.success
        assert result.history_rows == 6
        assert len(_rows(session, keywords[0].id)) == 7

    def test_refresh_domain_marks_refreshed(self, session, offline_checker, domain, keywords):
        written = offline_checker.refresh_domain(session, domain, keywords)
        assert written == 3
        session.expire_all()
        assert domain.last_refreshed_at is not None
        for keyword in keywords:
            assert len(_rows(session, keyword.id)) == 1


def test_bulk_refresh_one_request_all_keywords(session, online_checker, fake_provider, domain, keywords):
    ranks = {"car wash near me": 4, "pressure washing": None}

    def live(task):
        rank = ranks.get(task["keyword"], "missing")
        if rank == "missing":
            return failed_task()
        return live_task([organic(rank, "https://example.com/")] if rank else [])

    fake_provider.live = live
    online_checker.refresh_domain(session, domain, keywords)

    live_requests = [tasks for path, tasks in fake_provider.requests if path.endswith(LIVE_SERP_PATH)]
    assert len(live_requests) == 1
    assert [t["keyword"] for t in live_requests[0]] == [k.phrase for k in keywords]
    assert _rows(session, keywords[0].id)[0].position == 4
    assert _rows(session, keywords[1].id)[0].position is None
    # failed slot still records the day
    assert _rows(session, keywords[2].id)[0].position is None


class TestHistoryBatch:
    def test_keyword_date_cross_product_in_one_request(
        self, session, online_checker, fake_provider, domain, keywords
    ):
        dates = previous_month_starts(3)
        ranks = {
            ("car wash near me", dates[0].isoformat()): 11,
            ("car wash near me", dates[2].isoformat()): 13,
            ("pressure washing", dates[1].isoformat()): 22,
        }

        def history(task):
            rank = ranks.get((task["keyword"], task["date_from"]))
            if rank is None:
                return failed_task()
            return historical_task([organic(rank, f"https://example.com/{rank}")])

        fake_provider.history = history
        written = online_checker.fetch_history_batch(session, keywords[:2], domain, months=3)

        assert written == 6
        history_requests = [
            tasks for path, tasks in fake_provider.requests if path.endswith(HISTORICAL_SERPS_PATH)
        ]
        assert len(history_requests) == 1
        assert [(t["keyword"], t["date_from"]) for t in history_requests[0]] == [
            (k.phrase, d.isoformat()) for k in keywords[:2] for d in dates
        ]

        for keyword in keywords[:2]:
            rows = {row.date: row for row in _rows(session, keyword.id)}
            assert set(rows) == set(dates)
            for day, row in rows.items():
                rank = ranks.get((keyword.phrase, day.isoformat()))
                if rank is None:
                    assert row.is_estimate
                else:
                    assert not row.is_estimate
                    assert row.position == rank
                    assert row.url == f"https://example.com/{rank}"
        assert _rows(session, keywords[2].id) == []

    def test_gaps_skipped_when_fill_disabled(
        self, session, provider_client, online_settings, fake_provider, domain, keywords
    ):
        settings = online_settings.model_copy(update={"history_fill_gaps": False})
        checker = RankChecker(provider_client, settings)
        fake_provider.history = lambda task: (
            historical_task([organic(9, "https://example.com/")])
            if task["keyword"] == "deck cleaning"
            else failed_task()
        )

        assert checker.fetch_history_batch(session, keywords, domain, months=2) == 2
        assert _rows(session, keywords[0].id) == []
        assert [row.position for row in _rows(session, keywords[2].id)] == [9, 9]

    def test_request_failure_writes_nothing(self, session, online_settings, domain, keywords):
        client = RankProviderClient(
            online_settings, transport=httpx.MockTransport(lambda request: httpx.Response(403))
        )
        checker = RankChecker(client, online_settings)

        assert checker.fetch_history_batch(session, keywords, domain) == 0
        assert session.query(KeywordPosition).count() == 0

    def test_offline_batch(self, session, offline_checker, domain, keywords):
        assert offline_checker.fetch_history_batch(session, keywords, domain, months=4) == 12
        for keyword in keywords:
            assert len(_rows(session, keyword.id)) == 4

    def test_empty_keyword_list(self, session, online_checker, fake_provider, domain):
        assert online_checker.fetch_history_batch(session, [], domain) == 0
        assert fake_provider.requests == []
