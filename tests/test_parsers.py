"""Parsing of DataForSEO task payloads."""

from conftest import failed_task, historical_task, live_task, organic

from rank_monitor.parsers.dataforseo import (
    find_domain_match,
    parse_historical_task,
    parse_keyword_metrics,
    parse_live_task,
)


class TestFindDomainMatch:
    def test_first_organic_match_wins(self):
        items = [
            {"type": "paid", "rank_absolute": 1, "url": "https://example.com/ad"},
            organic(2, "https://other.org/"),
            organic(3, "https://www.example.com/services"),
            organic(4, "https://example.com/blog"),
        ]
        match = find_domain_match(items, "example.com")
        assert match["rank_absolute"] == 3

    def test_ignores_non_organic_items(self):
        items = [{"type": "featured_snippet", "rank_absolute": 1, "url": "https://example.com/"}]
        assert find_domain_match(items, "example.com") is None

    def test_skips_items_without_url(self):
        items = [{"type": "organic", "rank_absolute": 1}, organic(2, "https://example.com/")]
        assert find_domain_match(items, "example.com")["rank_absolute"] == 2


class TestParseLiveTask:
    def test_match(self):
        task = live_task([organic(7, "https://example.com/a")], search_volume=1300)
        match = parse_live_task(task, "example.com")
        assert match.position == 7
        assert match.url == "https://example.com/a"
        assert match.search_volume == 1300

    def test_no_match_is_null_position(self):
        match = parse_live_task(live_task([organic(1, "https://other.org/")]), "example.com")
        assert match is not None
        assert match.position is None
        assert match.url is None

    def test_failed_task_returns_none(self):
        assert parse_live_task(failed_task(), "example.com") is None

    def test_malformed_result_returns_none(self):
        task = {"status_code": 20000, "result": [{"items": None}]}
        assert parse_live_task(task, "example.com") is None


class TestParseHistoricalTask:
    def test_nested_serp_items(self):
        task = historical_task([organic(1, "https://other.org/"), organic(12, "https://example.com/x")])
        match = parse_historical_task(task, "example.com")
        assert match.position == 12
        assert match.url == "https://example.com/x"

    def test_empty_snapshot(self):
        task = {"status_code": 20000, "result": [{"items": []}]}
        match = parse_historical_task(task, "example.com")
        assert match.position is None

    def test_failed_task_is_a_gap(self):
        assert parse_historical_task(failed_task(), "example.com") is None


def test_parse_keyword_metrics():
    tasks = [
        {
            "status_code": 20000,
            "result": [
                {"keyword": "Deck Cleaning", "search_volume": 880, "competition": 0.437, "cpc": 2.1},
                {"keyword": "pressure washing", "search_volume": None, "competition": None},
            ],
        }
    ]
    metrics = parse_keyword_metrics(tasks)
    assert metrics["deck cleaning"].difficulty == 44
    assert metrics["deck cleaning"].search_volume == 880
    assert metrics["deck cleaning"].cpc == 2.1
    assert metrics["pressure washing"].difficulty is None


def test_parse_keyword_metrics_prefers_competition_index():
    tasks = [
        {
            "status_code": 20000,
            "result": [
                {"keyword": "car wash", "competition": "HIGH", "competition_index": 87},
                {"keyword": "deck stain", "competition": "LOW", "competition_index": None},
            ],
        }
    ]
    metrics = parse_keyword_metrics(tasks)
    assert metrics["car wash"].difficulty == 87
    assert metrics["deck stain"].difficulty is None
