from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rank_monitor.utils.urls import url_contains_domain

OK_STATUS = 20000


@dataclass
class RankMatch:
    position: int | None
    url: str | None
    search_volume: int | None = None


@dataclass
class KeywordMetrics:
    keyword: str
    search_volume: int | None
    difficulty: int | None
    cpc: float | None


def _first_result(task: dict[str, Any]) -> dict[str, Any] | None:
    if not isinstance(task, dict) or task.get("status_code") != OK_STATUS:
        return None
    result = task.get("result") or []
    if not isinstance(result, list) or not result or not isinstance(result[0], dict):
        return None
    return result[0]


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def find_domain_match(items: list[Any], domain: str) -> dict[str, Any] | None:
    for item in items:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "organic" and url_contains_domain(item.get("url"), domain):
            return item
    return None


def parse_live_task(task: dict[str, Any], domain: str) -> RankMatch | None:
    """Rank of ``domain`` in one live SERP task, or None if the task has no items."""
    result = _first_result(task)
    if result is None or not isinstance(result.get("items"), list):
        return None
    match = find_domain_match(result["items"], domain)
    search_volume = _as_int(result.get("search_volume"))
    if match is None:
        return RankMatch(position=None, url=None, search_volume=search_volume)
    return RankMatch(
        position=_as_int(match.get("rank_absolute")) or None,
        url=match.get("url") or None,
        search_volume=search_volume,
    )


def parse_historical_task(task: dict[str, Any], domain: str) -> RankMatch | None:
    """Rank of ``domain`` in one historical SERP snapshot.

    Snapshots nest the SERP under ``items[0].ranked_serp_element[].serp_item``.
    """
    result = _first_result(task)
    if result is None or not isinstance(result.get("items"), list):
        return None
    items = result["items"]
    snapshot = items[0] if items and isinstance(items[0], dict) else {}
    elements = snapshot.get("ranked_serp_element") or []
    serp_items = [el.get("serp_item") for el in elements if isinstance(el, dict)]
    match = find_domain_match(serp_items, domain)
    search_volume = _as_int(result.get("search_volume"))
    if match is None:
        return RankMatch(position=None, url=None, search_volume=search_volume)
    return RankMatch(
        position=_as_int(match.get("rank_absolute")) or None,
        url=match.get("url") or None,
        search_volume=search_volume,
    )


def _difficulty(row: dict[str, Any]) -> int | None:
    # competition is "LOW"/"MEDIUM"/"HIGH" on google_ads; the 0-100 score is competition_index
    index = row.get("competition_index")
    if isinstance(index, (int, float)) and not isinstance(index, bool):
        return round(index)
    competition = row.get("competition")
    if isinstance(competition, (int, float)) and not isinstance(competition, bool):
        return round(competition * 100)
    return None


def parse_keyword_metrics(tasks: list[dict[str, Any]]) -> dict[str, KeywordMetrics]:
    metrics: dict[str, KeywordMetrics] = {}
    for task in tasks:
        if not isinstance(task, dict) or task.get("status_code") != OK_STATUS:
            continue
        for row in task.get("result") or []:
            if not isinstance(row, dict) or not row.get("keyword"):
                continue
            difficulty = _difficulty(row)
            cpc = row.get("cpc")
            keyword = str(row["keyword"]).lower()
            metrics[keyword] = KeywordMetrics(
                keyword=keyword,
                search_volume=_as_int(row.get("search_volume")),
                difficulty=difficulty,
                cpc=float(cpc) if isinstance(cpc, (int, float)) else None,
            )
    return metrics
