"""Shared fixtures: a throwaway SQLite database, settings and a fake DataForSEO."""

from __future__ import annotations

import json
import random
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rank_monitor.config.settings import Settings
from rank_monitor.db.base import Base
from rank_monitor.db.models import Domain, Keyword, KeywordStatus, RefreshFrequency
from rank_monitor.providers.dataforseo import RankProviderClient
from rank_monitor.services.rank_checker import RankChecker


def envelope(tasks: list[dict[str, Any]]) -> dict[str, Any]:
    return {"status_code": 20000, "status_message": "Ok.", "tasks": tasks}


def live_task(items: list[dict[str, Any]], search_volume: int | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"items": items}
    if search_volume is not None:
        result["search_volume"] = search_volume
    return {"status_code": 20000, "status_message": "Ok.", "result": [result]}


def failed_task(message: str = "No Search Results.") -> dict[str, Any]:
    return {"status_code": 40501, "status_message": message, "result": None}


def organic(rank: int, url: str) -> dict[str, Any]:
    return {"type": "organic", "rank_absolute": rank, "url": url}


def historical_task(serp_items: list[dict[str, Any]]) -> dict[str, Any]:
    elements = [{"serp_item": item} for item in serp_items]
    return {
        "status_code": 20000,
        "status_message": "Ok.",
        "result": [{"items": [{"ranked_serp_element": elements}]}],
    }


class FakeDataForSEO:
    """Routes provider requests by endpoint and records every task it saw."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, list[dict[str, Any]]]] = []
        self.live: Callable[[dict[str, Any]], dict[str, Any]] = lambda task: live_task([])
        self.history: Callable[[dict[str, Any]], dict[str, Any]] = lambda task: failed_task()
        self.metrics: Callable[[dict[str, Any]], dict[str, Any]] = lambda task: failed_task()
        self.before_live: Callable[[dict[str, Any]], None] | None = None

    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        tasks = json.loads(request.content)
        path = request.url.path
        self.requests.append((path, tasks))
        if path.endswith("/serp/google/organic/live/advanced"):
            if self.before_live is not None:
                self.before_live(tasks[0])
            return httpx.Response(200, json=envelope([self.live(task) for task in tasks]))
        if path.endswith("/historical_serps/live"):
            return httpx.Response(200, json=envelope([self.history(task) for task in tasks]))
        if path.endswith("/search_volume/live"):
            return httpx.Response(200, json=envelope([self.metrics(task) for task in tasks]))
        return httpx.Response(404, json={"status_code": 40400, "status_message": "Not Found."})


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'rank.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def offline_settings() -> Settings:
    return Settings(_env_file=None, DATAFORSEO_LOGIN=None, DATAFORSEO_PASSWORD=None)


@pytest.fixture
def online_settings() -> Settings:
    return Settings(
        _env_file=None,
        DATAFORSEO_LOGIN="user@example.com",
        DATAFORSEO_PASSWORD="secret",
        DATAFORSEO_BASE_URL="https://api.dataforseo.test/v3",
    )


@pytest.fixture
def fake_provider() -> FakeDataForSEO:
    return FakeDataForSEO()


@pytest.fixture
def provider_client(online_settings, fake_provider) -> RankProviderClient:
    return RankProviderClient(online_settings, transport=httpx.MockTransport(fake_provider))


@pytest.fixture
def online_checker(provider_client, online_settings) -> RankChecker:
    return RankChecker(provider_client, online_settings, rng=random.Random(7))


@pytest.fixture
def offline_checker(offline_settings) -> RankChecker:
    return RankChecker(None, offline_settings, rng=random.Random(42))


@pytest.fixture
def domain(session) -> Domain:
    row = Domain(
        domain="example.com",
        refresh_frequency=RefreshFrequency.daily,
        search_engine="google",
        location="United States",
        language="en",
    )
    session.add(row)
    session.commit()
    return row


@pytest.fixture
def keywords(session, domain) -> list[Keyword]:
    rows = [
        Keyword(domain_id=domain.id, phrase=phrase, status=KeywordStatus.active)
        for phrase in ("car wash near me", "pressure washing", "deck cleaning")
    ]
    session.add_all(rows)
    session.commit()
    return rows
