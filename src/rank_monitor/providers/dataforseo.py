from __future__ import annotations

from datetime import date
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from rank_monitor.config.settings import Settings
from rank_monitor.parsers.dataforseo import OK_STATUS

LIVE_SERP_PATH = "/serp/google/organic/live/advanced"
SEARCH_VOLUME_PATH = "/keywords_data/google_ads/search_volume/live"
HISTORICAL_SERPS_PATH = "/dataforseo_labs/google/historical_serps/live"


class ProviderError(Exception):
    pass


class RetriableStatus(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class RankProviderClient:
    """Thin client over the DataForSEO v3 endpoints the engine uses.

    Every endpoint takes a JSON array of tasks and answers with one result
    block per task, in request order.
    """

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None) -> None:
        if not settings.has_provider_credentials:
            raise ValueError("DataForSEO credentials are not configured")
        self._settings = settings
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> RankProviderClient | None:
        """Client for ``settings``, or None when running without credentials."""
        if not settings.has_provider_credentials:
            return None
        return cls(settings)

    def live_task(self, phrase: str, location: str, language: str) -> dict[str, Any]:
        return {
            "keyword": phrase,
            "location_name": location,
            "language_code": language,
            "device": "desktop",
            "os": "windows",
            "depth": self._settings.serp_depth,
        }

    def historical_task(
        self, phrase: str, location: str, language: str, day: date
    ) -> dict[str, Any]:
        return {
            "keyword": phrase,
            "location_name": location,
            "language_code": language,
            "date_from": day.isoformat(),
            "date_to": day.isoformat(),
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((RetriableStatus, httpx.TransportError)),
        reraise=True,
    )
    def _post(self, path: str, tasks: list[dict[str, Any]]) -> dict[str, Any]:
        url = f"{self._settings.dataforseo_base_url.rstrip('/')}{path}"
        auth = (self._settings.dataforseo_login or "", self._settings.dataforseo_password or "")
        timeout = httpx.Timeout(self._settings.http_timeout)
        with httpx.Client(timeout=timeout, auth=auth, transport=self._transport) as client:
            response = client.post(url, json=tasks)
            if response.status_code == 429 or response.status_code >= 500:
                raise RetriableStatus(response.status_code)
            if response.is_error:
                raise ProviderError(f"API error: {response.status_code}")
            return response.json()

    def post_tasks(self, path: str, tasks: list[dict[str, Any]]) -> list[dict[str, Any]]:
        payload = self._post(path, tasks)
        if not isinstance(payload, dict):
            raise ProviderError("Malformed response")
        if payload.get("status_code") != OK_STATUS:
            raise ProviderError(payload.get("status_message") or "No results")
        result = payload.get("tasks") or []
        if not isinstance(result, list):
            raise ProviderError("Malformed response")
        return result

    def live_serp(self, tasks: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self.post_tasks(LIVE_SERP_PATH, tasks)

    def search_volume(
        self, phrases: list[str], location: str, language: str
    ) -> list[dict[str, Any]]:
        task = {"keywords": phrases, "location_name": location, "language_code": language}
        return self.post_tasks(SEARCH_VOLUME_PATH, [task])

    def historical_serps(self, tasks: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self.post_tasks(HISTORICAL_SERPS_PATH, tasks)
