"""Provider call modes used by the job processor and the refresh scheduler.

Without provider credentials every call is simulated with pseudo-random
but plausible rows, so the engine can run end to end in development.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from rank_monitor.config.settings import Settings
from rank_monitor.db.models import Domain, Keyword
from rank_monitor.db.repositories.positions import upsert_position
from rank_monitor.parsers.dataforseo import (
    KeywordMetrics,
    parse_historical_task,
    parse_keyword_metrics,
    parse_live_task,
)
from rank_monitor.providers.dataforseo import RankProviderClient
from rank_monitor.utils.dates import previous_month_starts, utc_today, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    success: bool
    position: int | None = None
    error: str | None = None
    history_rows: int = 0


def estimate_gap_position(rng: random.Random, base: int) -> int | None:
    """Placeholder rank for a month the provider has no snapshot for.

    Scatters around ``base`` and reports "not ranked" about one time in seven.
    Only ever stored with ``is_estimate=True``.
    """
    if rng.random() < 0.15:
        return None
    return max(1, base + rng.randint(-5, 4))


def _task_error(tasks: list[dict[str, Any]]) -> str:
    if tasks and isinstance(tasks[0], dict):
        return str(tasks[0].get("status_message") or "No results")
    return "No results"


class RankChecker:
    def __init__(
        self,
        client: RankProviderClient | None,
        settings: Settings,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._rng = rng or random.Random()

    @property
    def offline(self) -> bool:
        return self._client is None

    def check_position(
        self,
        session: Session,
        keyword: Keyword,
        domain: Domain,
        *,
        with_history: bool = False,
    ) -> CheckResult:
        """Fetch and store today's rank of ``keyword``.

        Routine mode issues one single-task live request. First-check mode
        (``with_history``) additionally backfills past months with a separate
        batched request. Errors come back as ``success=False``.
        """
        today = utc_today()
        if self._client is None:
            result = self._simulate_position(session, keyword, domain)
        else:
            task = self._client.live_task(keyword.phrase, domain.location, domain.language)
            try:
                tasks = self._client.live_serp([task])
            except Exception as exc:
                logger.warning("Live SERP lookup failed for %r: %s", keyword.phrase, exc)
                return CheckResult(success=False, error=str(exc)[:500])

            match = parse_live_task(tasks[0], domain.domain) if tasks else None
            if match is None:
                return CheckResult(success=False, error=_task_error(tasks))

            metrics = self._fetch_metrics([keyword.phrase], domain).get(keyword.phrase.lower())
            self._apply_metrics(keyword, metrics)
            upsert_position(
                session,
                keyword.id,
                today,
                match.position,
                match.url,
                search_volume=match.search_volume
                if match.search_volume is not None
                else (metrics.search_volume if metrics else None),
                difficulty=metrics.difficulty if metrics else None,
                cpc=metrics.cpc if metrics else None,
            )
            result = CheckResult(success=True, position=match.position)
        session.commit()

        if with_history:
            result.history_rows = self.fetch_history(session, keyword, domain)
        return result

    def fetch_history(
        self,
        session: Session,
        keyword: Keyword,
        domain: Domain,
        months: int | None = None,
    ) -> int:
        """Backfill the first day of each past month for one keyword."""
        return self.fetch_history_batch(session, [keyword], domain, months)

    def fetch_history_batch(
        self,
        session: Session,
        keywords: list[Keyword],
        domain: Domain,
        months: int | None = None,
    ) -> int:
        """Backfill past months for ``keywords`` in one request.

        The request carries one date-scoped task per keyword and date
        (keyword-major), and result slots map back to ``(keyword, date)`` by
        position. A slot without data is a gap, filled with an estimate when
        ``history_fill_gaps`` is on. Returns the number of rows written; a
        failed request writes nothing.
        """
        if not keywords:
            return 0
        months = months or self._settings.history_months
        dates = previous_month_starts(months)
        bases = {keyword.id: self._rng.randint(5, 34) for keyword in keywords}

        if self._client is None:
            for keyword in keywords:
                for idx, day in enumerate(dates):
                    position = None
                    if self._rng.random() > 0.1:
                        # older months rank a little worse
                        position = max(
                            1, bases[keyword.id] + (months - idx) * 2 + self._rng.randint(-5, 4)
                        )
                    upsert_position(
                        session,
                        keyword.id,
                        day,
                        position,
                        f"https://{domain.domain}/page" if position else None,
                        search_volume=self._rng.randint(500, 5499),
                    )
            session.commit()
            return len(keywords) * len(dates)

        slots = [(keyword, day) for keyword in keywords for day in dates]
        tasks = [
            self._client.historical_task(keyword.phrase, domain.location, domain.language, day)
            for keyword, day in slots
        ]
        try:
            results = self._client.historical_serps(tasks)
        except Exception as exc:
            logger.warning(
                "Historical SERP batch failed for %d keywords of %s: %s",
                len(keywords),
                domain.domain,
                exc,
            )
            return 0

        written = 0
        for idx, (keyword, day) in enumerate(slots):
            task = results[idx] if idx < len(results) else None
            match = parse_historical_task(task, domain.domain) if task else None
            if match is not None:
                upsert_position(
                    session,
                    keyword.id,
                    day,
                    match.position,
                    match.url,
                    search_volume=match.search_volume,
                )
                written += 1
            elif self._settings.history_fill_gaps:
                position = estimate_gap_position(self._rng, bases[keyword.id])
                upsert_position(
                    session,
                    keyword.id,
                    day,
                    position,
                    f"https://{domain.domain}/page" if position else None,
                    is_estimate=True,
                )
                written += 1
        session.commit()
        logger.info(
            "Stored %d historical positions for %d keywords of %s (%d months)",
            written,
            len(keywords),
            domain.domain,
            months,
        )
        return written

    def refresh_domain(self, session: Session, domain: Domain, keywords: list[Keyword]) -> int:
        """Bulk refresh: one request carrying one live task per keyword.

        A task slot without results stores a null position. Provider errors on
        the request itself propagate to the caller. Returns rows written.
        """
        today = utc_today()
        if self._client is None:
            for keyword in keywords:
                position = self._rng.randint(1, 50) if self._rng.random() > 0.2 else None
                upsert_position(
                    session,
                    keyword.id,
                    today,
                    position,
                    f"https://{domain.domain}/page-{self._rng.randint(0, 9)}" if position else None,
                    search_volume=self._rng.randint(0, 9999),
                    difficulty=self._rng.randint(0, 99),
                )
        else:
            tasks = [
                self._client.live_task(keyword.phrase, domain.location, domain.language)
                for keyword in keywords
            ]
            results = self._client.live_serp(tasks)
            for idx, keyword in enumerate(keywords):
                task = results[idx] if idx < len(results) else None
                match = parse_live_task(task, domain.domain) if task else None
                if match is None:
                    upsert_position(session, keyword.id, today, None, None)
                    continue
                upsert_position(
                    session,
                    keyword.id,
                    today,
                    match.position,
                    match.url,
                    search_volume=match.search_volume,
                )

            missing = [keyword for keyword in keywords if keyword.difficulty is None]
            if missing:
                logger.info("Fetching difficulty for %d keywords of %s", len(missing), domain.domain)
                metrics = self._fetch_metrics([keyword.phrase for keyword in missing], domain)
                for keyword in missing:
                    self._apply_metrics(keyword, metrics.get(keyword.phrase.lower()))

        domain.last_refreshed_at = utcnow()
        session.commit()
        return len(keywords)

    def _simulate_position(self, session: Session, keyword: Keyword, domain: Domain) -> CheckResult:
        position = self._rng.randint(1, 50) if self._rng.random() > 0.05 else None
        upsert_position(
            session,
            keyword.id,
            utc_today(),
            position,
            f"https://{domain.domain}/page-{self._rng.randint(0, 9)}" if position else None,
            search_volume=self._rng.randint(0, 9999),
            difficulty=self._rng.randint(0, 99),
        )
        return CheckResult(success=True, position=position)

    def _fetch_metrics(self, phrases: list[str], domain: Domain) -> dict[str, KeywordMetrics]:
        # best effort: a metrics failure never fails the rank lookup
        if self._client is None or not phrases:
            return {}
        try:
            tasks = self._client.search_volume(phrases, domain.location, domain.language)
        except Exception as exc:
            logger.warning("Keyword metrics lookup failed for %s: %s", domain.domain, exc)
            return {}
        return parse_keyword_metrics(tasks)

    @staticmethod
    def _apply_metrics(keyword: Keyword, metrics: KeywordMetrics | None) -> None:
        if metrics is None:
            return
        if metrics.search_volume is not None:
            keyword.search_volume = metrics.search_volume
        if metrics.difficulty is not None:
            keyword.difficulty = metrics.difficulty
