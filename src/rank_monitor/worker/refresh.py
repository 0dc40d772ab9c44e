from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from rank_monitor.db.models import Domain, RefreshFrequency
from rank_monitor.db.repositories.keywords import active_keywords, domain_ids_for_frequency
from rank_monitor.services.rank_checker import RankChecker

logger = logging.getLogger(__name__)


def refresh_domains(
    frequency: RefreshFrequency,
    session_factory: Callable[[], Session],
    checker: RankChecker,
) -> int:
    """Bulk-refresh every domain on the given cadence, outside the job engine.

    Each domain gets its own session; a failing domain is logged and the sweep
    moves on. Returns the number of domains visited.
    """
    with session_factory() as session:
        domain_ids = domain_ids_for_frequency(session, frequency)

    logger.info("Refreshing %d %s domains", len(domain_ids), frequency.value)
    for domain_id in domain_ids:
        with session_factory() as session:
            domain = session.get(Domain, domain_id)
            if domain is None:
                continue
            name = domain.domain
            try:
                keywords = active_keywords(session, domain_id)
                if not keywords:
                    continue
                written = checker.refresh_domain(session, domain, keywords)
                logger.info("Refreshed %s: %d positions", name, written)
            except Exception:
                session.rollback()
                logger.exception("Failed to refresh domain %s", name)
    return len(domain_ids)
