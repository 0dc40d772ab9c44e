from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from rank_monitor.config.loaders import DomainSeed, normalize_phrase
from rank_monitor.db.models import Domain, Keyword, KeywordStatus, RefreshFrequency


def domain_ids_for_frequency(session: Session, frequency: RefreshFrequency) -> list[int]:
    stmt = select(Domain.id).where(Domain.refresh_frequency == frequency).order_by(Domain.id)
    return list(session.execute(stmt).scalars())


def active_keywords(session: Session, domain_id: int) -> list[Keyword]:
    stmt = (
        select(Keyword)
        .where(Keyword.domain_id == domain_id, Keyword.status == KeywordStatus.active)
        .order_by(Keyword.id)
    )
    return list(session.execute(stmt).scalars())


def sync_domain(session: Session, seed: DomainSeed) -> tuple[Domain, list[Keyword]]:
    """Create or update the domain described by ``seed`` and add its new keywords.

    Returns the domain and the keywords created by this call.
    """
    domain = session.execute(
        select(Domain).where(Domain.domain == seed.domain)
    ).scalar_one_or_none()
    if domain is None:
        domain = Domain(domain=seed.domain)
        session.add(domain)
    domain.location = seed.location
    domain.language = seed.language
    domain.search_engine = seed.search_engine
    domain.refresh_frequency = RefreshFrequency(seed.refresh_frequency)
    session.flush()
    created = add_keywords(session, domain.id, seed.keywords)
    return domain, created


def add_keywords(session: Session, domain_id: int, phrases: list[str]) -> list[Keyword]:
    """Insert phrases not yet tracked for the domain; returns only the new rows."""
    existing = set(
        session.execute(select(Keyword.phrase).where(Keyword.domain_id == domain_id)).scalars()
    )
    created: list[Keyword] = []
    for raw in phrases:
        phrase = normalize_phrase(raw)
        if not phrase or phrase in existing:
            continue
        keyword = Keyword(domain_id=domain_id, phrase=phrase, status=KeywordStatus.active)
        session.add(keyword)
        existing.add(phrase)
        created.append(keyword)
    session.flush()
    return created


def mark_domain_refreshed(session: Session, domain_id: int, when: datetime) -> bool:
    """Stamp ``last_refreshed_at``; a domain deleted in the meantime is left alone."""
    stmt = (
        update(Domain)
        .where(Domain.id == domain_id)
        .values(last_refreshed_at=when)
        .execution_options(synchronize_session=False)
    )
    changed = session.execute(stmt).rowcount == 1
    cached = session.identity_map.get(session.identity_key(Domain, domain_id))
    if cached is not None:
        session.expire(cached)
    return changed
