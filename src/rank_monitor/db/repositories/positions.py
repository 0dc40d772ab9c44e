"""Per-keyword, per-day rank observations.

Rows are keyed logically by ``(keyword_id, date)``: a second write for the same
day overwrites the first. Nothing here deletes rows.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from rank_monitor.db.models import Keyword, KeywordPosition
from rank_monitor.utils.dates import utcnow


def upsert_position(
    session: Session,
    keyword_id: int,
    day: date,
    position: int | None,
    url: str | None,
    *,
    search_volume: int | None = None,
    difficulty: int | None = None,
    cpc: float | None = None,
    is_estimate: bool = False,
) -> KeywordPosition:
    now = utcnow()
    row = session.execute(
        select(KeywordPosition).where(
            KeywordPosition.keyword_id == keyword_id,
            KeywordPosition.date == day,
        )
    ).scalar_one_or_none()
    if row is None:
        row = KeywordPosition(keyword_id=keyword_id, date=day)
        session.add(row)
    row.position = position
    row.url = url
    row.search_volume = search_volume
    row.difficulty = difficulty
    row.cpc = cpc
    row.is_estimate = is_estimate
    row.fetched_at = now
    session.execute(
        update(Keyword).where(Keyword.id == keyword_id).values(last_updated=now)
    )
    session.flush()
    return row


def count_positions(session: Session, keyword_id: int) -> int:
    stmt = select(func.count(KeywordPosition.id)).where(
        KeywordPosition.keyword_id == keyword_id
    )
    return session.execute(stmt).scalar_one()


def positions_for_keyword(
    session: Session, keyword_id: int, limit: int | None = None
) -> list[KeywordPosition]:
    stmt = (
        select(KeywordPosition)
        .where(KeywordPosition.keyword_id == keyword_id)
        .order_by(KeywordPosition.date.desc())
    )
    if limit:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars())


def latest_position(session: Session, keyword_id: int) -> KeywordPosition | None:
    rows = positions_for_keyword(session, keyword_id, limit=1)
    return rows[0] if rows else None
