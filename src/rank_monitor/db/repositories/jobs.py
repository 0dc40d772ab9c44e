"""Persistence for keyword check jobs and the per-keyword checking state.

Status changes are single conditional UPDATE statements guarded by the
expected current status. That atomic row update is the only concurrency
primitive the engine relies on: when the reaper, a cancellation and a
processor race on the same job, whichever statement lands first wins and the
others become no-ops instead of moving the job backwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from rank_monitor.db.models import CheckingStatus, JobStatus, Keyword, KeywordCheckJob
from rank_monitor.utils.dates import utcnow


def _expire_cached(session: Session, model: type, ids: Iterable[int]) -> None:
    # rows changed behind the ORM's back; drop any stale copies
    for row_id in ids:
        cached = session.identity_map.get(session.identity_key(model, row_id))
        if cached is not None:
            session.expire(cached)


def insert_job(session: Session, domain_id: int, keyword_ids: Sequence[int]) -> KeywordCheckJob:
    job = KeywordCheckJob(
        domain_id=domain_id,
        status=JobStatus.pending,
        total_keywords=len(keyword_ids),
        processed_keywords=0,
        failed_keywords=0,
        keyword_ids=list(keyword_ids),
        created_at=utcnow(),
    )
    session.add(job)
    session.flush()
    return job


def get_job(session: Session, job_id: int) -> KeywordCheckJob | None:
    return session.get(KeywordCheckJob, job_id)


def read_status(session: Session, job_id: int) -> JobStatus | None:
    """Current persisted status, bypassing whatever the session has cached."""
    stmt = select(KeywordCheckJob.status).where(KeywordCheckJob.id == job_id)
    return session.execute(stmt).scalar_one_or_none()


def active_job_for_domain(session: Session, domain_id: int) -> KeywordCheckJob | None:
    stmt = (
        select(KeywordCheckJob)
        .where(
            KeywordCheckJob.domain_id == domain_id,
            KeywordCheckJob.status.in_(JobStatus.active()),
        )
        .order_by(KeywordCheckJob.created_at.desc(), KeywordCheckJob.id.desc())
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def active_jobs(session: Session) -> list[KeywordCheckJob]:
    stmt = (
        select(KeywordCheckJob)
        .where(KeywordCheckJob.status.in_(JobStatus.active()))
        .order_by(KeywordCheckJob.created_at.asc(), KeywordCheckJob.id.asc())
    )
    return list(session.execute(stmt).scalars())


def stale_job_ids(session: Session, status: JobStatus, cutoff: datetime) -> list[int]:
    """Jobs in ``status`` whose clock started before ``cutoff``.

    Pending jobs are timed from ``created_at``; processing jobs from
    ``started_at``, falling back to ``created_at``.
    """
    if status == JobStatus.pending:
        started = KeywordCheckJob.created_at
    else:
        started = func.coalesce(KeywordCheckJob.started_at, KeywordCheckJob.created_at)
    stmt = (
        select(KeywordCheckJob.id)
        .where(KeywordCheckJob.status == status, started < cutoff)
        .order_by(KeywordCheckJob.id)
    )
    return list(session.execute(stmt).scalars())


def transition_job(
    session: Session,
    job_id: int,
    to_status: JobStatus,
    *,
    from_statuses: Iterable[JobStatus],
    **values: Any,
) -> bool:
    """Move a job to ``to_status`` if it is currently in one of ``from_statuses``.

    Extra column values (``started_at``, ``completed_at``, ``error``...) are
    written in the same statement. Returns False when the job was not in an
    expected state, in which case nothing is written.
    """
    stmt = (
        update(KeywordCheckJob)
        .where(
            KeywordCheckJob.id == job_id,
            KeywordCheckJob.status.in_(tuple(from_statuses)),
        )
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    moved = session.execute(stmt).rowcount == 1
    _expire_cached(session, KeywordCheckJob, [job_id])
    return moved


def _update_processing_job(session: Session, job_id: int, **values: Any) -> bool:
    stmt = (
        update(KeywordCheckJob)
        .where(
            KeywordCheckJob.id == job_id,
            KeywordCheckJob.status == JobStatus.processing,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    changed = session.execute(stmt).rowcount == 1
    _expire_cached(session, KeywordCheckJob, [job_id])
    return changed


def set_current_keyword(session: Session, job_id: int, keyword_id: int) -> bool:
    return _update_processing_job(session, job_id, current_keyword_id=keyword_id)


def record_progress(session: Session, job_id: int, processed: int, failed: int) -> bool:
    return _update_processing_job(
        session, job_id, processed_keywords=processed, failed_keywords=failed
    )


def mark_keywords(
    session: Session,
    keyword_ids: Sequence[int],
    job_id: int,
    status: CheckingStatus = CheckingStatus.queued,
) -> int:
    if not keyword_ids:
        return 0
    stmt = (
        update(Keyword)
        .where(Keyword.id.in_(list(keyword_ids)))
        .values(checking_status=status, check_job_id=job_id)
        .execution_options(synchronize_session=False)
    )
    count = session.execute(stmt).rowcount
    _expire_cached(session, Keyword, keyword_ids)
    return count


def set_keyword_status(
    session: Session, keyword_id: int, job_id: int, status: CheckingStatus
) -> bool:
    """Update a keyword's checking status if it is still owned by ``job_id``."""
    stmt = (
        update(Keyword)
        .where(Keyword.id == keyword_id, Keyword.check_job_id == job_id)
        .values(checking_status=status)
        .execution_options(synchronize_session=False)
    )
    changed = session.execute(stmt).rowcount == 1
    _expire_cached(session, Keyword, [keyword_id])
    return changed


def clear_keywords(session: Session, keyword_ids: Sequence[int], job_id: int) -> int:
    """Drop the checking state of ``keyword_ids`` that still point at ``job_id``."""
    if not keyword_ids:
        return 0
    stmt = (
        update(Keyword)
        .where(Keyword.id.in_(list(keyword_ids)), Keyword.check_job_id == job_id)
        .values(checking_status=None, check_job_id=None)
        .execution_options(synchronize_session=False)
    )
    count = session.execute(stmt).rowcount
    _expire_cached(session, Keyword, keyword_ids)
    return count


def release_job_keywords(session: Session, job_id: int) -> int:
    """Drop the checking state of every keyword whose back-reference is ``job_id``."""
    keyword_ids = list(
        session.execute(select(Keyword.id).where(Keyword.check_job_id == job_id)).scalars()
    )
    if not keyword_ids:
        return 0
    stmt = (
        update(Keyword)
        .where(Keyword.check_job_id == job_id)
        .values(checking_status=None, check_job_id=None)
        .execution_options(synchronize_session=False)
    )
    count = session.execute(stmt).rowcount
    _expire_cached(session, Keyword, keyword_ids)
    return count
