from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from rank_monitor.config.settings import Settings, get_settings
from rank_monitor.db.models import JobStatus
from rank_monitor.db.repositories import jobs as job_store
from rank_monitor.utils.dates import utcnow

logger = logging.getLogger(__name__)

PENDING_TIMEOUT_ERROR = "timed out in pending state"
PROCESSING_TIMEOUT_ERROR = "timed out during processing"


def reap_stuck_jobs(
    session: Session,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> list[int]:
    """Fail jobs stuck in ``pending`` or ``processing`` past their timeout.

    Keywords are released through their back-reference to the job, not the
    job's own keyword list. Runs without any coordination with a live
    processor; the conditional status update decides who wins.
    """
    settings = settings or get_settings()
    now = now or utcnow()
    sweeps = [
        (
            JobStatus.pending,
            timedelta(minutes=settings.pending_timeout_minutes),
            PENDING_TIMEOUT_ERROR,
        ),
        (
            JobStatus.processing,
            timedelta(minutes=settings.processing_timeout_minutes),
            PROCESSING_TIMEOUT_ERROR,
        ),
    ]

    reaped: list[int] = []
    for status, timeout, error in sweeps:
        for job_id in job_store.stale_job_ids(session, status, now - timeout):
            moved = job_store.transition_job(
                session,
                job_id,
                JobStatus.failed,
                from_statuses=(status,),
                error=error,
                completed_at=now,
            )
            if not moved:
                continue
            released = job_store.release_job_keywords(session, job_id)
            session.commit()
            logger.warning("Reaped job %s (%s), released %d keywords", job_id, error, released)
            reaped.append(job_id)
    session.commit()
    if reaped:
        logger.info("Stuck job sweep failed %d jobs", len(reaped))
    return reaped
