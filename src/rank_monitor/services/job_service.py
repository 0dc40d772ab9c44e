from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from sqlalchemy.orm import Session

from rank_monitor.db.models import JobStatus, KeywordCheckJob
from rank_monitor.db.repositories import jobs as job_store
from rank_monitor.utils.dates import utcnow

logger = logging.getLogger(__name__)

Dispatch = Callable[[int], None]


class JobNotFound(Exception):
    def __init__(self, job_id: int) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class JobNotCancellable(Exception):
    def __init__(self, job_id: int, status: JobStatus | None) -> None:
        label = status.value if status else "unknown"
        super().__init__(f"Cannot cancel job in status: {label}")
        self.job_id = job_id
        self.status = status


class JobService:
    """Creates, cancels and reads keyword check jobs.

    ``dispatch`` receives the id of every new job once it is committed and is
    expected to start the processor without blocking the caller.
    """

    def __init__(self, session: Session, dispatch: Dispatch) -> None:
        self._session = session
        self._dispatch = dispatch

    def create_job(self, domain_id: int, keyword_ids: Sequence[int]) -> int:
        # keyword ownership is the caller's responsibility
        if not keyword_ids:
            raise ValueError("keyword_ids must not be empty")
        job = job_store.insert_job(self._session, domain_id, keyword_ids)
        job_store.mark_keywords(self._session, keyword_ids, job.id)
        self._session.commit()
        job_id = job.id
        logger.info(
            "Created keyword check job %s for domain %s (%d keywords)",
            job_id,
            domain_id,
            len(keyword_ids),
        )
        self._dispatch(job_id)
        return job_id

    def cancel_job(self, job_id: int) -> KeywordCheckJob:
        job = job_store.get_job(self._session, job_id)
        if job is None:
            raise JobNotFound(job_id)
        if job.status.is_terminal:
            raise JobNotCancellable(job_id, job.status)

        moved = job_store.transition_job(
            self._session,
            job_id,
            JobStatus.cancelled,
            from_statuses=JobStatus.active(),
            completed_at=utcnow(),
        )
        if not moved:
            # finished or reaped between the read and the update
            self._session.rollback()
            raise JobNotCancellable(job_id, job_store.read_status(self._session, job_id))

        released = job_store.release_job_keywords(self._session, job_id)
        self._session.commit()
        logger.info("Cancelled job %s, released %d keywords", job_id, released)
        return job_store.get_job(self._session, job_id)

    def get_job(self, job_id: int) -> KeywordCheckJob | None:
        return job_store.get_job(self._session, job_id)

    def active_job_for_domain(self, domain_id: int) -> KeywordCheckJob | None:
        return job_store.active_job_for_domain(self._session, domain_id)

    def active_jobs(self) -> list[KeywordCheckJob]:
        return job_store.active_jobs(self._session)
