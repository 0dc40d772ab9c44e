"""Background worker that drives one keyword check job to a terminal state.

Keywords are checked strictly one after another, so a job never has more
than one provider request in flight. Cancellation is cooperative: the
persisted job status is re-read before every keyword and again after each
provider call, and the loop exits as soon as the job is no longer
``processing``. Per-keyword failures are recorded on the keyword and in
``failed_keywords``; they never fail the job.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from rank_monitor.db.models import CheckingStatus, Domain, JobStatus, Keyword
from rank_monitor.db.repositories import jobs as job_store
from rank_monitor.db.repositories.keywords import mark_domain_refreshed
from rank_monitor.db.repositories.positions import count_positions
from rank_monitor.services.rank_checker import RankChecker
from rank_monitor.utils.dates import utcnow

logger = logging.getLogger(__name__)

DOMAIN_NOT_FOUND = "domain not found"


class JobProcessor:
    def __init__(self, session_factory: Callable[[], Session], checker: RankChecker) -> None:
        self._session_factory = session_factory
        self._checker = checker

    def process(self, job_id: int) -> JobStatus | None:
        """Run job ``job_id`` and return the status it was left in.

        Unexpected persistence errors are logged and swallowed; the job then
        stays non-terminal until the stuck-job reaper fails it.
        """
        with self._session_factory() as session:
            try:
                return self._process(session, job_id)
            except Exception:
                session.rollback()
                logger.exception("Job %s aborted", job_id)
                return None

    def _process(self, session: Session, job_id: int) -> JobStatus | None:
        job = job_store.get_job(session, job_id)
        if job is None:
            logger.error("Job %s not found", job_id)
            return None
        if job.status == JobStatus.cancelled:
            logger.info("Job %s was cancelled before it started", job_id)
            return job.status
        if job.status != JobStatus.pending:
            logger.warning("Job %s is already %s, skipping", job_id, job.status.value)
            return job.status

        keyword_ids = list(job.keyword_ids)
        total = job.total_keywords
        domain_id = job.domain_id
        domain = session.get(Domain, domain_id)
        if domain is None:
            job_store.transition_job(
                session,
                job_id,
                JobStatus.failed,
                from_statuses=(JobStatus.pending,),
                error=DOMAIN_NOT_FOUND,
                completed_at=utcnow(),
            )
            job_store.clear_keywords(session, keyword_ids, job_id)
            session.commit()
            logger.error("Job %s failed: domain %s not found", job_id, domain_id)
            return JobStatus.failed

        domain_name = domain.domain
        started = job_store.transition_job(
            session,
            job_id,
            JobStatus.processing,
            from_statuses=(JobStatus.pending,),
            started_at=utcnow(),
        )
        session.commit()
        if not started:
            logger.info("Job %s left pending before it could start", job_id)
            return job_store.read_status(session, job_id)
        logger.info("Starting job %s for %s (%d keywords)", job_id, domain_name, total)

        processed = 0
        failed = 0
        for keyword_id in keyword_ids:
            status = job_store.read_status(session, job_id)
            if status != JobStatus.processing:
                logger.info("Job %s is %s, stopping", job_id, status.value if status else None)
                return status

            keyword = session.get(Keyword, keyword_id)
            if keyword is None:
                logger.error("Job %s: keyword %s not found", job_id, keyword_id)
                processed += 1
                failed += 1
                job_store.record_progress(session, job_id, processed, failed)
                session.commit()
                continue

            phrase = keyword.phrase
            job_store.set_current_keyword(session, job_id, keyword_id)
            job_store.set_keyword_status(session, keyword_id, job_id, CheckingStatus.checking)
            session.commit()
            logger.info("Job %s: checking %r (%d/%d)", job_id, phrase, processed + 1, total)

            outcome = CheckingStatus.failed
            try:
                first_check = count_positions(session, keyword_id) == 0
                result = self._checker.check_position(
                    session, keyword, domain, with_history=first_check
                )
                if result.success:
                    outcome = CheckingStatus.completed
                else:
                    logger.warning("Job %s: check failed for %r: %s", job_id, phrase, result.error)
            except Exception:
                session.rollback()
                logger.exception("Job %s: error checking %r", job_id, phrase)

            # the job may have been cancelled or reaped while the call was in flight
            status = job_store.read_status(session, job_id)
            if status != JobStatus.processing:
                logger.info(
                    "Job %s became %s while %r was in flight, stopping",
                    job_id,
                    status.value if status else None,
                    phrase,
                )
                return status

            job_store.set_keyword_status(session, keyword_id, job_id, outcome)
            processed += 1
            if outcome == CheckingStatus.failed:
                failed += 1
            job_store.record_progress(session, job_id, processed, failed)
            session.commit()
            logger.info("Job %s progress: %d/%d, failed: %d", job_id, processed, total, failed)

        completed = job_store.transition_job(
            session,
            job_id,
            JobStatus.completed,
            from_statuses=(JobStatus.processing,),
            completed_at=utcnow(),
            current_keyword_id=None,
        )
        job_store.clear_keywords(session, keyword_ids, job_id)
        if completed:
            mark_domain_refreshed(session, domain_id, utcnow())
        session.commit()
        if not completed:
            status = job_store.read_status(session, job_id)
            logger.warning("Job %s finished its loop but is already %s", job_id, status)
            return status

        logger.info(
            "Job %s completed: %d/%d processed, %d failed", job_id, processed, total, failed
        )
        return JobStatus.completed
