from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler

from rank_monitor.config.settings import get_settings
from rank_monitor.db.models import RefreshFrequency
from rank_monitor.db.session import get_session, get_session_factory
from rank_monitor.providers.dataforseo import RankProviderClient
from rank_monitor.services.rank_checker import RankChecker
from rank_monitor.worker.processor import JobProcessor
from rank_monitor.worker.reaper import reap_stuck_jobs
from rank_monitor.worker.refresh import refresh_domains

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler | None = None


def build_checker() -> RankChecker:
    settings = get_settings()
    client = RankProviderClient.from_settings(settings)
    if client is None:
        logger.warning("DataForSEO credentials missing, rank checks are simulated")
    return RankChecker(client, settings)


def process_job(job_id: int) -> None:
    JobProcessor(get_session_factory(), build_checker()).process(job_id)


def run_inline(job_id: int) -> None:
    """Dispatch that processes the job in the calling thread."""
    process_job(job_id)


def _reap_stuck_jobs() -> None:
    with get_session() as session:
        reap_stuck_jobs(session)


def _refresh_daily() -> None:
    refresh_domains(RefreshFrequency.daily, get_session_factory(), build_checker())


def _refresh_weekly() -> None:
    refresh_domains(RefreshFrequency.weekly, get_session_factory(), build_checker())


def _add_periodic_jobs(scheduler: BaseScheduler) -> None:
    settings = get_settings()
    scheduler.add_job(
        _reap_stuck_jobs,
        "interval",
        minutes=settings.reaper_interval_minutes,
        id="cleanup_stuck_jobs",
        coalesce=True,
        misfire_grace_time=60,
        max_instances=1,
    )
    scheduler.add_job(
        _refresh_daily,
        "cron",
        hour=6,
        minute=0,
        id="daily_keyword_refresh",
        coalesce=True,
        misfire_grace_time=3600,
        max_instances=1,
    )
    scheduler.add_job(
        _refresh_weekly,
        "cron",
        day_of_week="mon",
        hour=7,
        minute=0,
        id="weekly_keyword_refresh",
        coalesce=True,
        misfire_grace_time=3600,
        max_instances=1,
    )


def start_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler
    settings = get_settings()
    _scheduler = BackgroundScheduler(timezone=settings.scheduler_tz)
    _add_periodic_jobs(_scheduler)
    _scheduler.start()
    return _scheduler


def schedule_job(job_id: int) -> None:
    """Dispatch that runs the processor once, in the background scheduler's pool."""
    if _scheduler is None or not _scheduler.running:
        raise RuntimeError("Background scheduler is not running")
    _scheduler.add_job(
        process_job,
        "date",
        args=[job_id],
        id=f"keyword_check_job_{job_id}",
        misfire_grace_time=None,
    )


def run_forever() -> None:
    settings = get_settings()
    scheduler = BlockingScheduler(timezone=settings.scheduler_tz)
    _add_periodic_jobs(scheduler)
    logger.info("Scheduler started (tz=%s)", settings.scheduler_tz)
    scheduler.start()
