"""CLI for keyword check jobs."""

from __future__ import annotations

import argparse
import sys

from rank_monitor.config.settings import get_settings
from rank_monitor.db.models import Domain, KeywordCheckJob
from rank_monitor.db.repositories.keywords import active_keywords
from rank_monitor.db.session import get_session
from rank_monitor.services.job_service import JobNotCancellable, JobNotFound, JobService
from rank_monitor.utils.logs import setup_logging
from rank_monitor.worker.reaper import reap_stuck_jobs
from rank_monitor.worker.scheduler import run_inline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create, inspect and cancel keyword check jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Check keywords of a domain now")
    create.add_argument("--domain-id", type=int, required=True)
    create.add_argument(
        "--keyword-id",
        type=int,
        action="append",
        default=None,
        help="Keyword to check (repeatable); defaults to all active keywords",
    )

    status = sub.add_parser("status", help="Show a job")
    status.add_argument("--job-id", type=int, required=True)

    cancel = sub.add_parser("cancel", help="Cancel a pending or processing job")
    cancel.add_argument("--job-id", type=int, required=True)

    sub.add_parser("reap", help="Fail jobs stuck past their timeout")
    return parser


def _describe(job: KeywordCheckJob) -> str:
    line = (
        f"Job {job.id} domain={job.domain_id} status={job.status.value} "
        f"processed={job.processed_keywords}/{job.total_keywords} "
        f"failed={job.failed_keywords}"
    )
    if job.error:
        line += f" error={job.error!r}"
    return line


def _create(args: argparse.Namespace) -> int:
    with get_session() as session:
        domain = session.get(Domain, args.domain_id)
        if domain is None:
            print(f"Domain {args.domain_id} not found")
            return 1
        keyword_ids = args.keyword_id or [k.id for k in active_keywords(session, domain.id)]
        if not keyword_ids:
            print(f"No active keywords for {domain.domain}")
            return 1
        job_id = JobService(session, dispatch=run_inline).create_job(domain.id, keyword_ids)

    with get_session() as session:
        print(_describe(session.get(KeywordCheckJob, job_id)))
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(get_settings().log_level)

    if args.command == "create":
        sys.exit(_create(args))

    with get_session() as session:
        if args.command == "reap":
            reaped = reap_stuck_jobs(session)
            print(f"Reaped {len(reaped)} jobs")
            return

        service = JobService(session, dispatch=run_inline)
        if args.command == "status":
            job = service.get_job(args.job_id)
            if job is None:
                print(f"Job not found: {args.job_id}")
                sys.exit(1)
            print(_describe(job))
            return

        try:
            job = service.cancel_job(args.job_id)
        except (JobNotFound, JobNotCancellable) as exc:
            print(str(exc))
            sys.exit(1)
        print(_describe(job))


if __name__ == "__main__":
    main()
