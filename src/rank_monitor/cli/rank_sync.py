"""CLI to seed domains and keywords from a config file."""

from __future__ import annotations

import argparse

from rank_monitor.config.loaders import load_domain_seeds
from rank_monitor.config.settings import get_settings
from rank_monitor.db.models import Domain, Keyword
from rank_monitor.db.repositories.keywords import active_keywords, sync_domain
from rank_monitor.db.session import get_session
from rank_monitor.utils.logs import setup_logging
from rank_monitor.worker.scheduler import build_checker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync tracked domains and keywords")
    parser.add_argument("--config", required=True, help="Path to domains config (yaml/json)")
    parser.add_argument(
        "--history",
        action="store_true",
        help="Backfill past months for newly added keywords in one batch per domain",
    )
    parser.add_argument(
        "--refresh", action="store_true", help="Fetch today's positions for the synced domains"
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(get_settings().log_level)

    seeds = load_domain_seeds(args.config)
    if not seeds:
        print("No domains found in config")
        return

    synced: list[tuple[int, str, list[int]]] = []
    with get_session() as session:
        for seed in seeds:
            domain, created = sync_domain(session, seed)
            synced.append((domain.id, seed.domain, [keyword.id for keyword in created]))
        session.commit()
    added = sum(len(ids) for _, _, ids in synced)
    print(f"Synced {len(synced)} domains, {added} new keywords")

    if not args.history and not args.refresh:
        return
    checker = build_checker()
    for domain_id, name, new_ids in synced:
        with get_session() as session:
            domain = session.get(Domain, domain_id)
            if args.history and new_ids:
                new_keywords = [session.get(Keyword, keyword_id) for keyword_id in new_ids]
                written = checker.fetch_history_batch(session, new_keywords, domain)
                print(f"{name}: {written} historical positions")
            if args.refresh:
                keywords = active_keywords(session, domain_id)
                written = checker.refresh_domain(session, domain, keywords) if keywords else 0
                print(f"{name}: {written} positions")


if __name__ == "__main__":
    main()
