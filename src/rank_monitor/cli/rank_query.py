"""Quick one-off live rank lookup."""

from __future__ import annotations

import argparse
import json
import sys

from rank_monitor.config.settings import get_settings
from rank_monitor.parsers.dataforseo import parse_live_task
from rank_monitor.providers.dataforseo import RankProviderClient
from rank_monitor.utils.logs import setup_logging
from rank_monitor.utils.urls import normalize_domain


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one live SERP lookup and print JSON")
    parser.add_argument("--keyword", required=True, help="Search phrase")
    parser.add_argument("--domain", required=True, help="Tracked domain, e.g. example.com")
    parser.add_argument("--location", default="United States", help="Provider location name")
    parser.add_argument("--language", default="en", help="Provider language code")
    parser.add_argument("--raw", action="store_true", help="Print the raw task payload")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)
    client = RankProviderClient.from_settings(settings)
    if client is None:
        print("DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD must be set")
        sys.exit(1)

    domain = normalize_domain(args.domain)
    tasks = client.live_serp([client.live_task(args.keyword, args.location, args.language)])
    if args.raw:
        print(json.dumps(tasks, ensure_ascii=False, indent=2))
        return
    match = parse_live_task(tasks[0], domain) if tasks else None
    payload = {
        "keyword": args.keyword,
        "domain": domain,
        "position": match.position if match else None,
        "url": match.url if match else None,
        "found": bool(match and match.position is not None),
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
