"""Run the reaper and refresh schedules in a dedicated process."""

from __future__ import annotations

from rank_monitor.config.settings import get_settings
from rank_monitor.utils.logs import setup_logging
from rank_monitor.worker.scheduler import run_forever


def main() -> None:
    setup_logging(get_settings().log_level)
    run_forever()


if __name__ == "__main__":
    main()
