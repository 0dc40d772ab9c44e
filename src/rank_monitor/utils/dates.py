from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utcnow().date()


def previous_month_starts(months: int, today: date | None = None) -> list[date]:
    """First day of each of the ``months`` months before ``today``, newest first.

    The current month is excluded so a backfilled row never collides with the
    row written for today.
    """
    today = today or utc_today()
    result: list[date] = []
    year, month = today.year, today.month
    for _ in range(months):
        month -= 1
        if month == 0:
            year, month = year - 1, 12
        result.append(date(year, month, 1))
    return result
