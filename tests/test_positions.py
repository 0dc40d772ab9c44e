"""Position store upsert and ordering."""

from datetime import date

from rank_monitor.db.models import KeywordPosition
from rank_monitor.db.repositories.positions import (
    count_positions,
    latest_position,
    positions_for_keyword,
    upsert_position,
)


def test_second_write_same_day_overwrites(session, keywords):
    keyword = keywords[0]
    upsert_position(session, keyword.id, date(2026, 10, 18), 12, "https://example.com/a")
    upsert_position(session, keyword.id, date(2026, 10, 18), 9, "https://example.com/b")
    session.commit()

    rows = session.query(KeywordPosition).filter_by(keyword_id=keyword.id).all()
    assert len(rows) == 1
    assert rows[0].position == 9
    assert rows[0].url == "https://example.com/b"


def test_upsert_touches_keyword_last_updated(session, keywords):
    keyword = keywords[1]
    assert keyword.last_updated is None
    upsert_position(session, keyword.id, date(2026, 10, 18), None, None)
    session.commit()
    session.refresh(keyword)
    assert keyword.last_updated is not None


def test_positions_ordered_newest_first(session, keywords):
    keyword = keywords[0]
    for day in (date(2026, 8, 1), date(2026, 10, 1), date(2026, 9, 1)):
        upsert_position(session, keyword.id, day, 5, None)
    session.commit()

    rows = positions_for_keyword(session, keyword.id)
    assert [row.date for row in rows] == [date(2026, 10, 1), date(2026, 9, 1), date(2026, 8, 1)]
    assert latest_position(session, keyword.id).date == date(2026, 10, 1)
    assert count_positions(session, keyword.id) == 3
    assert count_positions(session, keywords[2].id) == 0
