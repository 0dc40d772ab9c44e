from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from rank_monitor.db.base import Base
from rank_monitor.utils.dates import utcnow


class KeywordPosition(Base):
    __tablename__ = "keyword_positions"
    __table_args__ = (
        UniqueConstraint("keyword_id", "date", name="uq_keyword_positions_keyword_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    keyword_id: Mapped[int] = mapped_column(ForeignKey("keywords.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)

    position: Mapped[int | None] = mapped_column(Integer)
    url: Mapped[str | None] = mapped_column(String(1000))
    search_volume: Mapped[int | None] = mapped_column(Integer)
    difficulty: Mapped[int | None] = mapped_column(Integer)
    cpc: Mapped[float | None] = mapped_column(Float)
    # gap-filled placeholder, not an observation
    is_estimate: Mapped[bool] = mapped_column(Boolean, default=False)

    fetched_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
