from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from rank_monitor.db.base import Base
from rank_monitor.utils.dates import utcnow


class KeywordStatus(str, Enum):
    active = "active"
    paused = "paused"


class CheckingStatus(str, Enum):
    queued = "queued"
    checking = "checking"
    completed = "completed"
    failed = "failed"


class Keyword(Base):
    __tablename__ = "keywords"
    __table_args__ = (UniqueConstraint("domain_id", "phrase", name="uq_keywords_domain_phrase"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    domain_id: Mapped[int] = mapped_column(ForeignKey("domains.id"), index=True)
    phrase: Mapped[str] = mapped_column(String(300))
    status: Mapped[KeywordStatus] = mapped_column(
        SAEnum(KeywordStatus), default=KeywordStatus.active, index=True
    )

    # set only while the keyword belongs to a non-terminal check job
    checking_status: Mapped[CheckingStatus | None] = mapped_column(SAEnum(CheckingStatus))
    check_job_id: Mapped[int | None] = mapped_column(
        ForeignKey("keyword_check_jobs.id"), index=True
    )

    search_volume: Mapped[int | None] = mapped_column(Integer)
    difficulty: Mapped[int | None] = mapped_column(Integer)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
