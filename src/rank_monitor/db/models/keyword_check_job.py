from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from rank_monitor.db.base import Base
from rank_monitor.utils.dates import utcnow


class JobStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @classmethod
    def active(cls) -> tuple[JobStatus, ...]:
        return (cls.pending, cls.processing)

    @classmethod
    def terminal(cls) -> tuple[JobStatus, ...]:
        return (cls.completed, cls.failed, cls.cancelled)

    @property
    def is_terminal(self) -> bool:
        return self in JobStatus.terminal()


class KeywordCheckJob(Base):
    __tablename__ = "keyword_check_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    domain_id: Mapped[int] = mapped_column(ForeignKey("domains.id"), index=True)
    status: Mapped[JobStatus] = mapped_column(
        SAEnum(JobStatus), default=JobStatus.pending, index=True
    )

    total_keywords: Mapped[int] = mapped_column(Integer, default=0)
    processed_keywords: Mapped[int] = mapped_column(Integer, default=0)
    failed_keywords: Mapped[int] = mapped_column(Integer, default=0)

    keyword_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    current_keyword_id: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    error: Mapped[str | None] = mapped_column(String(500))
