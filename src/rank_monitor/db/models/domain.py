from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from rank_monitor.db.base import Base
from rank_monitor.utils.dates import utcnow


class RefreshFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    on_demand = "on_demand"


class Domain(Base):
    __tablename__ = "domains"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    refresh_frequency: Mapped[RefreshFrequency] = mapped_column(
        SAEnum(RefreshFrequency), default=RefreshFrequency.daily, index=True
    )
    search_engine: Mapped[str] = mapped_column(String(32), default="google")
    location: Mapped[str] = mapped_column(String(128))
    language: Mapped[str] = mapped_column(String(8))
    last_refreshed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
