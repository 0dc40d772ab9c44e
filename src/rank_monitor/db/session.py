from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from rank_monitor.config.settings import get_settings

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        database_url = get_settings().database_url
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set")
        connect_args = {}
        if make_url(database_url).get_backend_name() == "sqlite":
            # jobs run on APScheduler pool threads
            connect_args["check_same_thread"] = False
        _engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Shared factory; the processor and refresh sweeps open one session per unit of work."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=True)
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()
