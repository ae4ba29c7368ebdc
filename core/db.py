from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.config import get_database_url
from core.models import Base

SLOW_QUERY_MS = 250

_engines: dict[str, Engine] = {}
_query_samples: deque[float] = deque(maxlen=1000)


@dataclass
class QueryStats:
    total: int = 0
    slow: int = 0
    p50_ms: float = 0.0
    p95_ms: float = 0.0


def _instrument(engine: Engine) -> None:
    """Record the wall time of every statement run on ``engine``."""

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_started_at", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _stop_timer(conn, cursor, statement, parameters, context, executemany):
        started = conn.info["query_started_at"].pop()
        _query_samples.append((time.perf_counter() - started) * 1000)


def get_engine(url: Optional[str] = None) -> Engine:
    """One engine per database URL, created on first use."""
    resolved = url or get_database_url()
    engine = _engines.get(resolved)
    if engine is None:
        connect_args = {"check_same_thread": False} if resolved.startswith("sqlite") else {}
        engine = create_engine(resolved, pool_pre_ping=True, connect_args=connect_args)
        _instrument(engine)
        _engines[resolved] = engine
    return engine


@lru_cache(maxsize=8)
def get_session_factory(url: Optional[str] = None) -> sessionmaker:
    return sessionmaker(bind=get_engine(url), autoflush=False, expire_on_commit=False)


def init_db(url: Optional[str] = None) -> None:
    """Create the key-value table if it does not exist yet."""
    Base.metadata.create_all(get_engine(url))


def dispose_engines() -> None:
    """Close pooled connections; the next call to ``get_engine`` reconnects."""
    get_session_factory.cache_clear()
    while _engines:
        _, engine = _engines.popitem()
        engine.dispose()


@contextmanager
def session_scope(url: Optional[str] = None) -> Iterator[Session]:
    """Transactional scope: commit on success, roll back on any error."""
    with get_session_factory(url)() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def _percentile(ordered: list[float], fraction: float) -> float:
    index = min(len(ordered) - 1, int(len(ordered) * fraction))
    return round(ordered[index], 2)


def get_query_stats() -> QueryStats:
    if not _query_samples:
        return QueryStats()
    ordered = sorted(_query_samples)
    return QueryStats(
        total=len(ordered),
        slow=sum(1 for ms in ordered if ms > SLOW_QUERY_MS),
        p50_ms=_percentile(ordered, 0.5),
        p95_ms=_percentile(ordered, 0.95),
    )
