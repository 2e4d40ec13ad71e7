"""
Database Wiring

One cached SQLAlchemy engine per URL. SQLite URLs
get thread-safe connect args so the direct pipeline's fetch workers can
share an engine; in-memory SQLite uses a StaticPool so every connection
sees the same database.

Author: Shubham Singh
Date: December 2025
"""

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


@lru_cache(maxsize=8)
def get_engine(url: str) -> Engine:
    """Engine for a database URL (cached)."""
    return create_engine(url, **_engine_kwargs(url))


