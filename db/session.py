"""
db/session.py

Engine and session plumbing. Nothing connects until the first session is
requested, so importing the app never touches the database.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class PoolSettings:
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800

    @classmethod
    def from_env(cls) -> PoolSettings:
        return cls(
            echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
            pool_size=_env_int("DB_POOL_SIZE", cls.pool_size),
            max_overflow=_env_int("DB_MAX_OVERFLOW", cls.max_overflow),
            pool_recycle_seconds=_env_int("DB_POOL_RECYCLE", cls.pool_recycle_seconds),
        )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    url = resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("The governance service only runs against PostgreSQL.")

    pool = PoolSettings.from_env()
    return create_engine(
        url,
        echo=pool.echo,
        pool_pre_ping=True,
        pool_size=pool.pool_size,
        max_overflow=pool.max_overflow,
        pool_recycle=pool.pool_recycle_seconds,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    # Services commit explicitly; objects stay readable after commit for responses.
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scheduler jobs and scripts; closed on exit, never committed here."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    with session_scope() as session:
        yield session
