from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


log = logging.getLogger("db")

Base = declarative_base()

SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)

_engine = None


def init_engine(database_url: str, *, pool_size: int = 5, max_overflow: int = 10):
    global _engine

    url = str(database_url or "").strip()
    if not url:
        raise RuntimeError("Missing DATABASE_URL")

    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside a single connection.
        if url in {"sqlite://", "sqlite:///:memory:"}:
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, future=True, **kwargs)
    else:
        engine = create_engine(
            url,
            future=True,
            pool_pre_ping=True,
            pool_size=max(1, int(pool_size)),
            max_overflow=max(0, int(max_overflow)),
        )

    SessionLocal.configure(bind=engine)
    _engine = engine
    return engine


def get_engine():
    return _engine


def ping_db() -> bool:
    if _engine is None:
        return False
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        log.warning("database ping failed", exc_info=True)
        return False


def get_pool_stats() -> dict[str, Any]:
    if _engine is None:
        return {"initialized": False}
    pool = _engine.pool
    out: dict[str, Any] = {"initialized": True, "class": type(pool).__name__}
    for name in ("size", "checkedin", "checkedout", "overflow"):
        fn = getattr(pool, name, None)
        if callable(fn):
            out[name] = fn()
    return out
