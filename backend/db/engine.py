"""
Canonical database engine factory.

This is the single place that calls create_engine(). The SQL stores in
services/sql_store.py and the CLI both obtain their engine here.

Usage:
    from db.engine import get_engine

    engine = get_engine()                     # Config.DATABASE_URL
    engine = get_engine("sqlite:///cms.db")   # explicit URL

Warmup with retry:
    - Handles cold starts of hosted PostgreSQL poolers
    - Exponential backoff (0.75s, 1.5s, 3s, 6s)
    - Fails fast after 4 attempts with clear error
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)

# Module-level engine cache (per-process singletons, keyed by URL)
_ENGINES: Dict[str, Engine] = {}


def _base_options() -> Dict[str, Any]:
    from config import Config

    return dict(getattr(Config, "SQLALCHEMY_ENGINE_OPTIONS", {}) or {})


def _warmup(engine: Engine, attempts: int = 4, base_sleep: float = 0.75) -> None:
    """
    Warm up database connection with exponential backoff retry.

    Raises:
        OperationalError: If all attempts fail
    """
    last_error: Optional[Exception] = None

    for i in range(attempts):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("db_warmup_success attempt=%d", i + 1)
            return
        except OperationalError as e:
            last_error = e
            sleep_s = base_sleep * (2 ** i)
            log.warning(
                "db_warmup_retry attempt=%d/%d sleep_s=%.2f err=%s",
                i + 1, attempts, sleep_s, str(e)[:100]
            )
            time.sleep(sleep_s)

    log.error("db_warmup_failed after %d attempts", attempts)
    raise last_error  # type: ignore[misc]


def get_engine(database_url: Optional[str] = None, warmup: bool = True) -> Engine:
    """
    Get a (cached) engine for `database_url`, defaulting to Config.DATABASE_URL.

    SQLite URLs get a StaticPool so an in-memory database survives across
    the worker threads the SQL stores run on.

    Raises:
        RuntimeError: If no URL is given and DATABASE_URL is unset
        OperationalError: If database connection fails after retries
    """
    if database_url is None:
        from config import get_database_url
        database_url = get_database_url()
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set")

    if database_url in _ENGINES:
        return _ENGINES[database_url]

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        log.info("db_engine_created dialect=sqlite poolclass=StaticPool")
    else:
        opts = _base_options()
        connect_args = dict(opts.pop("connect_args", {}) or {})
        connect_args.setdefault("connect_timeout", 30)
        engine = create_engine(database_url, connect_args=connect_args, **opts)
        log.info(
            "db_engine_created dialect=%s pool_size=%s max_overflow=%s",
            engine.dialect.name,
            opts.get("pool_size", "default"),
            opts.get("max_overflow", "default"),
        )

    if warmup:
        _warmup(engine)

    _ENGINES[database_url] = engine
    return engine


def dispose_engines() -> None:
    """Dispose all cached engines (for testing/cleanup)."""
    while _ENGINES:
        _, engine = _ENGINES.popitem()
        engine.dispose()
    log.info("db_engines_disposed")
