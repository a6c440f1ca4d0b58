# db.py
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PGConn
from psycopg2.pool import ThreadedConnectionPool

from settings import settings

logger = logging.getLogger("payouts.db")

_pool: Optional[ThreadedConnectionPool] = None


def init_pool() -> ThreadedConnectionPool:
    """
    Lazily create the shared pool. Threaded, because the FastAPI threadpool,
    the batch worker and the alert dispatcher all borrow connections.
    """
    global _pool
    if _pool is None:
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is not set.")
        psycopg2.extras.register_uuid()
        _pool = ThreadedConnectionPool(
            minconn=1,
            maxconn=settings.DB_POOL_MAX_CONN,
            dsn=settings.DATABASE_URL,
            connect_timeout=5,
            application_name="payouts_engine",
        )
        logger.info("db pool ready maxconn=%s", settings.DB_POOL_MAX_CONN)
    return _pool


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None


@contextmanager
def get_conn() -> Iterator[PGConn]:
    """
    One transaction per block: commit on success, rollback on any exception.
    Provider calls never happen inside this block, so transactions stay short.
    """
    pool = init_pool()
    conn = pool.getconn()
    try:
        with conn.cursor() as cur:
            cur.execute("SET statement_timeout = %s;", (f"{settings.DB_STATEMENT_TIMEOUT_MS}ms",))
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)
