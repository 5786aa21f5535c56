import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import (
    DATABASE_URL,
    DB_LOG_SLOW_QUERIES,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_SLOW_QUERY_THRESHOLD,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine; pool settings only apply to server databases."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)  # Test connections before using
        kwargs.setdefault("pool_recycle", DB_POOL_RECYCLE)
        kwargs.setdefault("pool_size", DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", DB_MAX_OVERFLOW)
        kwargs.setdefault("pool_timeout", DB_POOL_TIMEOUT)

    new_engine = create_engine(url, echo=False, **kwargs)

    if url.startswith("sqlite"):
        _install_sqlite_write_locking(new_engine)

    if DB_LOG_SLOW_QUERIES:
        _install_slow_query_logging(new_engine)

    return new_engine


def _install_sqlite_write_locking(target: Engine) -> None:
    """
    SQLite ignores SELECT ... FOR UPDATE.

    Every transaction opens with BEGIN IMMEDIATE instead, which takes the
    database write lock up front so concurrent bookings serialize on it.
    """

    @event.listens_for(target, "connect")
    def disable_pysqlite_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _install_slow_query_logging(target: Engine) -> None:
    @event.listens_for(target, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(target, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > DB_SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")


try:
    engine = build_engine()
    logger.info("✅ Database engine created successfully")
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
