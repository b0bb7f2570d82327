"""
Engine and session management for the claim ledger.

Uses DATABASE_URL for PostgreSQL when set; otherwise a SQLite file.

SQLite: the driver's implicit BEGIN is disabled and the transaction start is
emitted here. Write sessions (session_scope(write=True), the claim submit
path) open with BEGIN IMMEDIATE, so concurrent claim transactions queue on
the writer lock (bounded by the busy timeout) instead of interleaving their
uniqueness checks. Read sessions open with a deferred BEGIN and read from the
WAL snapshot without waiting for a writer. On PostgreSQL the UNIQUE
constraints on claims do the serializing.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from backend_novaclaim.claim_logging import get_logger
from backend_novaclaim.config.env import mask_database_url
from backend_novaclaim.core.exceptions import ClaimStoreError
from backend_novaclaim.database.models import Base

logger = get_logger(__name__)

WRITE_OPTION = "claims_write"


def _configure_sqlite(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # take BEGIN away from pysqlite; _on_begin emits our own
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        if conn.get_execution_options().get(WRITE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def _ensure_sqlite_dir(url: str) -> None:
    path = url.split("sqlite:///", 1)[-1].split("?")[0]
    if path and path != ":memory:":
        Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


class ClaimDatabase:
    """Owns one engine and session factory. Thread-safe; share one instance per process."""

    def __init__(self, url: str, *, timeout_sec: float = 30.0) -> None:
        self.url = url
        self._timeout_sec = timeout_sec
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._write_session_factory: sessionmaker | None = None
        self._lock = threading.Lock()

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def engine(self) -> Engine:
        """Create or return the cached engine."""
        if self._engine is None:
            with self._lock:
                if self._engine is None:
                    self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        connect_args: dict[str, Any] = {}
        if self.is_sqlite:
            _ensure_sqlite_dir(self.url)
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = self._timeout_sec
        else:
            connect_args["connect_timeout"] = max(1, int(self._timeout_sec))
        engine = create_engine(self.url, connect_args=connect_args, pool_pre_ping=True)
        if self.is_sqlite:
            _configure_sqlite(engine)
        logger.info("claims_db_engine", url=mask_database_url(self.url), dialect=engine.dialect.name)
        return engine

    def _get_session_factory(self, write: bool = False) -> sessionmaker:
        if self._session_factory is None:
            engine = self.engine
            options = dict(autocommit=False, autoflush=False, expire_on_commit=False)
            self._write_session_factory = sessionmaker(
                bind=engine.execution_options(**{WRITE_OPTION: True}),
                **options,
            )
            self._session_factory = sessionmaker(bind=engine, **options)
        return self._write_session_factory if write else self._session_factory

    @contextmanager
    def session_scope(self, write: bool = False) -> Iterator[Session]:
        """
        One session, one transaction. Commits on success, rolls back on any error.

        write=True takes the SQLite writer lock at BEGIN and lets database errors
        through for the caller to translate. Read sessions raise ClaimStoreError
        for any database error.
        """
        session = self._get_session_factory(write)()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            if write:
                raise
            logger.error("claims_db_read_failed", error=str(e))
            raise ClaimStoreError("Claim ledger unavailable") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_db(self) -> None:
        """
        Create ledger tables if they do not exist. Safe to call on every startup.
        """
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("claims_init_db", url=mask_database_url(self.url))
        except Exception as e:
            logger.exception("claims_init_db_failed", error=str(e))
            raise

    def ping(self) -> Any:
        """Round-trip to the database; returns the server's current timestamp."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT CURRENT_TIMESTAMP")).scalar()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._write_session_factory = None


_databases: dict[str, ClaimDatabase] = {}
_databases_lock = threading.Lock()


def get_database(url: str, *, timeout_sec: float = 30.0) -> ClaimDatabase:
    """
    Return the process-wide ClaimDatabase for url, creating tables on first use.
    """
    with _databases_lock:
        db = _databases.get(url)
        if db is None:
            db = ClaimDatabase(url, timeout_sec=timeout_sec)
            db.init_db()
            _databases[url] = db
        return db


def reset_databases_for_test() -> None:
    """Dispose and forget cached databases. For tests that point at a new temp DB."""
    with _databases_lock:
        for db in _databases.values():
            db.dispose()
        _databases.clear()
