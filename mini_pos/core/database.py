import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mini_pos.core.exceptions import StorageFailure
from mini_pos.models.database import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Storage handle owning one engine and one session factory.

    The handle is opened once on startup and closed on shutdown. All sessions
    handed out by it are serialized through a single re-entrant lock, so a
    transaction always commits or rolls back before another one starts and
    readers never see a half-written order.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def open(self) -> "Database":
        """Create the engine and the schema. Calling it twice is a no-op."""
        if self.engine is not None:
            return self

        url = make_url(self.url)
        engine_args = {"echo": self.echo}
        if url.get_backend_name() == "sqlite":
            engine_args["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # Every session must see the same in-memory database
                engine_args["poolclass"] = StaticPool

        try:
            engine = create_engine(url, **engine_args)
            if engine.dialect.name == "sqlite":
                event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            logger.error(f"Could not open database {url!r}: {str(e)}")
            raise StorageFailure(f"Could not open database: {str(e)}") from e

        self.engine = engine
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )
        logger.info(f"Database opened at {url!r}")
        return self

    def close(self) -> None:
        if self.engine is None:
            return
        with self._lock:
            self.engine.dispose()
            self.engine = None
            self.SessionLocal = None
        logger.info("Database closed")

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Scoped session holding the handle's lock for its whole lifetime.

        SQLAlchemy errors escaping the block roll back and surface as
        StorageFailure; every other exception propagates unchanged.
        """
        if self.SessionLocal is None:
            raise StorageFailure("Database is not open")

        with self._lock:
            db = self.SessionLocal()
            try:
                yield db
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Storage error, transaction rolled back: {str(e)}")
                raise StorageFailure(str(e)) from e
            finally:
                db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Session inside one transaction: committed on normal exit, rolled back on any exception"""
        with self.session() as db:
            with db.begin():
                yield db


def get_db(request: Request) -> Database:
    """Database dependency for FastAPI"""
    return request.app.state.db
