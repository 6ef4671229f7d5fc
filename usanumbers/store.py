"""
Transactional record store.
Wraps the SQLAlchemy session in units of work that either commit every
write or none, and translates driver failures into marketplace errors.
"""

import logging
import sqlite3
from contextlib import contextmanager

from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from usanumbers.errors import DuplicateError, StoreUnavailableError, ValidationError
from usanumbers.extensions import db

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)

# PostgreSQL SQLSTATE unique_violation
PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error):
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


@event.listens_for(Engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    # Hand transaction control to SQLAlchemy so "begin" below is honoured
    if isinstance(dbapi_connection, sqlite3.Connection):
        dbapi_connection.isolation_level = None


@event.listens_for(Engine, "begin")
def _sqlite_begin(conn):
    # SQLite ignores FOR UPDATE; take the write lock up front instead
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@contextmanager
def unit_of_work():
    """
    Run a block of reads and writes atomically.
    Commits when the block exits cleanly, rolls back on any exception.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except STORE_UNAVAILABLE_ERRORS as e:
        session.rollback()
        logger.error("Store unavailable: %s", e)
        raise StoreUnavailableError() from e
    except IntegrityError as e:
        session.rollback()
        logger.warning("Integrity violation: %s", e.orig)
        if is_unique_violation(e):
            raise DuplicateError() from e
        raise ValidationError("Invalid data") from e
    except Exception:
        session.rollback()
        raise


def lock(query):
    """Apply a row lock; a no-op on SQLite, which is already write-locked."""
    return query.with_for_update()


def ping():
    """Connectivity check for the health endpoint."""
    try:
        db.session.execute(text("SELECT 1"))
        return True, None
    except STORE_UNAVAILABLE_ERRORS as e:
        db.session.rollback()
        return False, str(getattr(e, "orig", None) or e)
