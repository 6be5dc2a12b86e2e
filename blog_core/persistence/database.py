"""
Blog core database bindings and functions using sqlalchemy

These bindings are only used by the ``sql`` document store backend.
"""

import logging
import threading
import contextlib
from typing import ContextManager, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine as _Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool


PRINT_SQLITE_WARNING: bool = True

Base = declarative_base()
_engine: Optional[_Engine] = None
_make_session: Optional[sessionmaker] = None
_sqlite_lock: Optional[threading.Lock] = None
_logger: logging.Logger = logging.getLogger(__name__)


def _is_in_memory(database_url: str) -> bool:
    return ":memory:" in database_url or database_url == "sqlite://"


def init(database_url: str, echo: bool = True, create_all: bool = True):
    """
    Initialize the database bindings

    This function has to be called before the first document store
    session is opened. Calling it again replaces the engine.

    :param database_url: the full URL to connect to the database
    :param echo: whether all SQLAlchemy magic should print to screen
    :param create_all: whether the metadata of the declarative base should
        be used to create all non-existing tables in the database
    """

    global _engine, _make_session, _sqlite_lock
    if _engine is not None:
        _engine.dispose()

    if database_url.startswith("sqlite:"):
        if _is_in_memory(database_url):
            _logger.warning("The in-memory sqlite3 database loses all posts when the process stops.")
        elif PRINT_SQLITE_WARNING:
            _logger.warning(
                "Using a sqlite database is supported for development and testing environments "
                "only. You should use a production-grade database server or CouchDB for deployment."
            )

        # all sessions have to share the single connection to see the same in-memory database
        _engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if _is_in_memory(database_url) else None
        )
        # sqlite aborts a second writer instead of waiting when both started reading first
        _sqlite_lock = threading.Lock()

    else:
        _engine = create_engine(database_url, echo=echo)
        _sqlite_lock = None

    if create_all:
        from . import models  # noqa: F401
        Base.metadata.create_all(bind=_engine)

    _make_session = sessionmaker(autocommit=False, autoflush=False, bind=_engine)


def access_lock() -> ContextManager:
    """
    Get the context manager that sessions of the document store run in

    Sessions against a sqlite database run one after another, while
    database servers handle concurrent sessions themselves.
    """

    if _sqlite_lock is None:
        return contextlib.nullcontext()
    return _sqlite_lock


def get_engine() -> _Engine:
    if _engine is None:
        raise RuntimeError("Database not initialized, call 'init' once at program startup")
    return _engine


def get_new_session() -> Session:
    if _make_session is None:
        raise RuntimeError("Database not initialized, call 'init' once at program startup")
    return _make_session()
