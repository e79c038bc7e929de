from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings

SessionFactory = Callable[[], Session]


def build_engine(database_url: str) -> Engine:
    """Engine for ``database_url``.

    SQLite connections may be used from any thread. An in-memory database is
    pinned to a single connection so every session sees the same tables, and
    file databases switch to WAL journaling on connect.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url)

    in_memory = url.database in (None, "", ":memory:")
    options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    if in_memory:
        options["poolclass"] = StaticPool
    expense_engine = create_engine(url, **options)
    if not in_memory:
        event.listen(expense_engine, "connect", _use_wal_journal)
    return expense_engine


def _use_wal_journal(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.close()


def build_session_factory(bind: Engine) -> SessionFactory:
    # Expenses handed to the cache outlive their session.
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine(get_settings().database_url)
SessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    pass


@contextmanager
def session_scope(factory: Optional[SessionFactory] = None) -> Iterator[Session]:
    session: Session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
