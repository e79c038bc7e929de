import pytest
from sqlalchemy import text

from database import Base, build_engine, build_session_factory, session_scope
from models import AppSetting


def test_in_memory_engine_shares_one_database_across_sessions() -> None:
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    factory = build_session_factory(engine)

    with session_scope(factory) as session:
        session.add(AppSetting(key="monthly_budget", value="900.0"))

    with session_scope(factory) as session:
        assert session.get(AppSetting, "monthly_budget").value == "900.0"


def test_file_engine_uses_wal_journal(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'expenses.db'}")
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"


def test_session_scope_rolls_back_on_error() -> None:
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    factory = build_session_factory(engine)

    with pytest.raises(RuntimeError):
        with session_scope(factory) as session:
            session.add(AppSetting(key="monthly_budget", value="900.0"))
            session.flush()
            raise RuntimeError("boom")

    with session_scope(factory) as session:
        assert session.get(AppSetting, "monthly_budget") is None
