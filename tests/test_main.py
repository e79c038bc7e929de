from datetime import datetime

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from main import build_state, upgrade_database
from models import ExpenseCategory
from periods import YearMonth
from schemas import ExpenseIn


def test_upgrade_creates_schema(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'expenses.db'}"
    upgrade_database(url)

    inspector = inspect(create_engine(url))
    assert {"expenses", "app_settings"} <= set(inspector.get_table_names())
    columns = {c["name"] for c in inspector.get_columns("expenses")}
    assert columns == {"id", "title", "amount", "category", "occurredAtEpochMs"}
    indexed = {
        tuple(ix["column_names"]) for ix in inspector.get_indexes("expenses")
    }
    assert {("occurredAtEpochMs",), ("category",)} <= indexed


def test_build_state_over_migrated_database(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'expenses.db'}"
    upgrade_database(url)
    factory = sessionmaker(bind=create_engine(url), expire_on_commit=False)

    state = build_state(factory, zone="America/Toronto", month=YearMonth(2024, 3))
    state.add_expense(
        ExpenseIn(
            title="Coffee",
            amount=4.50,
            category=ExpenseCategory.dining_out,
            occurred_at=datetime(2024, 3, 15, 9, 0),
        )
    )
    state.save_budget(1800)

    reopened = build_state(factory, zone="America/Toronto", month=YearMonth(2024, 3))
    assert [e.title for e in reopened.expenses_for_month()] == ["Coffee"]
    assert reopened.monthly_budget == 1800.0
    assert reopened.monthly_total() == 4.50
