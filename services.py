from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionFactory, session_scope
from models import AppSetting, ExpenseRecord
from periods import (
    YearMonth,
    ZoneLike,
    as_zone,
    from_epoch_ms,
    month_bounds,
    to_epoch_ms,
    trailing_months,
)
from schemas import Expense


logger = logging.getLogger(__name__)

MONTHLY_BUDGET_KEY = "monthly_budget"
DEFAULT_MONTHLY_BUDGET = 2000.0

ItemsListener = Callable[[tuple[Expense, ...]], None]


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: float


@dataclass(frozen=True)
class MonthlyTotal:
    month: YearMonth
    total: float
    budget: float

    @property
    def over_budget(self) -> bool:
        return self.total > self.budget


def expense_to_record(expense: Expense, zone: ZoneLike) -> ExpenseRecord:
    return ExpenseRecord(
        id=expense.id,
        title=expense.title,
        amount=expense.amount,
        category=expense.category,
        occurred_at_epoch_ms=to_epoch_ms(expense.occurred_at, zone),
    )


def record_to_expense(record: ExpenseRecord, zone: ZoneLike) -> Expense:
    # Rows written outside the entry form may carry NULLs.
    return Expense(
        id=record.id,
        title=record.title or "",
        amount=record.amount or 0.0,
        category=record.category or "",
        occurred_at=from_epoch_ms(record.occurred_at_epoch_ms, zone),
    )


class ExpenseStore:
    """Range and aggregate queries over the ``expenses`` table.

    Bounds are inclusive epoch milliseconds, as produced by
    :func:`periods.month_bounds`. Writes commit immediately; database errors
    propagate to the caller.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _in_range(self, start: int, end: int):
        return ExpenseRecord.occurred_at_epoch_ms.between(start, end)

    @staticmethod
    def _row_values(record: ExpenseRecord) -> dict:
        return {
            ExpenseRecord.title: record.title,
            ExpenseRecord.amount: record.amount,
            ExpenseRecord.category: record.category,
            ExpenseRecord.occurred_at_epoch_ms: record.occurred_at_epoch_ms,
        }

    def insert(self, record: ExpenseRecord) -> None:
        values = self._row_values(record)
        values[ExpenseRecord.id] = record.id
        try:
            self.session.execute(insert(ExpenseRecord).values(values))
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.warning(f"expense_insert_conflict: id={record.id}")
            raise

    def update(self, record: ExpenseRecord) -> int:
        result = self.session.execute(
            update(ExpenseRecord)
            .where(ExpenseRecord.id == record.id)
            .values(self._row_values(record))
        )
        self.session.commit()
        if result.rowcount == 0:
            # Kept as a no-op; a lost row is indistinguishable from a bad id.
            logger.warning(f"expense_update_missing: id={record.id}")
        return result.rowcount

    def delete(self, expense_id: str) -> int:
        result = self.session.execute(
            delete(ExpenseRecord).where(ExpenseRecord.id == expense_id)
        )
        self.session.commit()
        return result.rowcount

    def get(self, expense_id: str) -> Optional[ExpenseRecord]:
        return self.session.get(ExpenseRecord, expense_id)

    def list_by_range(self, start: int, end: int) -> list[ExpenseRecord]:
        stmt = (
            select(ExpenseRecord)
            .where(self._in_range(start, end))
            .order_by(ExpenseRecord.occurred_at_epoch_ms.desc(), ExpenseRecord.id)
        )
        return list(self.session.scalars(stmt).all())

    def sum_amount(self, start: int, end: int) -> float:
        stmt = select(func.coalesce(func.sum(ExpenseRecord.amount), 0.0)).where(
            self._in_range(start, end)
        )
        return float(self.session.execute(stmt).scalar_one() or 0.0)

    def sum_by_category(self, start: int, end: int) -> list[CategoryTotal]:
        category = func.coalesce(ExpenseRecord.category, "").label("category")
        total = func.coalesce(func.sum(ExpenseRecord.amount), 0.0).label("total")
        stmt = (
            select(category, total)
            .where(self._in_range(start, end))
            .group_by(category)
            .order_by(total.desc(), category)
        )
        return [
            CategoryTotal(category=row.category, total=float(row.total or 0.0))
            for row in self.session.execute(stmt)
        ]


class ExpenseRepository:
    """Facade over :class:`ExpenseStore` holding the loaded month in memory.

    ``load_month`` is the only call that refreshes the cache from the store.
    ``add``/``update``/``delete`` write through and then patch the cache
    without re-sorting, so ``items`` can be out of order until the next load.
    Every cache change is pushed to subscribers as an immutable snapshot.

    Calls are serialized on a re-entrant lock; a slow ``load_month`` cannot
    land after a newer one.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        write_zone: Optional[ZoneLike] = None,
    ) -> None:
        self._session_factory = session_factory
        self.write_zone = as_zone(write_zone or get_settings().timezone)
        self._items: list[Expense] = []
        self._listeners: list[ItemsListener] = []
        self._lock = threading.RLock()

    @property
    def items(self) -> tuple[Expense, ...]:
        return tuple(self._items)

    def subscribe(self, listener: ItemsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        snapshot = self.items
        for listener in list(self._listeners):
            listener(snapshot)

    def load_month(self, month: YearMonth, zone: ZoneLike) -> tuple[Expense, ...]:
        bounds = month_bounds(month, zone)
        with self._lock:
            with session_scope(self._session_factory) as session:
                rows = ExpenseStore(session).list_by_range(bounds.start, bounds.end)
                loaded = [record_to_expense(row, zone) for row in rows]
            self._items.clear()
            self._items.extend(loaded)
            logger.debug(f"load_month: month={month} rows={len(loaded)}")
            self._emit()
            return self.items

    def add(self, expense: Expense) -> None:
        with self._lock:
            with session_scope(self._session_factory) as session:
                ExpenseStore(session).insert(
                    expense_to_record(expense, self.write_zone)
                )
            self._items.append(expense)
            logger.info(f"expense_added: id={expense.id} category={expense.category}")
            self._emit()

    def update(self, expense: Expense) -> None:
        with self._lock:
            with session_scope(self._session_factory) as session:
                ExpenseStore(session).update(
                    expense_to_record(expense, self.write_zone)
                )
            for idx, item in enumerate(self._items):
                if item.id == expense.id:
                    self._items[idx] = expense
                    break
            logger.info(f"expense_updated: id={expense.id}")
            self._emit()

    def delete(self, expense_id: str) -> None:
        with self._lock:
            with session_scope(self._session_factory) as session:
                ExpenseStore(session).delete(expense_id)
            self._items[:] = [item for item in self._items if item.id != expense_id]
            logger.info(f"expense_deleted: id={expense_id}")
            self._emit()

    def monthly_total(self, month: YearMonth, zone: ZoneLike) -> float:
        bounds = month_bounds(month, zone)
        with session_scope(self._session_factory) as session:
            return ExpenseStore(session).sum_amount(bounds.start, bounds.end)

    def totals_by_category(
        self, month: YearMonth, zone: ZoneLike
    ) -> list[CategoryTotal]:
        bounds = month_bounds(month, zone)
        with session_scope(self._session_factory) as session:
            return ExpenseStore(session).sum_by_category(bounds.start, bounds.end)


class SettingsService:
    def __init__(
        self, session: Session, default_budget: Optional[float] = None
    ) -> None:
        self.session = session
        if default_budget is None:
            default_budget = get_settings().default_monthly_budget
        self.default_budget = default_budget

    def monthly_budget(self) -> float:
        setting = self.session.get(AppSetting, MONTHLY_BUDGET_KEY)
        if setting is None:
            return self.default_budget
        try:
            return float(setting.value)
        except ValueError:
            logger.warning(f"monthly_budget_unreadable: value={setting.value!r}")
            return self.default_budget

    def set_monthly_budget(self, value: float) -> float:
        amount = float(value)
        setting = self.session.get(AppSetting, MONTHLY_BUDGET_KEY)
        if setting is None:
            setting = AppSetting(key=MONTHLY_BUDGET_KEY, value=repr(amount))
            self.session.add(setting)
        else:
            setting.value = repr(amount)
        self.session.commit()
        logger.info(f"monthly_budget_saved: value={amount}")
        return amount


class InsightsService:
    def __init__(self, repository: ExpenseRepository) -> None:
        self.repository = repository

    def category_breakdown(
        self, month: YearMonth, zone: ZoneLike
    ) -> list[dict[str, object]]:
        totals = self.repository.totals_by_category(month, zone)
        total = sum(item.total for item in totals)
        breakdown = []
        for item in totals:
            percent = (item.total / total * 100) if total else 0
            breakdown.append(
                {"name": item.category, "amount": item.total, "percent": percent}
            )
        return breakdown

    def monthly_series(
        self,
        end_month: YearMonth,
        zone: ZoneLike,
        budget: float,
        *,
        months_back: int = 6,
    ) -> list[MonthlyTotal]:
        return [
            MonthlyTotal(
                month=month,
                total=self.repository.monthly_total(month, zone),
                budget=budget,
            )
            for month in trailing_months(end_month, months_back)
        ]
