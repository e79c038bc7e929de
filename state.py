from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from config import get_settings
from database import SessionFactory, session_scope
from periods import YearMonth, ZoneLike, as_zone
from schemas import BudgetIn, Expense, ExpenseIn
from services import (
    CategoryTotal,
    ExpenseRepository,
    InsightsService,
    MonthlyTotal,
    SettingsService,
)


logger = logging.getLogger(__name__)

StateListener = Callable[["ExpenseState"], None]


class ExpenseState:
    """What the screens bind to: the current month, the budget and the
    month's expenses in display order.

    Holds no expense data of its own. Each repository snapshot is forwarded to
    subscribers, and the display list is re-sorted on every read to undo the
    repository's append-at-end ordering.
    """

    def __init__(
        self,
        repository: ExpenseRepository,
        session_factory: SessionFactory,
        *,
        zone: Optional[ZoneLike] = None,
        current_month: Optional[YearMonth] = None,
    ) -> None:
        self.repository = repository
        self._session_factory = session_factory
        self.zone = as_zone(zone or get_settings().timezone)
        self._current_month = current_month or YearMonth.now(self.zone)
        with session_scope(session_factory) as session:
            self._monthly_budget = SettingsService(session).monthly_budget()
        self.insights = InsightsService(repository)
        self._listeners: list[StateListener] = []
        self._unsubscribe = repository.subscribe(self._on_items)

    @property
    def current_month(self) -> YearMonth:
        return self._current_month

    @current_month.setter
    def current_month(self, month: YearMonth) -> None:
        self._current_month = month
        logger.debug(f"current_month_changed: month={month}")
        self.load_month()

    @property
    def monthly_budget(self) -> float:
        return self._monthly_budget

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()

    def _on_items(self, _snapshot: tuple[Expense, ...]) -> None:
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _now(self) -> datetime:
        return datetime.now(self.zone).replace(tzinfo=None)

    def expenses_for_month(self) -> list[Expense]:
        return sorted(
            self.repository.items, key=lambda e: e.occurred_at, reverse=True
        )

    def expenses_for_category(self, category: str) -> list[Expense]:
        return [e for e in self.expenses_for_month() if e.category == category]

    def displayed_total(self, category: Optional[str] = None) -> float:
        items = (
            self.expenses_for_category(category)
            if category is not None
            else self.repository.items
        )
        return sum(e.amount for e in items)

    def load_month(self, month: Optional[YearMonth] = None) -> list[Expense]:
        if month is not None:
            self._current_month = month
        self.repository.load_month(self._current_month, self.zone)
        return self.expenses_for_month()

    def previous_month(self, step: int = 1) -> YearMonth:
        self.current_month = self._current_month.plus_months(-step)
        return self._current_month

    def next_month(self, step: int = 1) -> YearMonth:
        self.current_month = self._current_month.plus_months(step)
        return self._current_month

    def add_expense(self, data: ExpenseIn) -> Expense:
        expense = Expense(
            title=data.title,
            amount=data.amount,
            category=data.category.value,
            occurred_at=data.occurred_at or self._now(),
        )
        self.repository.add(expense)
        self.load_month()
        return expense

    def update_expense(self, expense: Expense) -> None:
        self.repository.update(expense)
        self.load_month()

    def delete_expense(self, expense_id: str) -> None:
        self.repository.delete(expense_id)
        self.load_month()

    def monthly_total(self, month: Optional[YearMonth] = None) -> float:
        return self.repository.monthly_total(month or self._current_month, self.zone)

    def totals_by_category(
        self, month: Optional[YearMonth] = None
    ) -> list[CategoryTotal]:
        return self.repository.totals_by_category(
            month or self._current_month, self.zone
        )

    def category_breakdown(
        self, month: Optional[YearMonth] = None
    ) -> list[dict[str, object]]:
        return self.insights.category_breakdown(
            month or self._current_month, self.zone
        )

    def monthly_trend(self, months: int = 6) -> list[MonthlyTotal]:
        return self.insights.monthly_series(
            self._current_month, self.zone, self._monthly_budget, months_back=months
        )

    def save_budget(self, value: float) -> float:
        data = BudgetIn(monthly_budget=value)
        with session_scope(self._session_factory) as session:
            self._monthly_budget = SettingsService(session).set_monthly_budget(
                data.monthly_budget
            )
        self._notify()
        return self._monthly_budget
