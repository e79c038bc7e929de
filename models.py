from enum import Enum
from typing import Optional

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class ExpenseCategory(str, Enum):
    housing = "Housing"
    utilities = "Utilities"
    groceries = "Groceries"
    transportation = "Transportation"
    dining_out = "Dining Out"
    shopping = "Shopping"
    health_insurance = "Health & Insurance"
    entertainment = "Entertainment"
    education = "Education"
    subscriptions = "Subscriptions"
    savings_investments = "Savings & Investments"
    others = "Others"


class ExpenseRecord(Base):
    """One persisted expense row.

    The category is stored as free text; membership in ``ExpenseCategory`` is only
    checked by the input schema.
    """

    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(Text)
    amount: Mapped[Optional[float]] = mapped_column(Float)
    category: Mapped[Optional[str]] = mapped_column(Text, index=True)
    occurred_at_epoch_ms: Mapped[int] = mapped_column(
        "occurredAtEpochMs", Integer, nullable=False, index=True
    )


class AppSetting(Base):
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
