from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, NaiveDatetime, field_validator

from models import ExpenseCategory


def _new_expense_id() -> str:
    return str(uuid4())


def _truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


class Expense(BaseModel):
    """An expense as the repository and state holder see it.

    ``occurred_at`` is a zone-naive local datetime. It is kept at millisecond
    precision because that is what the store persists.
    """

    id: str = Field(default_factory=_new_expense_id)
    title: str
    amount: float
    category: str
    occurred_at: NaiveDatetime = Field(
        default_factory=datetime.now, validate_default=True
    )

    @field_validator("occurred_at")
    @classmethod
    def _millisecond_precision(cls, value: datetime) -> datetime:
        return _truncate_to_millis(value)


class ExpenseIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    category: ExpenseCategory
    occurred_at: Optional[NaiveDatetime] = None


class BudgetIn(BaseModel):
    monthly_budget: float = Field(..., gt=0)
