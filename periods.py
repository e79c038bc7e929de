"""Calendar months and their epoch-millisecond bounds.

Expenses are stored as epoch milliseconds computed from a zone-naive local
datetime and whatever zone was current at write time. Reading a month back
with a different zone shifts rows near month edges and across daylight-saving
transitions; callers keep write and read zones consistent.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Union
from zoneinfo import ZoneInfo

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")

ZoneLike = Union[ZoneInfo, str]


def as_zone(zone: ZoneLike) -> ZoneInfo:
    if isinstance(zone, ZoneInfo):
        return zone
    return ZoneInfo(zone)


@dataclass(frozen=True, order=True)
class YearMonth:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        match = _MONTH_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid month {value!r}, expected YYYY-MM")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_date(cls, d: date) -> "YearMonth":
        return cls(d.year, d.month)

    @classmethod
    def now(cls, zone: ZoneLike) -> "YearMonth":
        return cls.from_date(datetime.now(as_zone(zone)).date())

    def plus_months(self, count: int) -> "YearMonth":
        month_index = (self.year * 12) + (self.month - 1) + count
        return YearMonth(month_index // 12, (month_index % 12) + 1)

    def next(self) -> "YearMonth":
        return self.plus_months(1)

    def previous(self) -> "YearMonth":
        return self.plus_months(-1)

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class MonthBounds:
    start: int
    end: int

    def __contains__(self, epoch_ms: int) -> bool:
        return self.start <= epoch_ms <= self.end


def to_epoch_ms(moment: datetime, zone: ZoneLike) -> int:
    """Epoch milliseconds of a naive local datetime interpreted in ``zone``.

    Ambiguous wall times resolve to the earlier offset (``fold=0``).
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=as_zone(zone))
    return (moment - EPOCH) // _MILLISECOND


def from_epoch_ms(epoch_ms: int, zone: ZoneLike) -> datetime:
    aware = (EPOCH + timedelta(milliseconds=epoch_ms)).astimezone(as_zone(zone))
    return aware.replace(tzinfo=None)


def month_bounds(month: YearMonth, zone: ZoneLike) -> MonthBounds:
    """Inclusive millisecond range covering ``month`` in ``zone``.

    ``end`` is the first instant of the following month minus one
    millisecond, so consecutive months are contiguous.
    """
    tz = as_zone(zone)
    start = datetime.combine(month.first_day(), datetime.min.time(), tzinfo=tz)
    following = datetime.combine(
        month.next().first_day(), datetime.min.time(), tzinfo=tz
    )
    return MonthBounds(
        start=to_epoch_ms(start, tz),
        end=to_epoch_ms(following, tz) - 1,
    )


def trailing_months(end: YearMonth, count: int) -> list[YearMonth]:
    """``count`` months ending at ``end``, oldest first."""
    if count < 1:
        raise ValueError("count must be positive")
    return [end.plus_months(-offset) for offset in range(count - 1, -1, -1)]
