from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta


@dataclass(frozen=True)
class MonthRange:
    start: datetime
    end: datetime
    label: str

    @property
    def start_iso(self) -> str:
        return self.start.strftime("%Y-%m-%dT%H:%M:%SZ")

    @property
    def end_iso(self) -> str:
        return self.end.strftime("%Y-%m-%dT%H:%M:%SZ")

    @property
    def start_epoch(self) -> int:
        return int(self.start.timestamp())

    @property
    def end_epoch(self) -> int:
        return int(self.end.timestamp())


def month_range(year: int, month: int) -> MonthRange:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    # last second of the month
    end = start + relativedelta(months=1) - timedelta(seconds=1)
    return MonthRange(start=start, end=end, label=f"{year:04d}-{month:02d}")


def last_full_months(now: Optional[datetime] = None, count: int = 12) -> list[MonthRange]:
    """
    Calendar months immediately preceding the month of `now`, oldest first.
    The current (partial) month is never included. All boundaries are UTC.
    """
    if count < 1:
        raise ValueError("count must be at least 1")

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)

    current = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    months: list[MonthRange] = []
    for i in range(count, 0, -1):
        first = current - relativedelta(months=i)
        months.append(month_range(first.year, first.month))
    return months
