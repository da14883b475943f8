"""
Centralized window logic for CAKE report requests.
Handles the as-of anchor and chunking of long date ranges into request-sized windows.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional

from cake_sync.config.sync_windows import CAKE_LAG_DAYS, WINDOW_DAYS


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar range covered by a single CAKE request"""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __str__(self) -> str:
        return f"{self.start.isoformat()} → {self.end.isoformat()}"


def default_as_of(today: Optional[date] = None) -> date:
    """Last completed CAKE day (yesterday, relative to `today`)."""
    today = today or date.today()
    return today - timedelta(days=CAKE_LAG_DAYS)


def iter_date_windows(start: date, end_inclusive: date, max_span_days: int = WINDOW_DAYS) -> Iterator[DateWindow]:
    """
    Lazily split [start, end_inclusive] into contiguous windows of at most
    `max_span_days` days. The last window is clipped to `end_inclusive`.

    An inverted range (start > end_inclusive) yields nothing.
    """
    if max_span_days < 1:
        raise ValueError(f"max_span_days must be >= 1, got {max_span_days}")

    span = timedelta(days=max_span_days - 1)
    cursor = start

    while cursor <= end_inclusive:
        window = DateWindow(cursor, min(cursor + span, end_inclusive))
        yield window
        cursor = window.end + timedelta(days=1)


def count_windows(start: date, end_inclusive: date, max_span_days: int = WINDOW_DAYS) -> int:
    """Number of windows iter_date_windows() will yield for the same arguments."""
    if max_span_days < 1:
        raise ValueError(f"max_span_days must be >= 1, got {max_span_days}")
    if start > end_inclusive:
        return 0
    total_days = (end_inclusive - start).days + 1
    return -(-total_days // max_span_days)
