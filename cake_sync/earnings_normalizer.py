"""
Earnings Row Normalizer

Turns raw CAKE SubAffiliateSummary rows into EarningsRecords.

Rules:
- A row is kept only if its sub_id fully matches the partner-ID pattern
- Missing, null or unparseable metrics become zero; they never reject a row
- `payout` is read from CAKE's `events` column
- In per-day modes a row without a usable date cannot be keyed and is dropped
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Pattern

from cake_sync.models.earnings_record import EarningsRecord, ZERO

_MS_DATE_RE = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")


@dataclass
class NormalizationResult:
    """Records produced from one batch of raw rows plus drop counters"""
    records: List[EarningsRecord] = field(default_factory=list)
    dropped_invalid_id: int = 0
    dropped_missing_date: int = 0

    @property
    def dropped(self) -> int:
        return self.dropped_invalid_id + self.dropped_missing_date


def compile_id_pattern(pattern: str, ignore_case: bool = False) -> Pattern[str]:
    """Compile the configured partner-ID format."""
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


def is_valid_partner_id(sub_id: Any, id_pattern: Pattern[str]) -> bool:
    if sub_id is None:
        return False
    text = str(sub_id)
    if not text:
        return False
    return id_pattern.fullmatch(text) is not None


def parse_report_date(value: Any) -> Optional[date]:
    """
    Parse the date CAKE attaches to a report row.

    Accepts date objects, ISO strings ("2025-12-01", "2025-12-01T00:00:00"),
    US-style "12/01/2025" and the Microsoft JSON form "/Date(1733011200000)/".
    Returns None for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    match = _MS_DATE_RE.match(text)
    if match:
        moment = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
        offset = match.group(2)
        if offset:
            sign = -1 if offset[0] == '-' else 1
            moment += sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[3:5]))
        return moment.date()

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    try:
        return datetime.strptime(text, "%m/%d/%Y").date()
    except ValueError:
        return None


def to_decimal(value: Any) -> Decimal:
    """Coerce a raw metric to Decimal; null or garbage becomes zero, sign is kept."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip().replace(',', '').lstrip('$')
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not number.is_finite():
        return ZERO
    return number


def to_int(value: Any) -> int:
    """Coerce a raw count to int, truncating fractional values."""
    return int(to_decimal(value))


def normalize_row(row: Dict[str, Any], partner_id: str, row_date: date) -> EarningsRecord:
    return EarningsRecord(
        partner_id=partner_id,
        date=row_date,
        clicks=to_int(row.get('clicks')),
        conversions=to_int(row.get('conversions')),
        revenue=to_decimal(row.get('revenue')),
        # payout column is fed from CAKE `events`, not CAKE `payout`
        payout=to_decimal(row.get('events')),
    )


def normalize_rows(
    raw_rows: Iterable[Dict[str, Any]],
    id_pattern: Pattern[str],
    record_date: Optional[date] = None,
) -> NormalizationResult:
    """
    Filter and normalize raw report rows.

    Args:
        raw_rows: Rows from the CAKE `data` array
        id_pattern: Compiled partner-ID format
        record_date: Fixed date for every record (snapshot mode); when None
            each row's own `date` is used

    Returns:
        NormalizationResult with records and drop counters
    """
    result = NormalizationResult()

    for row in raw_rows:
        sub_id = row.get('sub_id')
        if not is_valid_partner_id(sub_id, id_pattern):
            result.dropped_invalid_id += 1
            continue

        row_date = record_date or parse_report_date(row.get('date'))
        if row_date is None:
            result.dropped_missing_date += 1
            continue

        result.records.append(normalize_row(row, str(sub_id), row_date))

    return result
