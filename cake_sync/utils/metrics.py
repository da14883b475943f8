"""
Lifetime-total aggregation for snapshot mode.
Implemented as a pure fold: inputs are never mutated, every step returns a new mapping.
"""

from dataclasses import replace
from datetime import date
from functools import reduce
from typing import Dict, Iterable, Mapping, Optional

from cake_sync.models.earnings_record import EarningsRecord

Totals = Dict[str, EarningsRecord]


def accumulate(totals: Mapping[str, EarningsRecord], record: EarningsRecord) -> Totals:
    """
    Fold one record into per-partner totals.
    The existing total keeps its date; a first sighting keeps the record's date.
    """
    updated = dict(totals)
    previous = totals.get(record.partner_id)
    updated[record.partner_id] = previous.merged_with(record) if previous else record
    return updated


def aggregate_to_snapshot(
    records: Iterable[EarningsRecord],
    snapshot_date: date,
    totals: Optional[Mapping[str, EarningsRecord]] = None,
) -> Totals:
    """
    Sum clicks, conversions, revenue and payout per partner and pin every
    total to `snapshot_date`, discarding the source dates.

    Args:
        records: Normalized records from any number of windows
        snapshot_date: Synthetic date the lifetime totals are stored under
        totals: Running totals from earlier windows, if any
    """
    pinned = (replace(record, date=snapshot_date) for record in records)
    return reduce(accumulate, pinned, dict(totals or {}))
