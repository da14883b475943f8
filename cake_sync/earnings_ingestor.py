"""
CAKE Earnings Ingestor

Fetches one date window from CAKE, filters it down to Spark IDs and,
in per-day modes, upserts the result straight away.

API Cost: 1 CAKE call per window
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Pattern

from cake_sync.cake_client import CakeClient
from cake_sync.db_persistence import DatabasePersistence
from cake_sync.earnings_normalizer import NormalizationResult, normalize_rows
from cake_sync.utils.log import log_step
from cake_sync.utils.windows import DateWindow


@dataclass
class WindowResult:
    window: DateWindow
    rows_fetched: int = 0
    normalized: NormalizationResult = field(default_factory=NormalizationResult)
    rows_written: int = 0


class EarningsIngestor:
    """Handles fetch + normalize (+ write) for a single window"""

    def __init__(self, client: CakeClient, db: DatabasePersistence, affiliate_id: str, id_pattern: Pattern[str]):
        self.client = client
        self.db = db
        self.affiliate_id = affiliate_id
        self.id_pattern = id_pattern

    def collect_window(self, window: DateWindow, record_date: Optional[date] = None) -> WindowResult:
        """
        Fetch and normalize a window without writing anything.

        Args:
            window: Date range to request
            record_date: Fixed date for every record; None keeps each row's own date
        """
        rows = self.client.fetch_sub_affiliate_summary(self.affiliate_id, window)
        normalized = normalize_rows(rows, self.id_pattern, record_date=record_date)

        if normalized.dropped:
            log_step(
                f"  -> kept {len(normalized.records)} Spark ID rows, dropped "
                f"{normalized.dropped_invalid_id} non-matching and "
                f"{normalized.dropped_missing_date} undated"
            )

        return WindowResult(window=window, rows_fetched=len(rows), normalized=normalized)

    def ingest_window(self, window: DateWindow) -> WindowResult:
        """Fetch, normalize and upsert one window of per-day rows."""
        result = self.collect_window(window)

        if not result.normalized.records:
            log_step(f"No Spark ID rows for {window}, nothing to write")
            return result

        counts = self.db.upsert_earnings(result.normalized.records)
        result.rows_written = counts['rows_processed']
        return result
