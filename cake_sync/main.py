"""
CAKE Earnings Sync - Windowed Ingestion Pipeline

One pipeline, three strategies (see SyncMode):
  snapshot     lifetime totals per Spark ID under SNAPSHOT_DATE, written once
  backfill     every day since SYNC_START_DATE, written window by window
  incremental  SNAPSHOT_DATE .. as-of, written window by window

Windows are processed strictly in order, earliest first, one at a time.
A malformed CAKE payload skips its window in every mode; transport and
HTTP errors skip a window only in backfill mode.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional, Tuple

from cake_sync.cake_client import CakeClient
from cake_sync.db_persistence import DatabasePersistence
from cake_sync.earnings_ingestor import EarningsIngestor, WindowResult
from cake_sync.exceptions import FetchError, SchemaError
from cake_sync.settings import Settings, SyncMode
from cake_sync.utils.log import log_step
from cake_sync.utils.metrics import Totals, aggregate_to_snapshot
from cake_sync.utils.windows import DateWindow, count_windows, default_as_of, iter_date_windows


@dataclass
class SyncSummary:
    mode: SyncMode
    start_date: date
    end_date: date
    windows_planned: int = 0
    windows_fetched: int = 0
    skipped_windows: List[Tuple[DateWindow, str]] = field(default_factory=list)
    rows_fetched: int = 0
    rows_accepted: int = 0
    rows_dropped: int = 0
    rows_written: int = 0

    @property
    def windows_skipped(self) -> int:
        return len(self.skipped_windows)

    def add(self, result: WindowResult) -> None:
        self.windows_fetched += 1
        self.rows_fetched += result.rows_fetched
        self.rows_accepted += len(result.normalized.records)
        self.rows_dropped += result.normalized.dropped
        self.rows_written += result.rows_written


@contextmanager
def db_scope(db: DatabasePersistence):
    """
    Open the connection, yield it, and always close it when the with-block exits.

    Usage:
        with db_scope(db) as db:
            db.upsert_earnings(...)
    """
    db.connect()
    try:
        yield db
    finally:
        db.disconnect()


def sync_range(settings: Settings, as_of: date) -> Tuple[date, date]:
    """Inclusive date range a run covers for the configured mode."""
    if settings.SYNC_MODE is SyncMode.INCREMENTAL:
        return settings.SNAPSHOT_DATE, as_of
    return settings.SYNC_START_DATE, as_of


def plan_windows(settings: Settings, start: date, end: date) -> Tuple[int, Iterator[DateWindow]]:
    """Windows for the run, at most SYNC_WINDOW_DAYS wide, with their count."""
    planned = count_windows(start, end, settings.SYNC_WINDOW_DAYS)
    return planned, iter_date_windows(start, end, settings.SYNC_WINDOW_DAYS)


def run_sync(
    settings: Settings,
    as_of: Optional[date] = None,
    client: Optional[CakeClient] = None,
    db: Optional[DatabasePersistence] = None,
) -> SyncSummary:
    """
    Execute one sync run.

    Args:
        settings: Configuration built once at process start
        as_of: Last day to sync (inclusive); defaults to yesterday
        client: CAKE client; built from settings when omitted
        db: Persistence layer; built from settings when omitted

    Returns:
        SyncSummary with window and row counters

    Raises:
        SyncError: any error the mode does not tolerate
    """
    as_of = as_of or default_as_of()
    mode = settings.SYNC_MODE
    start, end = sync_range(settings, as_of)
    planned, windows = plan_windows(settings, start, end)

    summary = SyncSummary(mode=mode, start_date=start, end_date=end, windows_planned=planned)
    log_step(f"STARTING {mode.value.upper()} SYNC: {start} → {end} ({planned} windows)")

    if planned == 0:
        log_step(f"Nothing to sync: start {start} is after {end}", "WARNING")
        return summary

    owns_client = client is None
    client = client or CakeClient.from_settings(settings)
    db = db or DatabasePersistence.from_settings(settings)

    try:
        with db_scope(db) as db:
            ingestor = EarningsIngestor(client, db, settings.CAKE_AFFILIATE_ID, settings.spark_id_regex)
            if mode.aggregates:
                _run_snapshot(ingestor, windows, settings.SNAPSHOT_DATE, summary)
            else:
                _run_per_day(ingestor, windows, mode, summary)
    finally:
        if owns_client:
            client.close()

    log_step(
        f"{mode.value.upper()} SYNC COMPLETE: {summary.rows_written} rows written, "
        f"{summary.windows_skipped} windows skipped",
        "SUCCESS"
    )
    return summary


def _run_snapshot(ingestor: EarningsIngestor, windows: Iterator[DateWindow], snapshot_date: date, summary: SyncSummary) -> None:
    """Fold every window into lifetime totals, then flush once."""
    totals: Totals = {}

    for window in windows:
        try:
            result = ingestor.collect_window(window, record_date=snapshot_date)
        except SchemaError as e:
            _skip_window(window, e, summary)
            continue

        totals = aggregate_to_snapshot(result.normalized.records, snapshot_date, totals)
        summary.add(result)

    if not totals:
        log_step("No Spark ID rows found at all", "WARNING")
        return

    counts = ingestor.db.upsert_earnings(list(totals.values()))
    summary.rows_written += counts['rows_processed']
    log_step(f"Synced {counts['rows_processed']} Spark ID lifetime rows", "SUCCESS")


def _run_per_day(ingestor: EarningsIngestor, windows: Iterator[DateWindow], mode: SyncMode, summary: SyncSummary) -> None:
    """Write each window's per-day rows before fetching the next one."""
    for idx, window in enumerate(windows, 1):
        log_step(f"Window {idx}/{summary.windows_planned}: {window}", "PROGRESS")
        try:
            result = ingestor.ingest_window(window)
        except SchemaError as e:
            _skip_window(window, e, summary)
            continue
        except FetchError as e:
            if not mode.tolerates_fetch_errors:
                raise
            _skip_window(window, e, summary)
            continue

        summary.add(result)


def _skip_window(window: DateWindow, error: Exception, summary: SyncSummary) -> None:
    log_step(f"Skipping window {window}: {error}", "WARNING")
    summary.skipped_windows.append((window, str(error)))
