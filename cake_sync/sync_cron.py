"""
CAKE Earnings Sync - Cron Entry Point
Loads configuration once, runs the configured sync strategy and maps the outcome to an exit code.

Exit Codes:
  0 = Finished (including "nothing to sync" and skipped backfill windows)
  1 = Configuration error or any error the strategy does not tolerate
"""

import sys
from datetime import date
from typing import Optional

from cake_sync.main import SyncSummary, run_sync
from cake_sync.settings import load_settings
from cake_sync.utils.log import log_step


def log_cron(message: str, level: str = "INFO") -> None:
    log_step(message, level, tag="CRON-SYNC")


def print_summary(summary: SyncSummary) -> None:
    log_cron("=" * 50)
    log_cron(f"CAKE SYNC SUMMARY ({summary.mode.value})")
    log_cron(f"Date range:      {summary.start_date} → {summary.end_date}")
    log_cron(f"Windows:         {summary.windows_fetched}/{summary.windows_planned} fetched")
    log_cron(f"Rows fetched:    {summary.rows_fetched:,}")
    log_cron(f"Spark ID rows:   {summary.rows_accepted:,} ({summary.rows_dropped:,} dropped)")
    log_cron(f"Rows written:    {summary.rows_written:,}")
    for window, reason in summary.skipped_windows:
        log_cron(f"Skipped {window}: {reason}", "WARNING")
    log_cron("=" * 50)


def run_cron(as_of: Optional[date] = None, env_file: Optional[str] = ".env") -> int:
    """Run one sync and return the process exit code."""
    log_cron("Starting CAKE earnings sync...")

    try:
        settings = load_settings(env_file=env_file)
        summary = run_sync(settings, as_of=as_of)
    except Exception as e:
        log_cron(f"Sync failed: {type(e).__name__}: {e}", "ERROR")
        return 1

    print_summary(summary)
    log_cron("Sync finished SUCCESSFULLY.", "SUCCESS")
    return 0


def main():
    sys.exit(run_cron())


if __name__ == "__main__":
    main()
