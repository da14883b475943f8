"""
Canonical defaults for CAKE sync date windows and identifiers.
Settings fall back to these values when the environment does not override them.
"""

from datetime import date

# CAKE Request Limits
WINDOW_DAYS = 28  # Largest range CAKE reliably serves in one SubAffiliateSummary call

# CAKE Data Lag
CAKE_LAG_DAYS = 1  # Only completed days are synced (today - 1)

# History
SYNC_START_DATE = date(2025, 12, 1)  # First day with Spark ID traffic
SNAPSHOT_DATE = date(2026, 1, 4)     # Synthetic date for lifetime totals

# Partner Identifiers
SPARK_ID_PATTERN = r"^SPK-[A-Z0-9]{4}-[A-Z0-9]{4}$"
SPARK_ID_IGNORE_CASE = True

# Upstream / Destination
CAKE_BASE_URL = "https://login.affluentco.com/affiliates/api"
CAKE_AFFILIATE_ID = "208330"
EARNINGS_TABLE = "cake_earnings_daily"
UPSERT_BATCH_SIZE = 500
