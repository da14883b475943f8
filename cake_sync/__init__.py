"""
CAKE Earnings Sync

Scheduled batch job that pulls Sub-Affiliate Summary reports from CAKE and
upserts Spark ID earnings into Supabase.
"""

__version__ = "1.0.0"
