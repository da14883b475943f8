from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict

ZERO = Decimal("0")


@dataclass(frozen=True)
class EarningsRecord:
    """
    Canonical earnings row for one Spark ID on one date.
    `payout` carries CAKE's `events` column as-is.
    """
    partner_id: str
    date: date
    clicks: int = 0
    conversions: int = 0
    revenue: Decimal = ZERO
    payout: Decimal = ZERO

    @property
    def key(self) -> tuple:
        """Conflict key of the destination table"""
        return (self.partner_id, self.date)

    def merged_with(self, other: "EarningsRecord") -> "EarningsRecord":
        """Elementwise sum of metrics; keeps this record's id and date."""
        return replace(
            self,
            clicks=self.clicks + other.clicks,
            conversions=self.conversions + other.conversions,
            revenue=self.revenue + other.revenue,
            payout=self.payout + other.payout,
        )

    def to_row(self) -> Dict[str, Any]:
        """Convert to the cake_earnings_daily column layout"""
        return {
            'cake_affiliate_id': self.partner_id,
            'date': self.date.isoformat(),
            'clicks': self.clicks,
            'conversions': self.conversions,
            'revenue': self.revenue,
            'payout': self.payout,
        }
