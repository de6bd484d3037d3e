"""
Platform fee calculation for collaborations.

Fee model:
- Cash deals: host pays cash + host markup (15%); creator receives cash - creator fee (15%)
- The two percentages are independent; only the host side is charged at payment time
- Post-for-stay deals: host pays a flat platform fee ($99), no creator cash
- Stay-only deals with no cash: no fees
- Amounts are integer minor units (cents), rounded half-up
"""

from dataclasses import dataclass
import math


@dataclass
class PaymentBreakdown:
    cash_amount_minor: int       # Agreed compensation
    host_fee_minor: int          # Markup (cash) or flat platform fee (post-for-stay)
    host_total_minor: int        # What the host is charged
    creator_fee_minor: int       # Deducted from the creator payout
    creator_net_minor: int       # What the creator receives
    platform_revenue_minor: int  # host_fee + creator_fee

    @property
    def requires_charge(self) -> bool:
        return self.host_total_minor > 0


class FeeCalculator:
    """
    Calculates the platform take for a deal.

    Args:
        host_markup_percent: Percent added on top of cash for the host (e.g., 15.0)
        creator_fee_percent: Percent withheld from the creator payout (e.g., 15.0)
        post_for_stay_fee_minor: Flat fee charged to the host for post-for-stay deals
    """

    def __init__(
        self,
        host_markup_percent: float,
        creator_fee_percent: float,
        post_for_stay_fee_minor: int,
    ):
        self.host_markup_percent = host_markup_percent
        self.creator_fee_percent = creator_fee_percent
        self.post_for_stay_fee_minor = post_for_stay_fee_minor

    @staticmethod
    def _percent_of(amount_minor: int, percent: float) -> int:
        # Half-up, so 0.5 cent goes to the platform rather than banker's rounding.
        return int(math.floor(amount_minor * percent / 100 + 0.5))

    def calculate(self, deal_type: str, cash_amount_minor: int) -> PaymentBreakdown:
        if deal_type == "post-for-stay":
            fee = self.post_for_stay_fee_minor
            return PaymentBreakdown(
                cash_amount_minor=0,
                host_fee_minor=fee,
                host_total_minor=fee,
                creator_fee_minor=0,
                creator_net_minor=0,
                platform_revenue_minor=fee,
            )

        if cash_amount_minor <= 0:
            return PaymentBreakdown(0, 0, 0, 0, 0, 0)

        host_fee = self._percent_of(cash_amount_minor, self.host_markup_percent)
        creator_fee = self._percent_of(cash_amount_minor, self.creator_fee_percent)
        return PaymentBreakdown(
            cash_amount_minor=cash_amount_minor,
            host_fee_minor=host_fee,
            host_total_minor=cash_amount_minor + host_fee,
            creator_fee_minor=creator_fee,
            creator_net_minor=cash_amount_minor - creator_fee,
            platform_revenue_minor=host_fee + creator_fee,
        )


def get_fee_calculator() -> FeeCalculator:
    """Calculator configured from application settings."""
    from app.core.config import settings

    return FeeCalculator(
        host_markup_percent=settings.HOST_MARKUP_PERCENT,
        creator_fee_percent=settings.CREATOR_FEE_PERCENT,
        post_for_stay_fee_minor=settings.POST_FOR_STAY_FEE_CENTS,
    )
