"""Cancellation refund policy.

Refund tiers by lead time before the booking starts:
- 7+ days: full refund
- 3 to 6 days: 50% refund
- under 3 days: no refund

Days are counted with ceiling division, so any part of a day counts as a
whole day in the renter's favour.
"""

import math
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

SECONDS_PER_DAY = 24 * 60 * 60

# (minimum days until start, refund percentage); first match wins.
REFUND_TIERS: list[tuple[int, int]] = [
    (7, 100),
    (3, 50),
]

POLICY_SUMMARY = {
    "7+ days": "100% refund",
    "3-6 days": "50% refund",
    "<3 days": "No refund",
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_until_start(start_date: datetime, now: datetime | None = None) -> int:
    """Whole days from ``now`` until ``start_date``, rounded up."""
    now = _as_utc(now or datetime.now(UTC))
    delta = _as_utc(start_date) - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def refund_percentage_for_days(days: int) -> int:
    """Map days-until-start to a refund percentage."""
    for min_days, percentage in REFUND_TIERS:
        if days >= min_days:
            return percentage
    return 0


def calculate_refund_percentage(start_date: datetime, now: datetime | None = None) -> int:
    """Refund percentage for cancelling at ``now`` a booking starting at ``start_date``."""
    return refund_percentage_for_days(days_until_start(start_date, now))


def calculate_refund_amount(amount: int, refund_percentage: int) -> int:
    """Refund in smallest currency units, rounded half up.

    Args:
        amount: Captured amount in cents
        refund_percentage: 0-100

    Returns:
        int: Refund amount in cents
    """
    refund = (Decimal(amount) * Decimal(refund_percentage) / Decimal("100")).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(refund)
