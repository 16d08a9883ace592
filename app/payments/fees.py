"""
Fee split calculation.

Splits a gross amount (integer cents) into platform fee, management fee
and owner net. Each fee is rounded half-up to whole cents on its own and
the owner receives the remainder, so the three parts always add up to
the gross amount exactly.

Usage:
    from payments.fees import compute_split

    split = compute_split(100_000, Decimal("5.00"), Decimal("0.00"))
    split.platform_fee_cents   # 5000
    split.owner_net_cents      # 95000
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings

from payments.exceptions import InvalidAmountError

HUNDRED = Decimal("100")
CENT = Decimal("1")


@dataclass(frozen=True)
class FeeSplit:
    """Result of splitting one gross amount between the three recipients."""

    gross_cents: int
    platform_fee_cents: int
    management_fee_cents: int
    owner_net_cents: int
    platform_fee_percent: Decimal
    management_fee_percent: Decimal

    @property
    def owner_percent(self) -> Decimal:
        return HUNDRED - self.platform_fee_percent - self.management_fee_percent


def _to_percent(value, label: str) -> Decimal:
    try:
        pct = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmountError(
            f"{label} is not a number",
            details={label: str(value)},
        ) from e
    if not pct.is_finite() or pct < 0 or pct > HUNDRED:
        raise InvalidAmountError(
            f"{label} must be between 0 and 100",
            details={label: str(value)},
        )
    return pct


def _fee(gross_cents: int, pct: Decimal) -> int:
    return int((Decimal(gross_cents) * pct / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP))


def compute_split(
    gross_cents: int,
    platform_fee_pct: Decimal | None = None,
    management_fee_pct: Decimal | None = None,
) -> FeeSplit:
    """
    Split a gross amount between platform, management and owner.

    Args:
        gross_cents: Amount in cents, must be a non-negative int
        platform_fee_pct: Platform percentage (None uses PLATFORM_FEE_PERCENT)
        management_fee_pct: Management percentage (None uses MANAGEMENT_FEE_PERCENT)

    Returns:
        FeeSplit whose parts sum to gross_cents

    Raises:
        InvalidAmountError: Negative or non-integer amount, a percentage
            outside 0..100, or percentages summing above 100
    """
    if isinstance(gross_cents, bool) or not isinstance(gross_cents, int):
        raise InvalidAmountError(
            "Amount must be a whole number of cents",
            details={"gross_cents": str(gross_cents)},
        )
    if gross_cents < 0:
        raise InvalidAmountError(
            "Amount cannot be negative",
            details={"gross_cents": gross_cents},
        )

    if platform_fee_pct is None:
        platform_fee_pct = settings.PLATFORM_FEE_PERCENT
    if management_fee_pct is None:
        management_fee_pct = settings.MANAGEMENT_FEE_PERCENT

    platform_pct = _to_percent(platform_fee_pct, "platform_fee_percent")
    management_pct = _to_percent(management_fee_pct, "management_fee_percent")
    if platform_pct + management_pct > HUNDRED:
        raise InvalidAmountError(
            "Fee percentages cannot exceed 100 in total",
            details={
                "platform_fee_percent": str(platform_pct),
                "management_fee_percent": str(management_pct),
            },
        )

    platform_fee = _fee(gross_cents, platform_pct)
    # Two half-up roundings can overshoot by a cent at 100% combined.
    management_fee = min(_fee(gross_cents, management_pct), gross_cents - platform_fee)

    return FeeSplit(
        gross_cents=gross_cents,
        platform_fee_cents=platform_fee,
        management_fee_cents=management_fee,
        owner_net_cents=gross_cents - platform_fee - management_fee,
        platform_fee_percent=platform_pct,
        management_fee_percent=management_pct,
    )


def to_cents(amount) -> int:
    """
    Convert a decimal dollar amount to integer cents.

    Raises:
        InvalidAmountError: If the amount has sub-cent precision or is negative
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmountError("Amount is not a number", details={"amount": str(amount)}) from e
    if not value.is_finite() or value < 0:
        raise InvalidAmountError("Amount must be a positive number", details={"amount": str(amount)})
    cents = value * HUNDRED
    if cents != cents.to_integral_value():
        raise InvalidAmountError(
            "Amount cannot have more than two decimal places",
            details={"amount": str(amount)},
        )
    return int(cents)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents to a two-place Decimal dollar amount."""
    return (Decimal(cents) / HUNDRED).quantize(Decimal("0.01"))
