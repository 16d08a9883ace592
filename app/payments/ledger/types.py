"""
Data types for ledger operations.

Types:
    DistributionShare: One recipient's planned share of a payment

Usage:
    from payments.ledger.types import DistributionShare, shares_for_split

    shares = shares_for_split(split, owner=owner, management=manager)
    assert sum(s.amount_cents for s in shares) == split.gross_cents
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from payments.state_machines import RecipientType

if TYPE_CHECKING:
    from payments.fees import FeeSplit


@dataclass(frozen=True)
class DistributionShare:
    """
    A share to be written as a DistributionRecord.

    Attributes:
        recipient_type: platform, management or owner
        recipient: Receiving user (None for the platform)
        amount_cents: Share in cents
        percentage: Share of the gross, as a percentage
    """

    recipient_type: str
    recipient: Any
    amount_cents: int
    percentage: Decimal


def shares_for_split(split: FeeSplit, owner, management) -> list[DistributionShare]:
    """
    Build the shares for a fee split.

    Platform and management shares are only included when non-zero;
    the owner share is always included and takes the remainder.
    """
    shares = []
    if split.platform_fee_cents > 0:
        shares.append(
            DistributionShare(
                recipient_type=RecipientType.PLATFORM,
                recipient=None,
                amount_cents=split.platform_fee_cents,
                percentage=split.platform_fee_percent,
            )
        )
    if split.management_fee_cents > 0:
        shares.append(
            DistributionShare(
                recipient_type=RecipientType.MANAGEMENT,
                recipient=management,
                amount_cents=split.management_fee_cents,
                percentage=split.management_fee_percent,
            )
        )
    shares.append(
        DistributionShare(
            recipient_type=RecipientType.OWNER,
            recipient=owner,
            amount_cents=split.owner_net_cents,
            percentage=split.owner_percent,
        )
    )
    return shares
