"""
Ledger - Per-recipient distribution of every payment.

Each PaymentRecord is split into DistributionRecord rows (platform,
management, owner) that always add up to its gross amount. Each row
tracks whether its share has been transferred to the recipient.

Public API:
    Models:
        DistributionRecord - One recipient's share of one payment

    Service:
        ledger - Singleton instance of DistributionLedgerService
        DistributionLedgerService - Class with all ledger operations

    Types:
        DistributionShare - A share to be written as a row

    Exceptions:
        LedgerError - Base exception for ledger operations
        DistributionNotFound - Distribution lookup failures
        LedgerImbalance - Rows that would not sum to the gross amount

Usage:
    from payments.ledger import ledger

    rows = ledger.create_distributions(payment_record)
    if ledger.claim(owner_row.id):
        ledger.mark_manual(owner_row.id, "Owner has no connected account")
"""

from .exceptions import DistributionNotFound, LedgerError, LedgerImbalance
from .models import DistributionRecord
from .services import DistributionLedgerService, ledger
from .types import DistributionShare

__all__ = [
    # Models
    "DistributionRecord",
    # Service
    "ledger",
    "DistributionLedgerService",
    # Types
    "DistributionShare",
    # Exceptions
    "LedgerError",
    "DistributionNotFound",
    "LedgerImbalance",
]
