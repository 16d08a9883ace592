"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── DistributionNotFound - Distribution lookup failures
    └── LedgerImbalance - Rows that would not add up to the gross amount

Usage:
    from payments.ledger.exceptions import DistributionNotFound

    raise DistributionNotFound(
        f"Distribution {distribution_id} not found",
        details={"distribution_id": str(distribution_id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, NotFoundError

if TYPE_CHECKING:
    import uuid


class LedgerError(BaseApplicationError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"


class DistributionNotFound(LedgerError, NotFoundError):
    default_error_code: str = "DISTRIBUTION_NOT_FOUND"
    http_status: int = 404


class LedgerImbalance(LedgerError):
    """
    Raised when distribution amounts would not sum to the payment's gross.

    Attributes:
        payment_record_id: Payment whose rows are out of balance
        expected: Gross amount in cents
        actual: Sum of the distribution amounts in cents
    """

    default_error_code: str = "LEDGER_IMBALANCE"

    def __init__(self, payment_record_id: uuid.UUID, expected: int, actual: int):
        self.payment_record_id = payment_record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Distributions for payment {payment_record_id} sum to {actual}, expected {expected}",
            details={
                "payment_record_id": str(payment_record_id),
                "expected": expected,
                "actual": actual,
            },
        )
