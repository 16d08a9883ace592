"""
Distribution ledger service.

All writes to DistributionRecord go through this service. Status changes
are conditional updates keyed on the expected current status, which is
what makes a settlement that runs twice (confirm call and webhook) safe
without any lock: the second run simply finds nothing to claim.

Usage:
    from payments.ledger.services import ledger

    rows = ledger.create_distributions(payment_record)

    if ledger.claim(owner_row.id):
        ...  # this caller owns the transfer attempt
        ledger.mark_transferred(owner_row.id, transfer.id, transfer.amount, "usd")
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from payments.fees import FeeSplit
from payments.state_machines import DistributionStatus

from .exceptions import DistributionNotFound, LedgerImbalance
from .models import DistributionRecord
from .types import shares_for_split

if TYPE_CHECKING:
    import uuid

    from payments.models import PaymentRecord

logger = logging.getLogger(__name__)


def split_for_record(payment_record: PaymentRecord) -> FeeSplit:
    """Rebuild the persisted fee split of a payment record."""
    return FeeSplit(
        gross_cents=payment_record.gross_amount_cents,
        platform_fee_cents=payment_record.platform_fee_cents,
        management_fee_cents=payment_record.management_fee_cents,
        owner_net_cents=payment_record.owner_net_cents,
        platform_fee_percent=payment_record.platform_fee_percentage,
        management_fee_percent=payment_record.management_fee_percentage,
    )


class DistributionLedgerService:
    """
    Service class for distribution ledger operations.

    Key features:
    - One row per (payment, recipient type), enforced by a unique constraint
    - Rows always sum to the payment's gross amount
    - Claim-then-resolve status changes via conditional updates

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def create_distributions(payment_record: PaymentRecord) -> list[DistributionRecord]:
        """
        Write the distribution rows for a payment record.

        Safe to call again: if rows already exist (or a concurrent caller
        wins the insert) the existing rows are returned.

        Raises:
            LedgerImbalance: If the stored fee parts do not add up to gross
        """
        existing = list(payment_record.distributions.all())
        if existing:
            return existing

        split = split_for_record(payment_record)
        rental_property = payment_record.application.rental_property
        shares = shares_for_split(
            split,
            owner=rental_property.owner,
            management=rental_property.management_recipient,
        )

        total = sum(share.amount_cents for share in shares)
        if total != payment_record.gross_amount_cents:
            raise LedgerImbalance(
                payment_record.id,
                expected=payment_record.gross_amount_cents,
                actual=total,
            )

        try:
            with transaction.atomic():
                rows = [
                    DistributionRecord.objects.create(
                        payment_record=payment_record,
                        recipient_type=share.recipient_type,
                        recipient=share.recipient,
                        amount_cents=share.amount_cents,
                        percentage=share.percentage,
                    )
                    for share in shares
                ]
        except IntegrityError:
            logger.info(
                "Distributions already written by a concurrent caller",
                extra={"payment_record_id": str(payment_record.id)},
            )
            return list(payment_record.distributions.all())

        logger.info(
            "Created distributions",
            extra={
                "payment_record_id": str(payment_record.id),
                "recipient_types": [row.recipient_type for row in rows],
            },
        )
        return rows

    @staticmethod
    def ensure_distributions(payment_record: PaymentRecord) -> list[DistributionRecord]:
        """Return the payment's rows, creating them if intent creation could not."""
        return DistributionLedgerService.create_distributions(payment_record)

    @staticmethod
    def get_distribution(distribution_id: uuid.UUID) -> DistributionRecord:
        """
        Raises:
            DistributionNotFound: If the row doesn't exist
        """
        try:
            return DistributionRecord.objects.select_related("payment_record").get(
                id=distribution_id
            )
        except DistributionRecord.DoesNotExist:
            raise DistributionNotFound(
                f"Distribution {distribution_id} not found",
                details={"distribution_id": str(distribution_id)},
            )

    @staticmethod
    def _move(distribution_id, source: str, **fields) -> bool:
        fields["updated_at"] = timezone.now()
        return (
            DistributionRecord.objects.filter(id=distribution_id, status=source).update(**fields)
            == 1
        )

    @staticmethod
    def claim(distribution_id: uuid.UUID) -> bool:
        """
        Claim a PENDING row for a transfer attempt.

        Returns:
            True if this caller now owns the attempt; False if the row
            was already claimed or resolved by someone else
        """
        claimed = DistributionLedgerService._move(
            distribution_id,
            DistributionStatus.PENDING,
            status=DistributionStatus.PROCESSING,
            transfer_attempted_at=timezone.now(),
        )
        if not claimed:
            logger.info(
                "Distribution not pending, skipping transfer",
                extra={"distribution_id": str(distribution_id)},
            )
        return claimed

    @staticmethod
    def mark_transferred(
        distribution_id: uuid.UUID,
        transfer_id: str,
        amount_cents: int,
        currency: str,
    ) -> bool:
        """PROCESSING -> TRANSFERRED with the processor's transfer details."""
        return DistributionLedgerService._move(
            distribution_id,
            DistributionStatus.PROCESSING,
            status=DistributionStatus.TRANSFERRED,
            processor_transfer_id=transfer_id,
            transfer_amount_cents=amount_cents,
            transfer_currency=currency,
            transferred_at=timezone.now(),
            transfer_error="",
            transfer_error_code="",
        )

    @staticmethod
    def mark_failed(distribution_id: uuid.UUID, error_code: str, error: str) -> bool:
        """PROCESSING -> TRANSFER_FAILED, keeping the processor's message."""
        return DistributionLedgerService._move(
            distribution_id,
            DistributionStatus.PROCESSING,
            status=DistributionStatus.TRANSFER_FAILED,
            transfer_error=error,
            transfer_error_code=error_code,
        )

    @staticmethod
    def mark_manual(
        distribution_id: uuid.UUID,
        reason: str,
        error_code: str = "RECIPIENT_NOT_ELIGIBLE",
    ) -> bool:
        """PROCESSING -> MANUAL_PROCESSING_REQUIRED with a descriptive reason."""
        return DistributionLedgerService._move(
            distribution_id,
            DistributionStatus.PROCESSING,
            status=DistributionStatus.MANUAL_PROCESSING_REQUIRED,
            transfer_error=reason,
            transfer_error_code=error_code,
        )

    @staticmethod
    def expire_stale_claims(older_than_minutes: int | None = None) -> int:
        """
        Fail rows stuck in PROCESSING (e.g. the worker died mid-transfer).

        Stale rows become TRANSFER_FAILED with code TRANSFER_STALE so an
        operator can check Stripe for the transfer before paying by hand.

        Returns:
            Number of rows moved
        """
        if older_than_minutes is None:
            older_than_minutes = settings.TRANSFER_STALE_AFTER_MINUTES
        cutoff = timezone.now() - timedelta(minutes=older_than_minutes)

        expired = DistributionRecord.objects.filter(
            status=DistributionStatus.PROCESSING,
            transfer_attempted_at__lt=cutoff,
        ).update(
            status=DistributionStatus.TRANSFER_FAILED,
            transfer_error_code="TRANSFER_STALE",
            transfer_error=(
                f"Transfer attempt unresolved after {older_than_minutes} minutes; "
                "check the processor before retrying"
            ),
            updated_at=timezone.now(),
        )
        if expired:
            logger.warning(
                "Expired stale transfer claims",
                extra={"count": expired, "older_than_minutes": older_than_minutes},
            )
        return expired


# Singleton instance for convenience
ledger = DistributionLedgerService()
