"""
Distribution ledger model.

One DistributionRecord exists per (PaymentRecord, recipient type). The
rows of a payment always add up to its gross amount: a platform row when
the platform fee is non-zero, a management row when the management fee
is non-zero, and an owner row for the remainder.

Usage:
    from payments.ledger.models import DistributionRecord
    from payments.state_machines import DistributionStatus, RecipientType

    owner_row = DistributionRecord.objects.get(
        payment_record=record,
        recipient_type=RecipientType.OWNER,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import DistributionStatus, RecipientType


class DistributionRecord(UUIDPrimaryKeyMixin, BaseModel):
    """
    One recipient's share of one payment record.

    State Flow:
        PENDING -> PROCESSING (claimed for a transfer attempt)
        PROCESSING -> TRANSFERRED | TRANSFER_FAILED | MANUAL_PROCESSING_REQUIRED

    Only a PENDING row can be claimed, and only the claimant may resolve
    it. Every status change is a conditional update on the expected
    current status, so two settlement runs can never both transfer the
    same row. The three resolved states are terminal. Platform rows stay
    PENDING: the platform share never leaves the platform's balance.

    Fields:
        payment_record: Payment this share belongs to
        recipient_type: platform, management or owner
        recipient: User receiving the share (None for the platform)
        amount_cents: Share in cents
        percentage: Share of the gross amount, as a percentage
        processor_transfer_id: Stripe Transfer ID (tr_xxx) once transferred
        transfer_error_code: Machine-readable reason for a failed or manual row
    """

    payment_record = models.ForeignKey(
        "payments.PaymentRecord",
        on_delete=models.PROTECT,
        related_name="distributions",
    )
    recipient_type = models.CharField(
        max_length=20,
        choices=RecipientType.choices,
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="distributions",
        help_text="Receiving user; empty for the platform share",
    )
    amount_cents = models.PositiveBigIntegerField()
    percentage = models.DecimalField(max_digits=5, decimal_places=2)

    status = models.CharField(
        max_length=32,
        choices=DistributionStatus.choices,
        default=DistributionStatus.PENDING,
        db_index=True,
    )

    processor_transfer_id = models.CharField(max_length=255, blank=True)
    transferred_at = models.DateTimeField(null=True, blank=True)
    transfer_amount_cents = models.PositiveBigIntegerField(null=True, blank=True)
    transfer_currency = models.CharField(max_length=3, blank=True)
    transfer_error = models.TextField(blank=True)
    transfer_error_code = models.CharField(max_length=64, blank=True)
    transfer_attempted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the row was claimed for a transfer attempt",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Distribution Record"
        verbose_name_plural = "Distribution Records"
        constraints = [
            models.UniqueConstraint(
                fields=["payment_record", "recipient_type"],
                name="unique_distribution_per_recipient_type",
            ),
        ]
        indexes = [
            models.Index(
                fields=["status", "transfer_attempted_at"],
                name="payments_di_status_2f4d8a_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"DistributionRecord({self.recipient_type}, {self.amount_cents}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            DistributionStatus.TRANSFERRED,
            DistributionStatus.TRANSFER_FAILED,
            DistributionStatus.MANUAL_PROCESSING_REQUIRED,
        )
