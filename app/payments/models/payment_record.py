"""
PaymentRecord model: one row per billable line item of an application's payment.

All line items of one checkout share the same Stripe PaymentIntent, so
settlement looks records up by ``processor_intent_id`` and moves them
together.

Usage:
    from payments.models import PaymentRecord

    records = PaymentRecord.objects.filter(processor_intent_id="pi_123")
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django_fsm import FSMField

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentRecordStatus, PaymentType


class PaymentRecord(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single line item (rent, deposit, admin fee) paid through one intent.

    State Flow:
        PENDING -> COMPLETED (payment succeeded)
        PENDING -> FAILED (payment failed)

    COMPLETED and FAILED are terminal. Settlement moves rows with a
    conditional update (``status=pending``) so a confirm call racing a
    webhook completes each row exactly once.

    Invariant:
        gross_amount_cents == platform_fee_cents + management_fee_cents
        + owner_net_cents (enforced by a check constraint)
    """

    application = models.ForeignKey(
        "rentals.RentalApplication",
        on_delete=models.PROTECT,
        related_name="payment_records",
    )
    payment_type = models.CharField(
        max_length=32,
        choices=PaymentType.choices,
    )
    processor_intent_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx) shared by the checkout's line items",
    )
    status = FSMField(
        default=PaymentRecordStatus.PENDING,
        choices=PaymentRecordStatus.choices,
        db_index=True,
        protected=True,
        help_text="Payment state (managed by FSM)",
    )

    gross_amount_cents = models.PositiveBigIntegerField()
    platform_fee_cents = models.PositiveBigIntegerField(default=0)
    management_fee_cents = models.PositiveBigIntegerField(default=0)
    owner_net_cents = models.PositiveBigIntegerField(default=0)
    platform_fee_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    management_fee_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    currency = models.CharField(max_length=3, default="usd")

    due_date = models.DateField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    transaction_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Processor transaction reference (latest charge or intent id)",
    )

    email_verification = models.ForeignKey(
        "rentals.EmailVerification",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_records",
    )
    email_verified = models.BooleanField(default=False)
    verified_email = models.EmailField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Record"
        verbose_name_plural = "Payment Records"
        indexes = [
            models.Index(fields=["application", "status"], name="payments_pa_applica_0e6b52_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(
                    gross_amount_cents=F("platform_fee_cents")
                    + F("management_fee_cents")
                    + F("owner_net_cents")
                ),
                name="payment_record_parts_sum_to_gross",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentRecord({self.payment_type}, {self.gross_amount_cents}, {self.status})"

    def save(self, *args, **kwargs):
        if not self.currency:
            self.currency = settings.PAYMENT_CURRENCY
        super().save(*args, **kwargs)

