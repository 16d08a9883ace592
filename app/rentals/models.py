"""
Rental domain models.

Models:
    Property: A listing owned by an owner, optionally managed by a company
    RentalApplication: A tenant's request to rent a property
    RentalAgreement: The lease created once an application's payment settles
    EmailVerification: Short-lived code proving the payer's email

State fields use django-fsm with protected=True. Settlement-driven changes
are conditional queryset updates in RentalStateService; owner-driven ones
(ending an agreement, reopening its property) go through @transition
methods. Protected fields cannot be reloaded with refresh_from_db(); fetch
a fresh instance with ``objects.get`` instead.

Usage:
    from rentals.models import RentalAgreement
    from rentals.states import AgreementStatus

    agreement.end()
    agreement.save()
    assert agreement.status == AgreementStatus.ENDED
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from rentals.states import (
    AgreementStatus,
    ApplicationPaymentStatus,
    ApplicationStatus,
    PropertyStatus,
)

PERCENT_VALIDATORS = [
    MinValueValidator(Decimal("0.00")),
    MaxValueValidator(Decimal("100.00")),
]


class Property(UUIDPrimaryKeyMixin, BaseModel):
    """
    A rentable property listing.

    Fields:
        owner: User receiving the owner share of every payment
        management_company: Optional user receiving the management fee
        title: Listing title (used in the payment description)
        location: Free-form address or area
        price_cents: Monthly rent in cents
        security_deposit_cents: Deposit in cents (None means one month's rent)
        platform_fee_percentage: Platform cut; None uses PLATFORM_FEE_PERCENT
        management_fee_percentage: Management cut; None uses MANAGEMENT_FEE_PERCENT
        status: Listing state (managed by FSM)
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="properties",
        help_text="Owner receiving rent payouts",
    )
    management_company = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="managed_properties",
        help_text="Management company receiving the management fee",
    )

    title = models.CharField(max_length=200)
    location = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)

    price_cents = models.PositiveBigIntegerField(
        help_text="Monthly rent in smallest currency unit (cents)",
    )
    security_deposit_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Security deposit in cents (defaults to one month's rent)",
    )

    platform_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=PERCENT_VALIDATORS,
        help_text="Platform fee percentage (blank uses the platform default)",
    )
    management_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=PERCENT_VALIDATORS,
        help_text="Management fee percentage (blank uses the platform default)",
    )

    status = FSMField(
        default=PropertyStatus.AVAILABLE,
        choices=PropertyStatus.choices,
        db_index=True,
        protected=True,
        help_text="Listing state (managed by FSM)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Property"
        verbose_name_plural = "Properties"
        indexes = [
            models.Index(fields=["owner", "status"], name="rentals_pro_owner_i_5b1f0e_idx"),
        ]

    def __str__(self) -> str:
        return f"Property({self.title}, {self.status})"

    @transition(
        field=status,
        source=PropertyStatus.RENTED,
        target=PropertyStatus.AVAILABLE,
    )
    def mark_available(self):
        """
        Put the property back on the market once its lease ended.

        Transition: RENTED -> AVAILABLE
        """

    @property
    def effective_security_deposit_cents(self) -> int:
        """Deposit in cents, falling back to one month's rent."""
        if self.security_deposit_cents is None:
            return self.price_cents
        return self.security_deposit_cents

    @property
    def effective_platform_fee_percentage(self) -> Decimal:
        if self.platform_fee_percentage is None:
            return Decimal(settings.PLATFORM_FEE_PERCENT)
        return self.platform_fee_percentage

    @property
    def effective_management_fee_percentage(self) -> Decimal:
        if self.management_fee_percentage is None:
            return Decimal(settings.MANAGEMENT_FEE_PERCENT)
        return self.management_fee_percentage

    @property
    def management_recipient(self):
        """User credited with the management share (owner when unmanaged)."""
        return self.management_company or self.owner


class RentalApplication(UUIDPrimaryKeyMixin, BaseModel):
    """
    A tenant's application to rent a property.

    Fields:
        tenant: Applicant
        rental_property: Property applied for
        message: Optional note from the tenant
        status: Application state (managed by FSM)
        payment_status: Payment progress (not_required, pending, completed)
    """

    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rental_applications",
    )
    rental_property = models.ForeignKey(
        Property,
        on_delete=models.PROTECT,
        related_name="applications",
    )
    message = models.TextField(blank=True)

    status = FSMField(
        default=ApplicationStatus.PENDING,
        choices=ApplicationStatus.choices,
        db_index=True,
        protected=True,
        help_text="Application state (managed by FSM)",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=ApplicationPaymentStatus.choices,
        default=ApplicationPaymentStatus.NOT_REQUIRED,
        help_text="Payment progress for this application",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Rental Application"
        verbose_name_plural = "Rental Applications"
        indexes = [
            models.Index(
                fields=["rental_property", "status"], name="rentals_ren_rental__8c2d41_idx"
            ),
            models.Index(fields=["tenant", "status"], name="rentals_ren_tenant__3e9a72_idx"),
        ]

    def __str__(self) -> str:
        return f"RentalApplication({self.id}, {self.status})"

    @property
    def is_payable(self) -> bool:
        """Whether a payment may be started or settled for this application."""
        return self.status in (
            ApplicationStatus.APPROVED,
            ApplicationStatus.PAYMENT_PENDING,
        )


class RentalAgreement(UUIDPrimaryKeyMixin, BaseModel):
    """
    Lease created when an application's payment settles.

    At most one agreement exists per application; the unique
    ``application`` column is what makes duplicate settlement harmless.
    Rent and deposit are copied from the property at settlement time.
    """

    application = models.OneToOneField(
        RentalApplication,
        on_delete=models.PROTECT,
        related_name="agreement",
    )
    rental_property = models.ForeignKey(
        Property,
        on_delete=models.PROTECT,
        related_name="agreements",
    )
    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="tenant_agreements",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owner_agreements",
    )

    lease_start_date = models.DateField()
    lease_end_date = models.DateField()
    monthly_rent_cents = models.PositiveBigIntegerField()
    security_deposit_cents = models.PositiveBigIntegerField()

    status = FSMField(
        default=AgreementStatus.ACTIVE,
        choices=AgreementStatus.choices,
        db_index=True,
        protected=True,
    )
    ended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Rental Agreement"
        verbose_name_plural = "Rental Agreements"

    def __str__(self) -> str:
        return f"RentalAgreement({self.id}, {self.status})"

    @transition(
        field=status,
        source=AgreementStatus.ACTIVE,
        target=AgreementStatus.ENDED,
    )
    def end(self):
        """Transition: ACTIVE -> ENDED"""
        self.ended_at = timezone.now()


class EmailVerification(UUIDPrimaryKeyMixin, BaseModel):
    """
    Six-digit code sent to the payer's email before a payment.

    A verification is usable as a payment reference when it belongs to
    the application, is verified, and has not expired.
    """

    application = models.ForeignKey(
        RentalApplication,
        on_delete=models.CASCADE,
        related_name="email_verifications",
    )
    email = models.EmailField()
    code = models.CharField(max_length=6)
    expires_at = models.DateTimeField()
    attempts = models.PositiveSmallIntegerField(default=0)
    verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Email Verification"
        verbose_name_plural = "Email Verifications"
        indexes = [
            models.Index(
                fields=["application", "verified"], name="rentals_ema_applica_d41c07_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"EmailVerification({self.email}, verified={self.verified})"

    @property
    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at
