"""
ConnectedAccount model for Stripe Connect integration.

A recipient's (owner or management company) Stripe Express account.
The settlement flow reads it to decide whether a distribution can be
transferred automatically; it is written only by the onboarding
service and the ``account.updated`` webhook.

Usage:
    from payments.models import ConnectedAccount

    account = ConnectedAccount.objects.filter(profile__user=owner).first()
    if account and account.is_ready_for_transfers:
        ...
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import BankVerificationStatus, OnboardingStatus


class ConnectedAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    Represents a Stripe Connected Account for receiving transfers.

    Fields:
        profile: OneToOne link to the user's Profile
        stripe_account_id: Unique Stripe Account ID (acct_xxx)
        onboarding_status: Current state of Stripe Connect onboarding
        charges_enabled: Whether Stripe has enabled charges
        payouts_enabled: Whether Stripe has enabled payouts
        details_submitted: Whether the owner finished the hosted onboarding form
        can_receive_transfers: Whether the ``transfers`` capability is active
        bank_verification_status: Status of the external bank account

    Note:
        Flags here are a cached view of Stripe. Before each transfer the
        settlement flow re-checks charges/payouts on the live account.
    """

    profile = models.OneToOneField(
        "authentication.Profile",
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="Profile this connected account belongs to",
    )
    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Account ID (acct_xxx)",
    )
    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.NOT_STARTED,
        db_index=True,
        help_text="Current Stripe Connect onboarding status",
    )

    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)
    can_receive_transfers = models.BooleanField(
        default=False,
        help_text="True when the account's transfers capability is active",
    )
    bank_verification_status = models.CharField(
        max_length=20,
        choices=BankVerificationStatus.choices,
        default=BankVerificationStatus.PENDING,
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, {self.onboarding_status})"

    @property
    def onboarding_complete(self) -> bool:
        return self.onboarding_status == OnboardingStatus.COMPLETE

    @property
    def is_ready_for_transfers(self) -> bool:
        """Onboarded and flagged as able to receive transfers."""
        return self.onboarding_complete and self.can_receive_transfers

    def apply_stripe_account(self, account) -> None:
        """
        Copy capability flags from a Stripe Account object.

        Onboarding is complete once details are submitted and both
        charges and payouts are enabled. Does not save.
        """
        self.charges_enabled = bool(account.get("charges_enabled"))
        self.payouts_enabled = bool(account.get("payouts_enabled"))
        self.details_submitted = bool(account.get("details_submitted"))
        capabilities = account.get("capabilities") or {}
        self.can_receive_transfers = capabilities.get("transfers") == "active"
        requirements = account.get("requirements") or {}
        disabled_reason = requirements.get("disabled_reason") or ""

        if self.details_submitted and self.charges_enabled and self.payouts_enabled:
            self.onboarding_status = OnboardingStatus.COMPLETE
            self.bank_verification_status = BankVerificationStatus.VERIFIED
        elif disabled_reason.startswith("rejected"):
            self.onboarding_status = OnboardingStatus.REJECTED
            self.bank_verification_status = BankVerificationStatus.FAILED
        else:
            self.onboarding_status = OnboardingStatus.IN_PROGRESS
            self.bank_verification_status = BankVerificationStatus.PENDING
