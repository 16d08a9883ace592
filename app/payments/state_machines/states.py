"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

PaymentRecord States:
    pending → completed (processor reported success)
    pending → failed (processor reported failure)
    completed and failed are terminal

DistributionRecord States:
    pending → processing (claimed for a transfer attempt)
    processing → transferred | transfer_failed | manual_processing_required
    transferred, transfer_failed and manual_processing_required are terminal

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed (can retry)
"""

from django.db import models


class PaymentRecordStatus(models.TextChoices):
    """
    States for the PaymentRecord lifecycle.

    Terminal states: COMPLETED, FAILED

    State Flow:
        PENDING → COMPLETED (confirm call or payment_intent.succeeded)
        PENDING → FAILED (payment_intent.payment_failed)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PaymentType(models.TextChoices):
    """Billable line items within an application's payment."""

    FIRST_MONTH_RENT = "first_month_rent", "First Month Rent"
    SECURITY_DEPOSIT = "security_deposit", "Security Deposit"
    ADMIN_FEE = "admin_fee", "Administrative Fee"


class RecipientType(models.TextChoices):
    """
    Recipient of one share of a payment.

    Values:
        PLATFORM: The marketplace itself (never transferred, stays on platform)
        MANAGEMENT: Management company of the property
        OWNER: Property owner
    """

    PLATFORM = "platform", "Platform"
    MANAGEMENT = "management", "Management Company"
    OWNER = "owner", "Owner"


class DistributionStatus(models.TextChoices):
    """
    States for the DistributionRecord lifecycle.

    Terminal states: TRANSFERRED, TRANSFER_FAILED, MANUAL_PROCESSING_REQUIRED
    No automated transition leaves a terminal state.

    State Flow:
        PENDING → PROCESSING → TRANSFERRED
        PENDING → PROCESSING → TRANSFER_FAILED (processor error, timeout,
                                                 account not enabled)
        PENDING → PROCESSING → MANUAL_PROCESSING_REQUIRED (recipient cannot
                                                            receive transfers)

    PROCESSING is held only while a transfer request is in flight. Only a
    PENDING row can be claimed, which is what makes a second settlement of
    the same payment skip the transfer.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    TRANSFERRED = "transferred", "Transferred"
    TRANSFER_FAILED = "transfer_failed", "Transfer Failed"
    MANUAL_PROCESSING_REQUIRED = (
        "manual_processing_required",
        "Manual Processing Required",
    )


class OnboardingStatus(models.TextChoices):
    """
    Stripe Connect onboarding status for ConnectedAccount.

    Reflects the state of the recipient's Stripe Connect onboarding.
    Only COMPLETE status allows receiving transfers.
    """

    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETE = "complete", "Complete"
    REJECTED = "rejected", "Rejected"


class BankVerificationStatus(models.TextChoices):
    """Verification state of the bank account behind a connected account."""

    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    FAILED = "failed", "Failed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
