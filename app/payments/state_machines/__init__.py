"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    BankVerificationStatus,
    DistributionStatus,
    OnboardingStatus,
    PaymentRecordStatus,
    PaymentType,
    RecipientType,
    WebhookEventStatus,
)

__all__ = [
    "BankVerificationStatus",
    "DistributionStatus",
    "OnboardingStatus",
    "PaymentRecordStatus",
    "PaymentType",
    "RecipientType",
    "WebhookEventStatus",
]
