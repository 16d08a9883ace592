"""
Payment services for coordinating payment operations.

This module provides:
- PaymentIntentOrchestrator: Creates intents, payment records and ledger rows
- SettlementReconciler: Applies payment success/failure idempotently
- ConnectOnboardingService: Stripe Connect accounts for payout recipients

Usage:
    from payments.services import SettlementReconciler

    outcome = SettlementReconciler().settle_success("pi_123", source="webhook")
    if outcome.warnings:
        ...
"""

from payments.services.onboarding_service import ConnectOnboardingService, OnboardingLink
from payments.services.payment_orchestrator import (
    CreateIntentParams,
    IntentCreationResult,
    LineItem,
    PaymentDetails,
    PaymentIntentOrchestrator,
)
from payments.services.settlement_service import (
    FailureOutcome,
    SettlementOutcome,
    SettlementReconciler,
    TransferAttempt,
)

__all__ = [
    "ConnectOnboardingService",
    "CreateIntentParams",
    "FailureOutcome",
    "IntentCreationResult",
    "LineItem",
    "OnboardingLink",
    "PaymentDetails",
    "PaymentIntentOrchestrator",
    "SettlementOutcome",
    "SettlementReconciler",
    "TransferAttempt",
]
