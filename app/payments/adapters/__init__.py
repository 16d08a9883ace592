"""
Payment adapters for external services.

All external payment API calls should go through these adapters to ensure
consistent error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency="usd",
            idempotency_key="create_intent:application_123:1:ab12cd34",
        )
    )
"""

from payments.adapters.stripe_adapter import (
    AccountLinkResult,
    ConnectedAccountResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
    TransferResult,
)

__all__ = [
    "AccountLinkResult",
    "ConnectedAccountResult",
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "StripeAdapter",
    "TransferResult",
]
