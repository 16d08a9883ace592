"""
Payment domain models.

This module contains all payment-related models:
- PaymentRecord: One billable line item paid through a Stripe PaymentIntent
- DistributionRecord: One recipient's share of a payment record (ledger)
- ConnectedAccount: Stripe Connect accounts for owners and managers
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.ledger.models import DistributionRecord
from payments.models.connected_account import ConnectedAccount
from payments.models.payment_record import PaymentRecord
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "ConnectedAccount",
    "DistributionRecord",
    "PaymentRecord",
    "WebhookEvent",
]
