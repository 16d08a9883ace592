"""
Payments app configuration.

This app provides the rental payment flow:
- Fee split calculation
- Distribution ledger (who is owed what from each payment)
- Stripe PaymentIntent creation and settlement
- Stripe Connect onboarding and transfers
- Webhook handling
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
