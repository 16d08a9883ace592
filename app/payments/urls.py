"""
URL configuration for the payments app.

Routes:
    - POST /create-intent/ - Create a payment intent
    - POST /confirm/ - Confirm and settle a payment
    - GET /details/<application_id>/ - Amounts due for an application
    - POST /webhooks/stripe/ - Stripe webhook endpoint
    - POST /connect/account/ - Start Connect onboarding
    - GET /connect/account-status/ - Connected account status

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import (
    AccountStatusView,
    ConfirmPaymentView,
    ConnectAccountView,
    CreateIntentView,
    PaymentDetailsView,
)
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    path("create-intent/", CreateIntentView.as_view(), name="create_intent"),
    path("confirm/", ConfirmPaymentView.as_view(), name="confirm"),
    path("details/<uuid:application_id>/", PaymentDetailsView.as_view(), name="details"),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    # Stripe Connect
    path("connect/account/", ConnectAccountView.as_view(), name="connect_account"),
    path("connect/account-status/", AccountStatusView.as_view(), name="account_status"),
]
