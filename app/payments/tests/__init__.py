"""
Tests for payments app.

This package contains test modules for:
- test_fees.py: Fee split and cent conversion
- test_metadata.py: Typed Stripe metadata
- test_models.py: PaymentRecord, ConnectedAccount, WebhookEvent model tests
- test_views.py: API endpoint tests
- test_integration.py: Checkout from intent creation to settlement

Service, ledger, webhook and adapter tests live beside their packages.

Usage:
    pytest payments/tests/
    pytest payments/tests/test_views.py
"""
