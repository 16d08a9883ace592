"""
Pytest fixtures for webhook tests.

Provides WebhookEvent objects in each processing state and a patch that
routes handlers through the mocked Stripe adapter from payments/conftest.py.
"""

from unittest.mock import patch

import pytest

from payments.services import SettlementReconciler
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(db):
    """payment_intent.succeeded event in PENDING status."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_pending_123",
        data_object={"id": "pi_test_webhook_123", "object": "payment_intent"},
    )


@pytest.fixture
def processing_webhook_event(db):
    """Event a worker picked up but has not finished."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_processing_456",
        status=WebhookEventStatus.PROCESSING,
        retry_count=1,
    )


@pytest.fixture
def processed_webhook_event(db):
    """Event that was already applied."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_processed_789",
        status=WebhookEventStatus.PROCESSED,
        retry_count=1,
    )


@pytest.fixture
def failed_webhook_event(db):
    """Event that failed once with a retryable error."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_failed_000",
        status=WebhookEventStatus.FAILED,
        retry_count=1,
        error_message="StripeAPIUnavailableError: down",
    )


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def handler_stripe(mock_stripe):
    """Make handlers build their SettlementReconciler on the mocked adapter."""
    with patch(
        "payments.webhooks.handlers.SettlementReconciler",
        side_effect=lambda: SettlementReconciler(stripe_adapter=mock_stripe),
    ):
        yield mock_stripe
