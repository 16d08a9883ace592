"""
Tests for webhook views.

Tests cover:
- Stripe signature verification
- Webhook event creation and idempotency
- Task queuing
- HTTP method restrictions
"""

import json
from unittest.mock import patch

import pytest
from django.test import RequestFactory
from django.urls import reverse

from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.views import stripe_webhook


# =============================================================================
# Setup
# =============================================================================


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


def make_webhook_request(rf, payload: dict, signature: str = "test_sig"):
    """Create a POST request to the webhook endpoint."""
    return rf.post(
        "/api/v1/payments/webhooks/stripe/",
        data=json.dumps(payload),
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=signature,
    )


def post_verified(rf, payload: dict):
    """POST a payload whose signature verifies, with task queuing mocked."""
    with patch(
        "payments.webhooks.views.StripeAdapter.verify_webhook_signature",
        return_value=payload,
    ), patch("payments.tasks.process_webhook_event.delay") as mock_task:
        response = stripe_webhook(make_webhook_request(rf, payload))
    return response, mock_task


# =============================================================================
# Signature Verification Tests
# =============================================================================


class TestStripeWebhookSignature:
    """Tests for signature verification."""

    def test_missing_signature_returns_400(self, rf, db):
        """Should return 400 if Stripe-Signature header is missing."""
        request = rf.post(
            "/api/v1/payments/webhooks/stripe/",
            data=json.dumps({"id": "evt_test"}),
            content_type="application/json",
        )

        response = stripe_webhook(request)

        assert response.status_code == 400
        assert b"Missing signature" in response.content
        assert not WebhookEvent.objects.exists()

    def test_invalid_signature_returns_400(self, rf, db):
        """Should return 400 if signature verification fails."""
        with patch(
            "payments.webhooks.views.StripeAdapter.verify_webhook_signature"
        ) as mock_verify:
            mock_verify.side_effect = StripeInvalidRequestError("Invalid webhook signature")

            request = make_webhook_request(
                rf,
                {"id": "evt_test", "type": "payment_intent.succeeded"},
                signature="invalid_sig",
            )
            response = stripe_webhook(request)

        assert response.status_code == 400
        assert b"Invalid signature" in response.content
        assert not WebhookEvent.objects.exists()

    def test_raw_body_is_verified(self, rf, db):
        """The exact request bytes and header go to verification."""
        payload = {"id": "evt_raw", "type": "customer.created", "data": {"object": {}}}

        with patch(
            "payments.webhooks.views.StripeAdapter.verify_webhook_signature",
            return_value=payload,
        ) as mock_verify, patch("payments.tasks.process_webhook_event.delay"):
            request = make_webhook_request(rf, payload, signature="t=1,v1=abc")
            stripe_webhook(request)

        mock_verify.assert_called_once_with(request.body, "t=1,v1=abc")


# =============================================================================
# Event Creation Tests
# =============================================================================


class TestStripeWebhookEventCreation:
    """Tests for webhook event creation."""

    def test_creates_new_webhook_event(self, rf, db):
        """Should create new WebhookEvent for new event."""
        payload = {
            "id": "evt_new_event_123",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123"}},
        }

        response, _ = post_verified(rf, payload)

        assert response.status_code == 200
        assert json.loads(response.content) == {"received": True}
        event = WebhookEvent.objects.get(stripe_event_id="evt_new_event_123")
        assert event.event_type == "payment_intent.succeeded"
        assert event.status == WebhookEventStatus.PENDING
        assert event.payload == payload

    def test_idempotent_for_processed_events(self, rf, processed_webhook_event):
        """Should return 200 without reprocessing for already processed events."""
        response, mock_task = post_verified(rf, processed_webhook_event.payload)

        assert response.status_code == 200
        assert json.loads(response.content) == {"received": True}
        mock_task.assert_not_called()
        assert WebhookEvent.objects.count() == 1

    def test_requeues_unfinished_duplicate(self, rf, failed_webhook_event):
        """A redelivered event that has not been processed yet is queued again."""
        response, mock_task = post_verified(rf, failed_webhook_event.payload)

        assert response.status_code == 200
        mock_task.assert_called_once_with(str(failed_webhook_event.id))
        assert WebhookEvent.objects.count() == 1

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_123"}}},
            {"id": "evt_no_type_123", "data": {"object": {"id": "pi_123"}}},
        ],
        ids=["missing_id", "missing_type"],
    )
    def test_invalid_event_returns_400(self, rf, db, payload):
        """Should return 400 if payload is missing the event id or type."""
        response, mock_task = post_verified(rf, payload)

        assert response.status_code == 400
        assert b"Invalid event" in response.content
        mock_task.assert_not_called()


# =============================================================================
# Task Queuing Tests
# =============================================================================


class TestStripeWebhookTaskQueuing:
    """Tests for async task queuing."""

    def test_queues_task_for_new_event(self, rf, db):
        """Should queue Celery task for new event."""
        payload = {
            "id": "evt_queue_test_123",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123"}},
        }

        response, mock_task = post_verified(rf, payload)

        assert response.status_code == 200
        event = WebhookEvent.objects.get(stripe_event_id="evt_queue_test_123")
        mock_task.assert_called_once_with(str(event.id))

    def test_task_queuing_failure_returns_200(self, rf, db):
        """Should return 200 even if task queuing fails; the retry sweep picks it up."""
        payload = {
            "id": "evt_queue_fail_123",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123"}},
        }

        with patch(
            "payments.webhooks.views.StripeAdapter.verify_webhook_signature",
            return_value=payload,
        ), patch("payments.tasks.process_webhook_event.delay") as mock_task:
            mock_task.side_effect = Exception("Celery connection error")
            response = stripe_webhook(make_webhook_request(rf, payload))

        assert response.status_code == 200
        event = WebhookEvent.objects.get(stripe_event_id="evt_queue_fail_123")
        assert event.status == WebhookEventStatus.PENDING


# =============================================================================
# Routing and HTTP Method Tests
# =============================================================================


class TestStripeWebhookHttpMethods:
    """Tests for routing and HTTP method restrictions."""

    def test_url_resolves(self):
        assert reverse("payments:stripe_webhook") == "/api/v1/payments/webhooks/stripe/"

    def test_csrf_exempt_through_client(self, client, db):
        """Stripe posts without a CSRF token."""
        payload = {"id": "evt_client_1", "type": "customer.created", "data": {"object": {}}}

        with patch(
            "payments.webhooks.views.StripeAdapter.verify_webhook_signature",
            return_value=payload,
        ), patch("payments.tasks.process_webhook_event.delay"):
            client.handler.enforce_csrf_checks = True
            response = client.post(
                reverse("payments:stripe_webhook"),
                data=json.dumps(payload),
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=abc",
            )

        assert response.status_code == 200

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_only_post_allowed(self, rf, db, method):
        request = getattr(rf, method)("/api/v1/payments/webhooks/stripe/")

        response = stripe_webhook(request)

        assert response.status_code == 405
