"""
Webhook event handlers for Stripe events.

This module provides a handler registry and implementations for
processing different Stripe webhook events.

Handlers return a ServiceResult:
- success: the event was applied (or was a harmless no-op)
- failure: a business-logic problem; the event is marked failed and
  is not retried
Retryable Stripe errors are raised so the Celery task can retry.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.exceptions import BaseApplicationError
from core.services import ServiceResult

from payments.exceptions import StripeError
from payments.metadata import SettlementMetadata
from payments.models import WebhookEvent
from payments.services import ConnectOnboardingService, SettlementReconciler

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are acknowledged with a successful result.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


def _event_object(webhook_event: WebhookEvent) -> dict:
    return (webhook_event.payload or {}).get("data", {}).get("object", {}) or {}


def _business_failure(webhook_event: WebhookEvent, exc: BaseApplicationError) -> ServiceResult:
    """Turn a non-retryable application error into a failed result."""
    if isinstance(exc, StripeError) and exc.is_retryable:
        raise exc
    logger.warning(
        f"{webhook_event.event_type} not applied: {exc.message}",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "error_code": exc.error_code,
        },
    )
    return ServiceResult.from_exception(exc)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Settle a successful payment.

    The same settlement may already have run through the confirm endpoint;
    the reconciler makes the second run a no-op for records, transfers
    and the agreement.
    """
    intent = _event_object(webhook_event)
    payment_intent_id = intent.get("id")

    if not payment_intent_id:
        logger.error(
            "payment_intent.succeeded: Could not extract payment_intent_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    logger.info(
        "Processing payment_intent.succeeded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent_id,
        },
    )

    try:
        outcome = SettlementReconciler().settle_success(
            payment_intent_id,
            application_id=SettlementMetadata.application_id_from(intent.get("metadata")),
            transaction_id=intent.get("latest_charge"),
            source="webhook",
        )
    except BaseApplicationError as e:
        return _business_failure(webhook_event, e)

    return ServiceResult.success(outcome)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Record a failed payment and let the tenant retry."""
    intent = _event_object(webhook_event)
    payment_intent_id = intent.get("id")

    if not payment_intent_id:
        logger.error(
            "payment_intent.payment_failed: Could not extract payment_intent_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    last_error = intent.get("last_payment_error") or {}
    logger.info(
        "Processing payment_intent.payment_failed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent_id,
            "failure_code": last_error.get("code"),
        },
    )

    try:
        outcome = SettlementReconciler().settle_failure(
            payment_intent_id,
            application_id=SettlementMetadata.application_id_from(intent.get("metadata")),
        )
    except BaseApplicationError as e:
        return _business_failure(webhook_event, e)

    return ServiceResult.success(outcome)


# =============================================================================
# Connect Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Refresh the local ConnectedAccount flags after a Connect account change."""
    account = _event_object(webhook_event)

    if not account.get("id"):
        logger.error(
            "account.updated: Could not extract account_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract account_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    return ServiceResult.success(ConnectOnboardingService.sync_account(account))
