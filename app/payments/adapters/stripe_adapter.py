"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- Bounded timeout on every API call
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys for every write

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries done by the Stripe client (default: 2)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=110000,
            currency="usd",
            idempotency_key=IdempotencyKeyGenerator.generate("create_intent", application.id),
            metadata=settlement_metadata.to_stripe(),
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import requests
import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Callable


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit (e.g., cents)
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach to the PaymentIntent
        description: Shown in the dashboard and on receipts
        receipt_email: Where Stripe sends the receipt
        statement_descriptor_suffix: Appended to the card statement descriptor
        transfer_group: Groups the later transfers with this charge
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    description: str | None = None
    receipt_email: str | None = None
    statement_descriptor_suffix: str | None = None
    transfer_group: str | None = None

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        latest_charge: Charge ID once the payment went through
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    latest_charge: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass
class TransferResult:
    """
    Result from Stripe Transfer operations.

    Attributes:
        id: Transfer ID (tr_xxx)
        amount_cents: Amount transferred in cents
        currency: Currency code
        destination_account: Destination Stripe account ID
        transfer_group: Group correlating the transfer with its charge
    """

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    transfer_group: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class ConnectedAccountResult:
    """Live capability flags of a connected account."""

    id: str
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    capabilities: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def can_receive_transfers(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


@dataclass
class AccountLinkResult:
    url: str
    expires_at: int


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The same operation on the same entity yields the same key, so a
    retried call returns Stripe's original response instead of repeating
    the side effect.

    Example:
        key = IdempotencyKeyGenerator.generate("transfer", distribution.id)
        # "transfer:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are class methods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Usage:
        intent = StripeAdapter.retrieve_payment_intent("pi_123")
        account = StripeAdapter.retrieve_connected_account("acct_123")
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and network retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = settings.STRIPE_MAX_RETRIES
        stripe.default_http_client = stripe.RequestsClient(
            timeout=settings.STRIPE_API_TIMEOUT_SECONDS
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        level: int = logging.INFO,
    ) -> Any:
        """
        Run one Stripe call with timing, logging and error translation.

        Raises:
            StripeError: Translated from any Stripe SDK error
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)
        try:
            result = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        logger.log(
            level,
            "Stripe operation completed",
            extra={
                **log_context,
                "stripe_object_id": getattr(result, "id", None),
                "duration_ms": duration_ms,
            },
        )
        return result

    @staticmethod
    def _intent_result(intent) -> PaymentIntentResult:
        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            latest_charge=intent.get("latest_charge"),
            metadata=dict(intent.metadata or {}),
        )

    # =========================================================================
    # Payment Intents
    # =========================================================================

    @classmethod
    def create_payment_intent(cls, params: CreatePaymentIntentParams) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent with automatic payment methods.

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        create_params: dict[str, Any] = {
            "amount": params.amount_cents,
            "currency": params.currency,
            "metadata": params.metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        if params.description:
            create_params["description"] = params.description
        if params.receipt_email:
            create_params["receipt_email"] = params.receipt_email
        if params.statement_descriptor_suffix:
            create_params["statement_descriptor_suffix"] = params.statement_descriptor_suffix
        if params.transfer_group:
            create_params["transfer_group"] = params.transfer_group

        intent = cls._execute(
            {
                "operation": "create_payment_intent",
                "amount_cents": params.amount_cents,
                "currency": params.currency,
                "idempotency_key": params.idempotency_key,
            },
            lambda: stripe.PaymentIntent.create(
                idempotency_key=params.idempotency_key,
                **create_params,
            ),
        )
        return cls._intent_result(intent)

    @classmethod
    def cancel_payment_intent(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        cancellation_reason: str = "abandoned",
    ) -> PaymentIntentResult:
        """
        Cancel a PaymentIntent so it can no longer be charged.

        Raises:
            StripeInvalidRequestError: Intent already succeeded or canceled
        """
        intent = cls._execute(
            {
                "operation": "cancel_payment_intent",
                "payment_intent_id": payment_intent_id,
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.PaymentIntent.cancel(
                payment_intent_id,
                cancellation_reason=cancellation_reason,
                idempotency_key=idempotency_key,
            ),
        )
        return cls._intent_result(intent)

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id: str) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        intent = cls._execute(
            {"operation": "retrieve_payment_intent", "payment_intent_id": payment_intent_id},
            lambda: stripe.PaymentIntent.retrieve(payment_intent_id),
            level=logging.DEBUG,
        )
        return cls._intent_result(intent)

    # =========================================================================
    # Connect
    # =========================================================================

    @classmethod
    def retrieve_connected_account(cls, account_id: str) -> ConnectedAccountResult:
        """
        Fetch the live state of a connected account.

        Raises:
            StripeInvalidAccountError: Account does not exist or was revoked
        """
        account = cls._execute(
            {"operation": "retrieve_connected_account", "account_id": account_id},
            lambda: stripe.Account.retrieve(account_id),
            level=logging.DEBUG,
        )
        return ConnectedAccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            capabilities=dict(account.get("capabilities") or {}),
            raw_response=account.to_dict(),
        )

    @classmethod
    def create_connect_account(
        cls,
        email: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
        country: str = "US",
    ) -> ConnectedAccountResult:
        """Create an Express account with card_payments and transfers capabilities."""
        account = cls._execute(
            {
                "operation": "create_connect_account",
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.Account.create(
                type="express",
                country=country,
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
        )
        return ConnectedAccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            capabilities=dict(account.get("capabilities") or {}),
            raw_response=account.to_dict(),
        )

    @classmethod
    def create_account_link(cls, account_id: str) -> AccountLinkResult:
        """Create a one-time hosted onboarding link for a connected account."""
        link = cls._execute(
            {"operation": "create_account_link", "account_id": account_id},
            lambda: stripe.AccountLink.create(
                account=account_id,
                refresh_url=settings.STRIPE_CONNECT_REFRESH_URL,
                return_url=settings.STRIPE_CONNECT_RETURN_URL,
                type="account_onboarding",
            ),
        )
        return AccountLinkResult(url=link.url, expires_at=link.expires_at)

    @classmethod
    def create_transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        currency: str = "usd",
        transfer_group: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """
        Create a transfer to a connected Stripe account.

        Raises:
            StripeInvalidAccountError: Invalid destination account
            StripeTimeoutError: No response in time; the transfer may
                still have been created, retry with the same key
        """
        transfer_params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination_account,
            "metadata": metadata or {},
        }
        if transfer_group:
            transfer_params["transfer_group"] = transfer_group

        transfer = cls._execute(
            {
                "operation": "create_transfer",
                "amount_cents": amount_cents,
                "destination_account": destination_account,
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.Transfer.create(idempotency_key=idempotency_key, **transfer_params),
        )
        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            transfer_group=transfer.get("transfer_group"),
            metadata=dict(transfer.metadata or {}),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(cls, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Raises:
            StripeInvalidRequestError: Invalid signature or malformed payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            )
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @staticmethod
    def _is_timeout(error: Exception) -> bool:
        cause = error.__cause__ or error.__context__
        if isinstance(cause, requests.exceptions.Timeout):
            return True
        return "timed out" in str(error).lower()

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            )

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if error.param == "destination" or "account" in str(error).lower():
                raise StripeInvalidAccountError(str(error), stripe_code=error.code)
            raise StripeInvalidRequestError(str(error), stripe_code=error.code)

        elif isinstance(error, stripe.PermissionError):
            logger.error("Stripe refused access to account", extra=log_context)
            raise StripeInvalidAccountError(str(error), stripe_code="account_invalid")

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            )

        elif isinstance(error, stripe.APIConnectionError):
            if cls._is_timeout(error):
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe did not respond in time. The operation may have succeeded.",
                    stripe_code="timeout",
                )
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            )

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            )

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical("Stripe authentication failed - check API key", extra=log_context)
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            )

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            )
