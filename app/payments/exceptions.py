"""
Payment-specific exceptions for intent creation and settlement.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment record lookup failures (404)
    ├── InvalidAmountError - Bad amounts or fee percentages (400)
    ├── VerificationRequiredError - Missing or invalid email verification (400)
    ├── InvalidApplicationStateError - Application cannot be paid (400)
    ├── PersistenceError - Local writes failed after the processor call (500)
    └── PaymentProcessingError - Payment processing failures (502)
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidAccountError - Invalid Stripe account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)
    InvalidStateTransitionError - Status change not allowed (inherits ConflictError)

Usage:
    from payments.exceptions import InvalidApplicationStateError

    if not application.is_payable:
        raise InvalidApplicationStateError(
            "Application is not approved for payment",
            details={"status": application.status},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            PaymentIntentOrchestrator.create_intent(params)
        except PaymentError as e:
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "PAYMENT_ERROR"
    http_status: int = 400


class PaymentNotFoundError(PaymentError):
    """
    Raised when no payment record matches a processor intent id.

    Settlement for an intent we never persisted cannot proceed; webhook
    processing records the event as failed instead of retrying forever.
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class InvalidAmountError(PaymentError):
    """
    Raised for a negative or non-integer amount, a fee percentage outside
    0..100, or line items that do not add up to the requested total.
    """

    default_error_code: str = "INVALID_AMOUNT"
    http_status: int = 400


class VerificationRequiredError(PaymentError):
    """Raised when an email verification is required but missing, unverified or expired."""

    default_error_code: str = "EMAIL_VERIFICATION_REQUIRED"
    http_status: int = 400


class InvalidApplicationStateError(PaymentError):
    """
    Raised when the application is not in a payable state.

    Payable means APPROVED or PAYMENT_PENDING.
    """

    default_error_code: str = "INVALID_APPLICATION_STATE"
    http_status: int = 400


class PersistenceError(PaymentError):
    """
    Raised when payment records could not be written after the processor
    intent was created.

    The orchestrator cancels the intent before raising so no charge can
    be taken against an intent we have no record of.
    """

    default_error_code: str = "PAYMENT_PERSISTENCE_FAILED"
    http_status: int = 500


class PaymentProcessingError(PaymentError):
    """
    Raised when the payment processor rejects or fails a call.

    Example:
        except stripe.error.CardError as e:
            raise PaymentProcessingError(
                "Card was declined",
                error_code="CARD_DECLINED",
                details={"decline_code": e.code},
            )
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    http_status: int = 502


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the operation can be retried

    Celery tasks re-raise retryable errors so autoretry picks them up;
    permanent errors are recorded and not retried.
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank. The decline_code holds the reason."""

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False
    http_status: int = 402


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect account.

    Raised when the destination account for a transfer is missing,
    restricted, or not onboarded. Needs manual follow-up.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Usually a bug on our side rather than a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True
    http_status: int = 503


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable (network errors, 5xx responses).
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True
    http_status: int = 503


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    IMPORTANT: The operation may have succeeded on Stripe's side.
    Retrying with the same idempotency key returns the original result.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True
    http_status: int = 504


# =============================================================================
# State Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a status change is not allowed from the current state.

    Example:
        raise InvalidStateTransitionError(
            "Cannot claim distribution from 'transferred' state",
            details={"current_state": "transferred", "target_state": "processing"},
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"
