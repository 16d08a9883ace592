"""
Payment intent orchestrator: the entry point for paying a rental application.

The orchestrator:
- Checks the application is payable and the payer's email verification
- Splits the amount between platform, management and owner
- Creates the Stripe PaymentIntent with typed settlement metadata
- Persists one PaymentRecord per line item, then the distribution rows
- Moves the application to payment_pending

Usage:
    from payments.services import PaymentIntentOrchestrator, CreateIntentParams, LineItem

    result = PaymentIntentOrchestrator().create_intent(
        CreateIntentParams(
            application_id=application.id,
            amount_cents=210000,
            line_items=[
                LineItem(PaymentType.FIRST_MONTH_RENT, 100000),
                LineItem(PaymentType.SECURITY_DEPOSIT, 100000),
                LineItem(PaymentType.ADMIN_FEE, 10000),
            ],
            user=request.user,
        )
    )
    result.client_secret
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from core.exceptions import PermissionDeniedError, ValidationError
from core.services import BaseService

from payments.adapters import CreatePaymentIntentParams, IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    InvalidAmountError,
    InvalidApplicationStateError,
    PersistenceError,
    StripeError,
    VerificationRequiredError,
)
from payments.fees import FeeSplit, compute_split
from payments.ledger import LedgerError, ledger
from payments.metadata import SettlementMetadata
from payments.models import PaymentRecord
from payments.state_machines import PaymentRecordStatus, PaymentType
from rentals.models import EmailVerification
from rentals.services import RentalStateService

if TYPE_CHECKING:
    from rentals.models import RentalApplication


# =============================================================================
# Parameter Types
# =============================================================================


@dataclass
class LineItem:
    """One billable part of the checkout (rent, deposit, admin fee)."""

    payment_type: str
    amount_cents: int


@dataclass
class CreateIntentParams:
    """
    Parameters for creating a payment intent.

    Attributes:
        application_id: Application being paid for
        amount_cents: Total charged, must equal the sum of the line items
        line_items: Billable parts, one PaymentRecord each
        user: Requesting user; when given, must be the application's tenant
        verification_id: Optional EmailVerification proving the payer's email
    """

    application_id: uuid.UUID
    amount_cents: int
    line_items: list[LineItem]
    user: object | None = None
    verification_id: uuid.UUID | None = None


@dataclass
class IntentCreationResult:
    """
    What the client needs to complete the payment.

    ``breakdown`` is the split of the whole amount; the stored per-record
    splits can differ from it by rounding cents.
    ``superseded_intent_ids`` lists earlier pending intents this call
    cancelled.
    """

    payment_intent_id: str
    client_secret: str | None
    breakdown: FeeSplit
    payment_records: list[PaymentRecord]
    email_verified: bool
    owner: object
    superseded_intent_ids: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class PaymentDetails:
    """Amounts due before an application can become a rental."""

    application: RentalApplication
    line_items: list[LineItem]

    @property
    def total_cents(self) -> int:
        return sum(item.amount_cents for item in self.line_items)


# =============================================================================
# Payment Intent Orchestrator
# =============================================================================


class PaymentIntentOrchestrator(BaseService):
    """
    Coordinates intent creation across Stripe, payment records and the ledger.

    The Stripe adapter is injected so tests can pass a mock class.

    Failure policy:
        - Validation failures raise before anything is written or sent
        - Stripe failures propagate; nothing local has been written yet
        - Record persistence failure cancels the intent, then raises
          PersistenceError
        - Distribution failure is logged and returned as a warning; the
          rows are backfilled at settlement
    """

    def __init__(self, stripe_adapter: type | None = None):
        self.stripe = stripe_adapter or StripeAdapter

    @staticmethod
    def payment_details(application_id: uuid.UUID, user=None) -> PaymentDetails:
        """
        Line items the tenant owes: first month, deposit and admin fee.

        The deposit defaults to one month's rent.

        Raises:
            NotFoundError: Application does not exist
            PermissionDeniedError: Requesting user is not the tenant
            ValidationError: Application is not approved/payment_pending
        """
        application = RentalStateService.get_application(application_id)
        if user is not None and application.tenant_id != user.pk:
            raise PermissionDeniedError(
                "Only the applicant can view payment details",
                error_code="NOT_APPLICANT",
            )
        if not application.is_payable:
            raise ValidationError(
                f"Application status is '{application.status}'. "
                "Only approved applications can proceed to payment.",
                error_code="APPLICATION_NOT_PAYABLE",
                details={"status": application.status},
            )

        rental_property = application.rental_property
        return PaymentDetails(
            application=application,
            line_items=[
                LineItem(PaymentType.FIRST_MONTH_RENT, rental_property.price_cents),
                LineItem(
                    PaymentType.SECURITY_DEPOSIT,
                    rental_property.effective_security_deposit_cents,
                ),
                LineItem(PaymentType.ADMIN_FEE, settings.APPLICATION_ADMIN_FEE_CENTS),
            ],
        )

    def create_intent(self, params: CreateIntentParams) -> IntentCreationResult:
        """
        Create a PaymentIntent and its pending payment records.

        Earlier intents of the same application that are still pending (a
        client retrying checkout) are cancelled and their records failed, so
        at most one intent per application can be paid.

        Raises:
            NotFoundError: Application does not exist
            PermissionDeniedError: Requesting user is not the tenant
            InvalidApplicationStateError: Application is not approved/payment_pending
            InvalidAmountError: Bad amount or line items that don't sum to it
            VerificationRequiredError: Verification reference is not usable
            StripeError: Stripe rejected the intent
            PersistenceError: Records could not be saved (intent cancelled)
        """
        logger = self.get_logger()
        application = RentalStateService.get_application(params.application_id)

        if params.user is not None and application.tenant_id != params.user.pk:
            raise PermissionDeniedError(
                "Only the applicant can pay for this application",
                error_code="NOT_APPLICANT",
                details={"application_id": str(application.id)},
            )
        if not application.is_payable:
            raise InvalidApplicationStateError(
                f"Application in '{application.status}' status cannot be paid",
                details={
                    "application_id": str(application.id),
                    "status": application.status,
                },
            )
        self._validate_line_items(params)
        verification = self.resolve_verification(application, params.verification_id)

        rental_property = application.rental_property
        owner = rental_property.owner
        platform_pct = rental_property.effective_platform_fee_percentage
        management_pct = rental_property.effective_management_fee_percentage

        breakdown = compute_split(params.amount_cents, platform_pct, management_pct)
        item_splits = [
            (item, compute_split(item.amount_cents, platform_pct, management_pct))
            for item in params.line_items
        ]

        metadata = SettlementMetadata(
            application_id=application.id,
            property_id=rental_property.id,
            tenant_id=application.tenant_id,
            owner_id=owner.id,
            platform_fee_cents=breakdown.platform_fee_cents,
            owner_net_cents=breakdown.owner_net_cents,
            email_verified=verification is not None,
        )
        record_ids = [uuid.uuid4() for _ in params.line_items]

        logger.info(
            "Creating payment intent",
            extra={
                "application_id": str(application.id),
                "amount_cents": params.amount_cents,
                "line_item_count": len(params.line_items),
            },
        )

        intent = self.stripe.create_payment_intent(
            CreatePaymentIntentParams(
                amount_cents=params.amount_cents,
                currency=settings.PAYMENT_CURRENCY,
                idempotency_key=IdempotencyKeyGenerator.generate("create_intent", record_ids[0]),
                metadata=metadata.to_stripe(),
                description=(
                    f"Rental Payment - {rental_property.title} "
                    f"(Owner: {owner.get_full_name()})"
                ),
                receipt_email=verification.email if verification else application.tenant.email,
                statement_descriptor_suffix=settings.STATEMENT_DESCRIPTOR_SUFFIX,
                transfer_group=f"application-{application.id}",
            )
        )

        try:
            with transaction.atomic():
                records = [
                    PaymentRecord.objects.create(
                        id=record_id,
                        application=application,
                        payment_type=item.payment_type,
                        processor_intent_id=intent.id,
                        gross_amount_cents=split.gross_cents,
                        platform_fee_cents=split.platform_fee_cents,
                        management_fee_cents=split.management_fee_cents,
                        owner_net_cents=split.owner_net_cents,
                        platform_fee_percentage=split.platform_fee_percent,
                        management_fee_percentage=split.management_fee_percent,
                        currency=settings.PAYMENT_CURRENCY,
                        due_date=timezone.localdate(),
                        email_verification=verification,
                        email_verified=verification is not None,
                        verified_email=verification.email if verification else "",
                    )
                    for record_id, (item, split) in zip(record_ids, item_splits)
                ]
        except DatabaseError as e:
            logger.error(
                "Failed to persist payment records, cancelling intent",
                extra={"application_id": str(application.id), "payment_intent_id": intent.id},
                exc_info=True,
            )
            cancelled = self._cancel_intent(intent.id)
            raise PersistenceError(
                "Failed to create payment records",
                details={"payment_intent_id": intent.id, "intent_cancelled": cancelled},
            ) from e

        warnings = []
        for record in records:
            try:
                ledger.create_distributions(record)
            except (DatabaseError, LedgerError) as e:
                message = f"Distributions for {record.payment_type} not created: {e}"
                logger.warning(
                    "Distribution creation failed; will be backfilled at settlement",
                    extra={
                        "payment_record_id": str(record.id),
                        "payment_intent_id": intent.id,
                    },
                    exc_info=True,
                )
                warnings.append(message)

        if not RentalStateService.start_payment(application.id):
            logger.warning(
                "Application left payable state during intent creation",
                extra={"application_id": str(application.id), "payment_intent_id": intent.id},
            )
            warnings.append("Application status changed while the intent was created")

        superseded = self._supersede_pending_intents(application.id, intent.id)

        logger.info(
            "Payment intent created",
            extra={
                "application_id": str(application.id),
                "payment_intent_id": intent.id,
                "payment_record_count": len(records),
            },
        )
        return IntentCreationResult(
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            breakdown=breakdown,
            payment_records=records,
            email_verified=verification is not None,
            owner=owner,
            superseded_intent_ids=superseded,
            warnings=warnings,
        )

    @staticmethod
    def _validate_line_items(params: CreateIntentParams) -> None:
        if not params.line_items:
            raise InvalidAmountError("At least one line item is required")
        if params.amount_cents <= 0:
            raise InvalidAmountError(
                "Amount must be positive",
                details={"amount_cents": params.amount_cents},
            )
        valid_types = set(PaymentType.values)
        for item in params.line_items:
            if item.payment_type not in valid_types:
                raise InvalidAmountError(
                    f"Unknown payment type '{item.payment_type}'",
                    error_code="INVALID_LINE_ITEM",
                )
            if item.amount_cents <= 0:
                raise InvalidAmountError(
                    "Line item amounts must be positive",
                    error_code="INVALID_LINE_ITEM",
                    details={"payment_type": item.payment_type},
                )
        total = sum(item.amount_cents for item in params.line_items)
        if total != params.amount_cents:
            raise InvalidAmountError(
                "Line items do not add up to the amount",
                error_code="LINE_ITEMS_MISMATCH",
                details={"amount_cents": params.amount_cents, "line_items_total": total},
            )

    @staticmethod
    def resolve_verification(
        application: RentalApplication,
        verification_id: uuid.UUID | None,
    ) -> EmailVerification | None:
        """
        Resolve an optional verification reference.

        A usable verification belongs to the application, is verified and
        was verified before it expired.

        Raises:
            VerificationRequiredError: Reference given but not usable
        """
        if verification_id is None:
            return None

        verification = EmailVerification.objects.filter(
            id=verification_id,
            application=application,
        ).first()
        if (
            verification is None
            or not verification.verified
            or verification.verified_at is None
            or verification.verified_at > verification.expires_at
        ):
            raise VerificationRequiredError(
                "Email verification required before payment",
                details={"verification_id": str(verification_id)},
            )
        return verification

    def _cancel_intent(self, payment_intent_id: str) -> bool:
        try:
            self.stripe.cancel_payment_intent(
                payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("cancel_intent", payment_intent_id),
            )
        except StripeError:
            self.get_logger().error(
                "Failed to cancel payment intent",
                extra={"payment_intent_id": payment_intent_id},
                exc_info=True,
            )
            return False
        return True


    def _supersede_pending_intents(
        self, application_id: uuid.UUID, current_intent_id: str
    ) -> list[str]:
        """
        Cancel the application's other pending intents and fail their records.

        An intent Stripe refuses to cancel (typically because it already
        succeeded) keeps its records pending for settlement to pick up.
        """
        stale_intent_ids = (
            PaymentRecord.objects.filter(
                application_id=application_id,
                status=PaymentRecordStatus.PENDING,
            )
            .exclude(processor_intent_id=current_intent_id)
            .values_list("processor_intent_id", flat=True)
            .distinct()
        )

        superseded = []
        for intent_id in sorted(set(stale_intent_ids)):
            if not self._cancel_intent(intent_id):
                continue
            failed = PaymentRecord.objects.filter(
                application_id=application_id,
                processor_intent_id=intent_id,
                status=PaymentRecordStatus.PENDING,
            ).update(status=PaymentRecordStatus.FAILED, updated_at=timezone.now())
            self.get_logger().info(
                "Superseded payment intent cancelled",
                extra={
                    "application_id": str(application_id),
                    "payment_intent_id": intent_id,
                    "replaced_by": current_intent_id,
                    "records_failed": failed,
                },
            )
            superseded.append(intent_id)
        return superseded
