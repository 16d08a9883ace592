"""
Settlement reconciler: applies a payment's outcome everywhere it matters.

Two independent triggers settle the same payment and may arrive in any
order, more than once, or at the same time:
    - the client's confirm call right after Stripe reports success
    - the ``payment_intent.succeeded`` / ``payment_intent.payment_failed`` webhook

No lock is taken. Every write is a conditional update on the expected
current status, and each step reports whether it changed anything, so
running the success path twice yields one agreement, one property
transition and at most one transfer per distribution row.

Success steps, in order (each after the first is fault-isolated):
    1. Payment records pending -> completed (the only step that aborts)
    2. Load application, property and owner
    3. Backfill distribution rows if intent creation could not write them
    4. Transfer each non-platform share to its recipient's connected account
    5. Application -> completed
    6. Property -> rented
    7. Reject competing applications for the property
    8. Create the rental agreement

Usage:
    from payments.services import SettlementReconciler

    outcome = SettlementReconciler().settle_success("pi_123", source="webhook")
    outcome.warnings  # non-fatal problems, also logged
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.db import transaction
from django.utils import timezone

from core.exceptions import BaseApplicationError, ConflictError, PermissionDeniedError
from core.services import BaseService

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    StripeError,
    StripeTimeoutError,
)
from payments.ledger import DistributionRecord, ledger
from payments.metadata import SettlementMetadata, TransferMetadata
from payments.models import ConnectedAccount, PaymentRecord
from payments.state_machines import DistributionStatus, PaymentRecordStatus, RecipientType
from rentals.services import RentalStateService

if TYPE_CHECKING:
    from collections.abc import Callable

    from rentals.models import RentalApplication


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class TransferAttempt:
    """What happened to one distribution row during settlement."""

    distribution_id: uuid.UUID
    recipient_type: str
    amount_cents: int
    status: str
    transfer_id: str | None = None
    currency: str | None = None
    error: str | None = None
    error_code: str | None = None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "distribution_id": str(self.distribution_id),
            "recipient_type": self.recipient_type,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "transfer_id": self.transfer_id,
            "currency": self.currency,
            "error": self.error,
            "error_code": self.error_code,
        }


@dataclass
class SettlementOutcome:
    """
    Result of the success path.

    ``warnings`` collects every non-fatal step failure; the payment itself
    is recorded whenever an outcome is returned.
    """

    payment_intent_id: str
    source: str
    application_id: uuid.UUID | None = None
    property_id: uuid.UUID | None = None
    records_completed: int = 0
    transfers: list[TransferAttempt] = field(default_factory=list)
    application_completed: bool = False
    property_rented: bool = False
    competing_rejected: int = 0
    agreement_id: uuid.UUID | None = None
    agreement_created: bool = False
    banking_status: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def already_settled(self) -> bool:
        """True when another trigger had already completed the records."""
        return self.records_completed == 0

    @property
    def transfer_result(self) -> list[dict[str, Any]]:
        return [
            attempt.to_dict()
            for attempt in self.transfers
            if attempt.status == DistributionStatus.TRANSFERRED and not attempt.skipped
        ]

    @property
    def transfer_error(self) -> str | None:
        errors = [
            attempt.error
            for attempt in self.transfers
            if attempt.error
            and attempt.status
            in (DistributionStatus.TRANSFER_FAILED, DistributionStatus.MANUAL_PROCESSING_REQUIRED)
        ]
        return "; ".join(errors) if errors else None


@dataclass
class FailureOutcome:
    payment_intent_id: str
    application_id: uuid.UUID | None
    records_failed: int = 0
    application_reverted: bool = False


# =============================================================================
# Settlement Reconciler
# =============================================================================


class SettlementReconciler(BaseService):
    """
    Idempotent settlement of Stripe payment outcomes.

    The Stripe adapter is injected so tests can pass a mock class.
    """

    def __init__(self, stripe_adapter: type | None = None):
        self.stripe = stripe_adapter or StripeAdapter

    # =========================================================================
    # Entry points
    # =========================================================================

    def confirm_payment(
        self,
        application_id: uuid.UUID,
        payment_intent_id: str,
        user=None,
    ) -> SettlementOutcome:
        """
        Settle after the client reports success, trusting only Stripe.

        The intent is re-read from Stripe; it must have succeeded and carry
        this application's id before anything local changes.

        Raises:
            NotFoundError: Application does not exist
            PermissionDeniedError: Requesting user is not the tenant
            ConflictError: Intent not succeeded or belongs to another application
        """
        application = RentalStateService.get_application(application_id)
        if user is not None and application.tenant_id != user.pk:
            raise PermissionDeniedError(
                "Only the applicant can confirm this payment",
                error_code="NOT_APPLICANT",
                details={"application_id": str(application_id)},
            )

        intent = self.stripe.retrieve_payment_intent(payment_intent_id)
        if not intent.succeeded:
            raise ConflictError(
                f"Payment intent is '{intent.status}', not succeeded",
                error_code="PAYMENT_NOT_SUCCEEDED",
                details={"payment_intent_id": payment_intent_id, "status": intent.status},
            )
        if SettlementMetadata.application_id_from(intent.metadata) != application.id:
            raise ConflictError(
                "Payment intent does not belong to this application",
                error_code="PAYMENT_INTENT_MISMATCH",
                details={
                    "payment_intent_id": payment_intent_id,
                    "application_id": str(application_id),
                },
            )

        return self.settle_success(
            payment_intent_id,
            application_id=application.id,
            transaction_id=intent.latest_charge,
            source="confirm",
        )

    def settle_success(
        self,
        payment_intent_id: str,
        application_id: uuid.UUID | None = None,
        transaction_id: str | None = None,
        source: str = "webhook",
    ) -> SettlementOutcome:
        """
        Run the success path for every record of a payment intent.

        Raises:
            PaymentNotFoundError: No records for the intent (and application)
            InvalidStateTransitionError: The records already failed
        """
        logger = self.get_logger()
        outcome = SettlementOutcome(payment_intent_id=payment_intent_id, source=source)
        log_context = {"payment_intent_id": payment_intent_id, "source": source}

        records = self._records_for(payment_intent_id, application_id)
        outcome.application_id = records[0].application_id
        log_context["application_id"] = str(outcome.application_id)

        # Step 1: the one step whose failure aborts settlement
        now = timezone.now()
        outcome.records_completed = PaymentRecord.objects.filter(
            id__in=[record.id for record in records],
            status=PaymentRecordStatus.PENDING,
        ).update(
            status=PaymentRecordStatus.COMPLETED,
            paid_at=now,
            transaction_id=transaction_id or payment_intent_id,
            updated_at=now,
        )
        completed = list(
            PaymentRecord.objects.select_related("application__rental_property").filter(
                id__in=[record.id for record in records],
                status=PaymentRecordStatus.COMPLETED,
            )
        )
        if not completed:
            raise InvalidStateTransitionError(
                "Payment records for this intent already failed",
                details={"payment_intent_id": payment_intent_id},
            )
        logger.info(
            "Payment records settled",
            extra={**log_context, "records_completed": outcome.records_completed},
        )

        # Step 2
        application = self._run_step(
            outcome,
            "load application",
            lambda: RentalStateService.get_application(outcome.application_id),
            log_context,
        )
        if application is None:
            return outcome
        outcome.property_id = application.rental_property_id

        # Steps 3-4
        for record in completed:
            distributions = self._run_step(
                outcome,
                f"backfill distributions for {record.payment_type}",
                lambda record=record: ledger.ensure_distributions(record),
                log_context,
            )
            for distribution in distributions or []:
                if distribution.recipient_type == RecipientType.PLATFORM:
                    continue
                self._run_step(
                    outcome,
                    f"transfer {distribution.recipient_type} share of {record.payment_type}",
                    lambda d=distribution, r=record: outcome.transfers.append(
                        self._attempt_transfer(d, r, application)
                    ),
                    log_context,
                    atomic=False,
                )
        outcome.banking_status = (
            self._run_step(
                outcome,
                "banking status",
                lambda: self._banking_status(application),
                log_context,
            )
            or {}
        )

        # Step 5
        outcome.application_completed = bool(
            self._run_step(
                outcome,
                "complete application",
                lambda: RentalStateService.complete_application(application.id),
                log_context,
            )
        )
        # Step 6
        outcome.property_rented = bool(
            self._run_step(
                outcome,
                "mark property rented",
                lambda: RentalStateService.mark_property_rented(
                    application.rental_property_id, application.id
                ),
                log_context,
            )
        )
        # Step 7
        outcome.competing_rejected = (
            self._run_step(
                outcome,
                "reject competing applications",
                lambda: RentalStateService.reject_competing_applications(application),
                log_context,
            )
            or 0
        )
        # Step 8
        created = self._run_step(
            outcome,
            "create rental agreement",
            lambda: RentalStateService.create_agreement(application),
            log_context,
        )
        if created is not None:
            agreement, outcome.agreement_created = created
            outcome.agreement_id = agreement.id

        logger.info(
            "Settlement finished",
            extra={
                **log_context,
                "already_settled": outcome.already_settled,
                "transfer_count": len(outcome.transfers),
                "agreement_created": outcome.agreement_created,
                "warning_count": len(outcome.warnings),
            },
        )
        return outcome

    def settle_failure(
        self,
        payment_intent_id: str,
        application_id: uuid.UUID | None = None,
    ) -> FailureOutcome:
        """
        Mark an intent's pending records failed and let the tenant pay again.

        The application is reverted to approved/not_required only when this
        call failed the records and no other intent for the application is
        still pending.

        Raises:
            PaymentNotFoundError: No records for the intent
        """
        records = self._records_for(payment_intent_id, application_id)
        outcome = FailureOutcome(
            payment_intent_id=payment_intent_id,
            application_id=records[0].application_id,
        )

        outcome.records_failed = PaymentRecord.objects.filter(
            id__in=[record.id for record in records],
            status=PaymentRecordStatus.PENDING,
        ).update(status=PaymentRecordStatus.FAILED, updated_at=timezone.now())

        other_pending = (
            PaymentRecord.objects.filter(
                application_id=outcome.application_id,
                status=PaymentRecordStatus.PENDING,
            )
            .exclude(processor_intent_id=payment_intent_id)
            .exists()
        )
        if outcome.records_failed and not other_pending:
            outcome.application_reverted = RentalStateService.revert_application_payment(
                outcome.application_id
            )

        self.get_logger().info(
            "Payment failure recorded",
            extra={
                "payment_intent_id": payment_intent_id,
                "application_id": str(outcome.application_id),
                "records_failed": outcome.records_failed,
                "application_reverted": outcome.application_reverted,
            },
        )
        return outcome

    # =========================================================================
    # Steps
    # =========================================================================

    @staticmethod
    def _records_for(payment_intent_id: str, application_id: uuid.UUID | None) -> list:
        queryset = PaymentRecord.objects.filter(processor_intent_id=payment_intent_id)
        if application_id is not None:
            queryset = queryset.filter(application_id=application_id)
        records = list(queryset.order_by("created_at"))
        if not records:
            raise PaymentNotFoundError(
                "No payment records for this payment intent",
                details={
                    "payment_intent_id": payment_intent_id,
                    "application_id": str(application_id) if application_id else None,
                },
            )
        return records

    def _run_step(
        self,
        outcome: SettlementOutcome,
        name: str,
        step: Callable[[], Any],
        log_context: dict[str, Any],
        atomic: bool = True,
    ) -> Any:
        """
        Run one best-effort step; a failure becomes a warning, not an abort.

        Steps run in a savepoint so a database error leaves the
        connection usable for the steps after it.
        """
        try:
            if atomic:
                with transaction.atomic():
                    return step()
            return step()
        except Exception as e:
            message = f"{name} failed: {e}"
            self.get_logger().warning(
                "Settlement step failed",
                extra={**log_context, "step": name, "error": str(e)},
                exc_info=not isinstance(e, BaseApplicationError),
            )
            outcome.warnings.append(message)
            return None

    def _attempt_transfer(
        self,
        distribution: DistributionRecord,
        record: PaymentRecord,
        application: RentalApplication,
    ) -> TransferAttempt:
        """
        Claim a pending distribution and transfer it, or record why not.

        Only the caller whose claim succeeds talks to Stripe; everyone else
        reports the row's current status as skipped.
        """
        attempt = TransferAttempt(
            distribution_id=distribution.id,
            recipient_type=distribution.recipient_type,
            amount_cents=distribution.amount_cents,
            status=distribution.status,
        )
        if not ledger.claim(distribution.id):
            attempt.status = (
                DistributionRecord.objects.filter(id=distribution.id)
                .values_list("status", flat=True)
                .first()
            )
            attempt.skipped = True
            return attempt

        account = (
            ConnectedAccount.objects.filter(profile__user_id=distribution.recipient_id).first()
            if distribution.recipient_id
            else None
        )

        if account is None or not account.stripe_account_id:
            return self._manual(
                attempt,
                f"{distribution.get_recipient_type_display()} has no connected Stripe account",
                "NO_CONNECTED_ACCOUNT",
            )
        if not account.is_ready_for_transfers:
            return self._manual(
                attempt,
                f"{distribution.get_recipient_type_display()} account cannot receive "
                "transfers yet",
                "ACCOUNT_NOT_ELIGIBLE",
            )

        try:
            live = self.stripe.retrieve_connected_account(account.stripe_account_id)
        except StripeError as e:
            return self._failed(attempt, e.error_code, e.message)
        if not (live.charges_enabled and live.payouts_enabled):
            return self._failed(
                attempt,
                "ACCOUNT_NOT_ENABLED",
                "Connected account does not have charges and payouts enabled",
            )

        metadata = TransferMetadata(
            application_id=application.id,
            payment_intent_id=record.processor_intent_id,
            property_id=application.rental_property_id,
            recipient_id=distribution.recipient_id,
            distribution_id=distribution.id,
            recipient_type=distribution.recipient_type,
        )
        try:
            transfer = self.stripe.create_transfer(
                amount_cents=distribution.amount_cents,
                destination_account=account.stripe_account_id,
                idempotency_key=IdempotencyKeyGenerator.generate("transfer", distribution.id),
                currency=record.currency,
                transfer_group=f"application-{application.id}",
                metadata=metadata.to_stripe(),
            )
        except StripeTimeoutError as e:
            return self._failed(attempt, "TRANSFER_TIMEOUT", e.message)
        except StripeError as e:
            return self._failed(attempt, e.error_code, e.message)

        if not ledger.mark_transferred(
            distribution.id, transfer.id, transfer.amount_cents, transfer.currency
        ):
            # The stale-claim sweeper resolved the row while Stripe was responding
            self.get_logger().error(
                "Transfer created for a distribution that is no longer processing",
                extra={"distribution_id": str(distribution.id), "transfer_id": transfer.id},
            )
        attempt.status = DistributionStatus.TRANSFERRED
        attempt.transfer_id = transfer.id
        attempt.currency = transfer.currency
        self.get_logger().info(
            "Distribution transferred",
            extra={
                "distribution_id": str(distribution.id),
                "transfer_id": transfer.id,
                "amount_cents": transfer.amount_cents,
            },
        )
        return attempt

    def _manual(self, attempt: TransferAttempt, reason: str, code: str) -> TransferAttempt:
        ledger.mark_manual(attempt.distribution_id, reason, error_code=code)
        attempt.status = DistributionStatus.MANUAL_PROCESSING_REQUIRED
        attempt.error = reason
        attempt.error_code = code
        self.get_logger().warning(
            "Distribution needs manual processing",
            extra={"distribution_id": str(attempt.distribution_id), "error_code": code},
        )
        return attempt

    def _failed(self, attempt: TransferAttempt, code: str, error: str) -> TransferAttempt:
        ledger.mark_failed(attempt.distribution_id, code, error)
        attempt.status = DistributionStatus.TRANSFER_FAILED
        attempt.error = error
        attempt.error_code = code
        self.get_logger().warning(
            "Distribution transfer failed",
            extra={"distribution_id": str(attempt.distribution_id), "error_code": code},
        )
        return attempt

    @staticmethod
    def _banking_status(application: RentalApplication) -> dict[str, Any]:
        """Owner's payout readiness and where the owner shares stand."""
        owner_id = application.rental_property.owner_id
        account = ConnectedAccount.objects.filter(profile__user_id=owner_id).first()
        statuses = list(
            DistributionRecord.objects.filter(
                payment_record__application_id=application.id,
                payment_record__status=PaymentRecordStatus.COMPLETED,
                recipient_type=RecipientType.OWNER,
            ).values_list("status", flat=True)
        )
        return {
            "has_connected_account": account is not None,
            "onboarding_complete": bool(account and account.onboarding_complete),
            "can_receive_transfers": bool(account and account.can_receive_transfers),
            "owner_distribution_statuses": sorted(set(statuses)),
        }
