"""
Tests for SettlementReconciler.

Tests cover:
- The success path: records, transfers, application, property, competitors, agreement
- Idempotency across repeated and mixed confirm/webhook settlement
- Transfer outcomes: transferred, manual processing, failed, timed out
- Backfill of missing distribution rows
- Isolation of failing best-effort steps
- Client confirmation checks against the live intent
- The failure path and when it reverts the application

Note: Uses the shared fixtures from payments/conftest.py. pending_checkout
is a $2,000 payment (rent + deposit) whose two owner shares are $950 each.
"""

import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from authentication.models import UserRole
from authentication.tests.factories import OwnerFactory, UserFactory
from core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from payments.adapters import ConnectedAccountResult
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    StripeAPIUnavailableError,
    StripeInvalidAccountError,
    StripeTimeoutError,
)
from payments.ledger import DistributionRecord, ledger
from payments.models import PaymentRecord
from payments.services import SettlementReconciler
from payments.state_machines import (
    DistributionStatus,
    PaymentRecordStatus,
    PaymentType,
    RecipientType,
)
from payments.tests.factories import ConnectedAccountFactory, PaymentRecordFactory
from rentals.models import Property, RentalAgreement, RentalApplication
from rentals.services import RentalStateService
from rentals.states import ApplicationPaymentStatus, ApplicationStatus, PropertyStatus
from rentals.tests.factories import PropertyFactory, RentalApplicationFactory


def get_fresh_application(application_id) -> RentalApplication:
    return RentalApplication.objects.get(id=application_id)


def record_statuses(checkout) -> set:
    return set(
        PaymentRecord.objects.filter(
            processor_intent_id=checkout.payment_intent_id
        ).values_list("status", flat=True)
    )


def owner_rows(checkout):
    return DistributionRecord.objects.filter(
        payment_record__processor_intent_id=checkout.payment_intent_id,
        recipient_type=RecipientType.OWNER,
    )


@pytest.fixture
def reconciler(mock_stripe):
    return SettlementReconciler(stripe_adapter=mock_stripe)


# =============================================================================
# settle_success
# =============================================================================


@pytest.mark.django_db
class TestSettleSuccess:
    """Tests for the success path on a fresh checkout."""

    def test_completes_records(self, reconciler, pending_checkout, owner_account):
        outcome = reconciler.settle_success(
            pending_checkout.payment_intent_id, transaction_id="ch_123"
        )

        assert outcome.records_completed == 2
        assert outcome.already_settled is False
        records = PaymentRecord.objects.filter(
            processor_intent_id=pending_checkout.payment_intent_id
        )
        assert {r.status for r in records} == {PaymentRecordStatus.COMPLETED}
        assert {r.transaction_id for r in records} == {"ch_123"}
        assert all(r.paid_at is not None for r in records)

    def test_transaction_id_defaults_to_intent(self, reconciler, pending_checkout, owner_account):
        reconciler.settle_success(pending_checkout.payment_intent_id)

        assert set(
            PaymentRecord.objects.values_list("transaction_id", flat=True)
        ) == {pending_checkout.payment_intent_id}

    def test_transfers_owner_shares(self, reconciler, mock_stripe, pending_checkout, owner_account):
        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert mock_stripe.create_transfer.call_count == 2
        for call in mock_stripe.create_transfer.call_args_list:
            assert call.kwargs["amount_cents"] == 95000
            assert call.kwargs["destination_account"] == owner_account.stripe_account_id
            assert call.kwargs["transfer_group"] == (
                f"application-{pending_checkout.application.id}"
            )
        assert {row.status for row in owner_rows(pending_checkout)} == {
            DistributionStatus.TRANSFERRED
        }
        assert len(outcome.transfer_result) == 2
        assert outcome.transfer_error is None

    def test_platform_share_is_not_transferred(self, reconciler, pending_checkout, owner_account):
        reconciler.settle_success(pending_checkout.payment_intent_id)

        platform_rows = DistributionRecord.objects.filter(recipient_type=RecipientType.PLATFORM)
        assert platform_rows.count() == 2
        assert {row.status for row in platform_rows} == {DistributionStatus.PENDING}

    def test_transfer_keyed_by_distribution(self, reconciler, mock_stripe, pending_checkout, owner_account):
        reconciler.settle_success(pending_checkout.payment_intent_id)

        row_ids = {str(row.id) for row in owner_rows(pending_checkout)}
        keys = {call.kwargs["idempotency_key"] for call in mock_stripe.create_transfer.call_args_list}
        assert {key.split(":")[1] for key in keys} == row_ids
        assert all(key.startswith("transfer:") for key in keys)
        metadata = mock_stripe.create_transfer.call_args.kwargs["metadata"]
        assert metadata["distribution_id"] in row_ids
        assert metadata["payment_intent_id"] == pending_checkout.payment_intent_id
        assert metadata["recipient_type"] == RecipientType.OWNER

    def test_records_transfer_details(self, reconciler, pending_checkout, owner_account):
        reconciler.settle_success(pending_checkout.payment_intent_id)

        for row in owner_rows(pending_checkout):
            assert row.processor_transfer_id.startswith("tr_test_")
            assert row.transfer_amount_cents == 95000
            assert row.transfer_currency == "usd"
            assert row.transferred_at is not None

    def test_completes_application(self, reconciler, pending_checkout, owner_account):
        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        application = get_fresh_application(pending_checkout.application.id)
        assert outcome.application_completed is True
        assert application.status == ApplicationStatus.COMPLETED
        assert application.payment_status == ApplicationPaymentStatus.COMPLETED

    def test_marks_property_rented(self, reconciler, pending_checkout, owner_account):
        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        rental_property = Property.objects.get(id=pending_checkout.application.rental_property_id)
        assert outcome.property_rented is True
        assert outcome.property_id == rental_property.id
        assert rental_property.status == PropertyStatus.RENTED

    def test_rejects_competing_applications(self, reconciler, pending_checkout, owner_account):
        rental_property = pending_checkout.application.rental_property
        approved = RentalApplicationFactory(rental_property=rental_property)
        pending = RentalApplicationFactory(
            rental_property=rental_property, status=ApplicationStatus.PENDING
        )
        elsewhere = RentalApplicationFactory()

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert outcome.competing_rejected == 2
        assert get_fresh_application(approved.id).status == ApplicationStatus.REJECTED
        assert get_fresh_application(pending.id).status == ApplicationStatus.REJECTED
        assert get_fresh_application(elsewhere.id).status == ApplicationStatus.APPROVED

    def test_creates_agreement(self, reconciler, pending_checkout, owner_account, settings):
        settings.LEASE_TERM_DAYS = 365

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        agreement = RentalAgreement.objects.get(application=pending_checkout.application)
        assert outcome.agreement_created is True
        assert outcome.agreement_id == agreement.id
        assert agreement.tenant == pending_checkout.application.tenant
        assert agreement.owner == pending_checkout.application.rental_property.owner
        assert agreement.monthly_rent_cents == 100000
        assert agreement.security_deposit_cents == 100000
        assert (agreement.lease_end_date - agreement.lease_start_date).days == 365

    def test_banking_status(self, reconciler, pending_checkout, owner_account):
        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert outcome.banking_status == {
            "has_connected_account": True,
            "onboarding_complete": True,
            "can_receive_transfers": True,
            "owner_distribution_statuses": [DistributionStatus.TRANSFERRED],
        }

    def test_management_share_goes_to_management_account(self, mock_stripe, tenant):
        manager = OwnerFactory(profile__role=UserRole.MANAGEMENT)
        manager_account = ConnectedAccountFactory(profile=manager.profile)
        rental_property = PropertyFactory(management_company=manager)
        ConnectedAccountFactory(profile=rental_property.owner.profile)
        application = RentalApplicationFactory(
            tenant=tenant,
            rental_property=rental_property,
            status=ApplicationStatus.PAYMENT_PENDING,
        )
        record = PaymentRecordFactory(
            application=application,
            processor_intent_id="pi_managed",
            gross_amount_cents=100000,
            platform_fee_cents=5000,
            management_fee_cents=10000,
            owner_net_cents=85000,
            management_fee_percentage=Decimal("10.00"),
        )
        ledger.create_distributions(record)

        outcome = SettlementReconciler(mock_stripe).settle_success("pi_managed")

        transfers = {t.recipient_type: t for t in outcome.transfers}
        assert transfers[RecipientType.MANAGEMENT].amount_cents == 10000
        assert transfers[RecipientType.OWNER].amount_cents == 85000
        destinations = {
            call.kwargs["destination_account"]
            for call in mock_stripe.create_transfer.call_args_list
            if call.kwargs["amount_cents"] == 10000
        }
        assert destinations == {manager_account.stripe_account_id}

    def test_unknown_intent(self, reconciler, db):
        with pytest.raises(PaymentNotFoundError):
            reconciler.settle_success("pi_missing")

    def test_intent_for_another_application(self, reconciler, pending_checkout):
        with pytest.raises(PaymentNotFoundError):
            reconciler.settle_success(
                pending_checkout.payment_intent_id, application_id=uuid.uuid4()
            )

    def test_failed_records_cannot_be_settled(self, reconciler, mock_stripe, pending_checkout):
        reconciler.settle_failure(pending_checkout.payment_intent_id)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            reconciler.settle_success(pending_checkout.payment_intent_id)

        assert exc_info.value.http_status == 409
        assert record_statuses(pending_checkout) == {PaymentRecordStatus.FAILED}
        mock_stripe.create_transfer.assert_not_called()
        assert not RentalAgreement.objects.exists()


# =============================================================================
# Idempotency
# =============================================================================


@pytest.mark.django_db
class TestSettlementIdempotency:
    """Running the success path more than once has the effect of running it once."""

    def test_second_settlement_is_a_no_op(self, reconciler, mock_stripe, pending_checkout, owner_account):
        first = reconciler.settle_success(pending_checkout.payment_intent_id)
        second = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert second.already_settled is True
        assert second.records_completed == 0
        assert mock_stripe.create_transfer.call_count == 2
        assert second.transfer_result == []
        assert all(t.skipped for t in second.transfers)
        assert second.application_completed is False
        assert second.property_rented is False
        assert second.agreement_created is False
        assert second.agreement_id == first.agreement_id
        assert second.warnings == []

    def test_confirm_then_webhook(
        self, reconciler, mock_stripe, pending_checkout, owner_account, succeeded_intent_for
    ):
        mock_stripe.retrieve_payment_intent.return_value = succeeded_intent_for(
            pending_checkout.application
        )

        confirmed = reconciler.confirm_payment(
            pending_checkout.application.id,
            pending_checkout.payment_intent_id,
            user=pending_checkout.application.tenant,
        )
        webhook = reconciler.settle_success(
            pending_checkout.payment_intent_id,
            application_id=pending_checkout.application.id,
            source="webhook",
        )

        assert confirmed.already_settled is False
        assert confirmed.source == "confirm"
        assert webhook.already_settled is True
        assert mock_stripe.create_transfer.call_count == 2
        assert RentalAgreement.objects.filter(application=pending_checkout.application).count() == 1

    def test_webhook_then_confirm(
        self, reconciler, mock_stripe, pending_checkout, owner_account, succeeded_intent_for
    ):
        mock_stripe.retrieve_payment_intent.return_value = succeeded_intent_for(
            pending_checkout.application
        )

        reconciler.settle_success(pending_checkout.payment_intent_id, source="webhook")
        confirmed = reconciler.confirm_payment(
            pending_checkout.application.id, pending_checkout.payment_intent_id
        )

        assert confirmed.already_settled is True
        assert confirmed.agreement_id is not None
        assert mock_stripe.create_transfer.call_count == 2

    def test_row_claimed_elsewhere_is_skipped(self, reconciler, mock_stripe, pending_checkout, owner_account):
        in_flight = owner_rows(pending_checkout).first()
        ledger.claim(in_flight.id)

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        skipped = [t for t in outcome.transfers if t.skipped]
        assert [t.distribution_id for t in skipped] == [in_flight.id]
        assert skipped[0].status == DistributionStatus.PROCESSING
        assert mock_stripe.create_transfer.call_count == 1

    def test_failed_transfer_is_not_retried(self, reconciler, mock_stripe, pending_checkout, owner_account):
        mock_stripe.create_transfer.side_effect = StripeTimeoutError("Request timed out")
        reconciler.settle_success(pending_checkout.payment_intent_id)

        reconciler.settle_success(pending_checkout.payment_intent_id)

        assert mock_stripe.create_transfer.call_count == 2
        assert {row.status for row in owner_rows(pending_checkout)} == {
            DistributionStatus.TRANSFER_FAILED
        }


# =============================================================================
# Transfer outcomes
# =============================================================================


@pytest.mark.django_db
class TestTransferOutcomes:
    """Distribution rows that cannot be transferred automatically."""

    def test_no_connected_account_needs_manual_processing(self, reconciler, mock_stripe, pending_checkout):
        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        mock_stripe.create_transfer.assert_not_called()
        rows = list(owner_rows(pending_checkout))
        assert {row.status for row in rows} == {DistributionStatus.MANUAL_PROCESSING_REQUIRED}
        assert {row.transfer_error_code for row in rows} == {"NO_CONNECTED_ACCOUNT"}
        assert "no connected Stripe account" in outcome.transfer_error
        assert outcome.banking_status["has_connected_account"] is False
        # The payment still settles
        assert outcome.application_completed is True
        assert outcome.agreement_created is True

    def test_incomplete_account_needs_manual_processing(self, reconciler, mock_stripe, pending_checkout, owner):
        ConnectedAccountFactory(profile=owner.profile, incomplete=True)

        reconciler.settle_success(pending_checkout.payment_intent_id)

        mock_stripe.retrieve_connected_account.assert_not_called()
        assert {row.transfer_error_code for row in owner_rows(pending_checkout)} == {
            "ACCOUNT_NOT_ELIGIBLE"
        }
        assert {row.status for row in owner_rows(pending_checkout)} == {
            DistributionStatus.MANUAL_PROCESSING_REQUIRED
        }

    def test_live_account_not_enabled(self, reconciler, mock_stripe, pending_checkout, owner_account):
        mock_stripe.retrieve_connected_account.side_effect = None
        mock_stripe.retrieve_connected_account.return_value = ConnectedAccountResult(
            id=owner_account.stripe_account_id,
            charges_enabled=True,
            payouts_enabled=False,
            details_submitted=True,
        )

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        mock_stripe.create_transfer.assert_not_called()
        assert {row.status for row in owner_rows(pending_checkout)} == {
            DistributionStatus.TRANSFER_FAILED
        }
        assert {t.error_code for t in outcome.transfers} == {"ACCOUNT_NOT_ENABLED"}

    def test_account_lookup_error(self, reconciler, mock_stripe, pending_checkout, owner_account):
        mock_stripe.retrieve_connected_account.side_effect = StripeAPIUnavailableError(
            "Stripe unavailable"
        )

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert {t.error_code for t in outcome.transfers} == {"STRIPE_UNAVAILABLE"}
        assert outcome.application_completed is True

    def test_transfer_timeout(self, reconciler, mock_stripe, pending_checkout, owner_account):
        mock_stripe.create_transfer.side_effect = StripeTimeoutError("Request timed out")

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        rows = list(owner_rows(pending_checkout))
        assert {row.status for row in rows} == {DistributionStatus.TRANSFER_FAILED}
        assert {row.transfer_error_code for row in rows} == {"TRANSFER_TIMEOUT"}
        assert outcome.transfer_error is not None
        assert outcome.application_completed is True

    def test_transfer_rejected(self, reconciler, mock_stripe, pending_checkout, owner_account):
        mock_stripe.create_transfer.side_effect = StripeInvalidAccountError(
            "No such destination: acct_x"
        )

        reconciler.settle_success(pending_checkout.payment_intent_id)

        rows = list(owner_rows(pending_checkout))
        assert {row.transfer_error_code for row in rows} == {"INVALID_STRIPE_ACCOUNT"}
        assert {row.transfer_error for row in rows} == {"No such destination: acct_x"}


# =============================================================================
# Backfill and step isolation
# =============================================================================


@pytest.mark.django_db
class TestBestEffortSteps:
    """Steps after the record update never abort settlement."""

    def test_backfills_missing_distributions(self, reconciler, mock_stripe, tenant, rental_property, owner_account):
        application = RentalApplicationFactory(
            tenant=tenant,
            rental_property=rental_property,
            status=ApplicationStatus.PAYMENT_PENDING,
        )
        record = PaymentRecordFactory(application=application, processor_intent_id="pi_backfill")

        outcome = reconciler.settle_success("pi_backfill")

        rows = DistributionRecord.objects.filter(payment_record=record)
        assert rows.count() == 2
        assert rows.get(recipient_type=RecipientType.OWNER).status == DistributionStatus.TRANSFERRED
        assert mock_stripe.create_transfer.call_count == 1
        assert outcome.warnings == []

    def test_failing_step_becomes_warning(self, reconciler, pending_checkout, owner_account):
        with patch.object(
            RentalStateService,
            "mark_property_rented",
            side_effect=ConflictError("Cannot rent property in 'maintenance' status"),
        ):
            outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert outcome.property_rented is False
        assert len(outcome.warnings) == 1
        assert outcome.warnings[0].startswith("mark property rented failed")
        assert outcome.application_completed is True
        assert outcome.agreement_created is True

    def test_banking_status_failure_becomes_warning(
        self, reconciler, pending_checkout, owner_account
    ):
        with patch.object(
            SettlementReconciler, "_banking_status", side_effect=DatabaseError("boom")
        ):
            outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert outcome.banking_status == {}
        assert len(outcome.warnings) == 1
        assert outcome.warnings[0].startswith("banking status failed")
        assert outcome.application_completed is True
        assert outcome.property_rented is True
        assert outcome.agreement_created is True

    def test_second_application_settling_on_rented_property(
        self, reconciler, mock_stripe, pending_checkout, owner_account
    ):
        reconciler.settle_success(pending_checkout.payment_intent_id)
        rival = RentalApplicationFactory(
            rental_property=pending_checkout.application.rental_property,
            status=ApplicationStatus.PAYMENT_PENDING,
        )
        record = PaymentRecordFactory(application=rival, processor_intent_id="pi_rival")
        ledger.create_distributions(record)

        outcome = reconciler.settle_success("pi_rival")

        assert outcome.application_completed is True
        assert outcome.property_rented is False
        assert outcome.agreement_created is False
        assert outcome.agreement_id is None
        assert len(outcome.warnings) == 2
        assert outcome.warnings[0].startswith("mark property rented failed")
        assert outcome.warnings[1].startswith("create rental agreement failed")
        assert all("already rented" in warning for warning in outcome.warnings)
        assert (
            RentalAgreement.objects.filter(
                rental_property_id=pending_checkout.application.rental_property_id
            ).count()
            == 1
        )

    def test_property_under_maintenance(self, reconciler, pending_checkout, owner_account):
        Property.objects.filter(id=pending_checkout.application.rental_property_id).update(
            status=PropertyStatus.MAINTENANCE
        )

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert outcome.property_rented is False
        assert any("mark property rented" in w for w in outcome.warnings)
        assert record_statuses(pending_checkout) == {PaymentRecordStatus.COMPLETED}

    def test_transfer_crash_does_not_stop_settlement(self, reconciler, mock_stripe, pending_checkout, owner_account):
        mock_stripe.create_transfer.side_effect = RuntimeError("unexpected")

        outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert len([w for w in outcome.warnings if w.startswith("transfer owner share")]) == 2
        assert outcome.agreement_created is True
        # The claim stays until the stale-claim sweep resolves it
        assert {row.status for row in owner_rows(pending_checkout)} == {
            DistributionStatus.PROCESSING
        }

    def test_application_load_failure_stops_after_records(self, reconciler, mock_stripe, pending_checkout):
        with patch.object(
            RentalStateService,
            "get_application",
            side_effect=NotFoundError("Application not found"),
        ):
            outcome = reconciler.settle_success(pending_checkout.payment_intent_id)

        assert outcome.records_completed == 2
        assert outcome.warnings == ["load application failed: [NOT_FOUND] Application not found"]
        mock_stripe.create_transfer.assert_not_called()


# =============================================================================
# confirm_payment
# =============================================================================


@pytest.mark.django_db
class TestConfirmPayment:
    """Tests for SettlementReconciler.confirm_payment()."""

    def test_settles_with_latest_charge(
        self, reconciler, mock_stripe, pending_checkout, owner_account, succeeded_intent_for
    ):
        mock_stripe.retrieve_payment_intent.return_value = succeeded_intent_for(
            pending_checkout.application, latest_charge="ch_live"
        )

        outcome = reconciler.confirm_payment(
            pending_checkout.application.id,
            pending_checkout.payment_intent_id,
            user=pending_checkout.application.tenant,
        )

        mock_stripe.retrieve_payment_intent.assert_called_once_with(
            pending_checkout.payment_intent_id
        )
        assert outcome.records_completed == 2
        assert set(PaymentRecord.objects.values_list("transaction_id", flat=True)) == {"ch_live"}

    def test_only_tenant_can_confirm(self, reconciler, mock_stripe, pending_checkout):
        with pytest.raises(PermissionDeniedError):
            reconciler.confirm_payment(
                pending_checkout.application.id,
                pending_checkout.payment_intent_id,
                user=UserFactory(),
            )

        mock_stripe.retrieve_payment_intent.assert_not_called()

    def test_unknown_application(self, reconciler, db):
        with pytest.raises(NotFoundError):
            reconciler.confirm_payment(uuid.uuid4(), "pi_whatever")

    @pytest.mark.parametrize("status", ["processing", "requires_payment_method", "canceled"])
    def test_intent_not_succeeded(self, reconciler, mock_stripe, pending_checkout, succeeded_intent_for, status):
        mock_stripe.retrieve_payment_intent.return_value = succeeded_intent_for(
            pending_checkout.application, status=status
        )

        with pytest.raises(ConflictError) as exc_info:
            reconciler.confirm_payment(
                pending_checkout.application.id, pending_checkout.payment_intent_id
            )

        assert exc_info.value.error_code == "PAYMENT_NOT_SUCCEEDED"
        assert record_statuses(pending_checkout) == {PaymentRecordStatus.PENDING}

    def test_intent_for_another_application(
        self, reconciler, mock_stripe, pending_checkout, succeeded_intent_for
    ):
        other = RentalApplicationFactory()
        mock_stripe.retrieve_payment_intent.return_value = succeeded_intent_for(other)

        with pytest.raises(ConflictError) as exc_info:
            reconciler.confirm_payment(
                pending_checkout.application.id, pending_checkout.payment_intent_id
            )

        assert exc_info.value.error_code == "PAYMENT_INTENT_MISMATCH"
        assert record_statuses(pending_checkout) == {PaymentRecordStatus.PENDING}

    def test_stripe_unavailable(self, reconciler, mock_stripe, pending_checkout):
        mock_stripe.retrieve_payment_intent.side_effect = StripeAPIUnavailableError("down")

        with pytest.raises(StripeAPIUnavailableError):
            reconciler.confirm_payment(
                pending_checkout.application.id, pending_checkout.payment_intent_id
            )


# =============================================================================
# settle_failure
# =============================================================================


@pytest.mark.django_db
class TestSettleFailure:
    """Tests for SettlementReconciler.settle_failure()."""

    def test_fails_records_and_reverts_application(self, reconciler, pending_checkout):
        outcome = reconciler.settle_failure(pending_checkout.payment_intent_id)

        assert outcome.records_failed == 2
        assert outcome.application_reverted is True
        assert record_statuses(pending_checkout) == {PaymentRecordStatus.FAILED}
        application = get_fresh_application(pending_checkout.application.id)
        assert application.status == ApplicationStatus.APPROVED
        assert application.payment_status == ApplicationPaymentStatus.NOT_REQUIRED

    def test_distribution_rows_are_untouched(self, reconciler, pending_checkout):
        reconciler.settle_failure(pending_checkout.payment_intent_id)

        assert {row.status for row in DistributionRecord.objects.all()} == {
            DistributionStatus.PENDING
        }

    def test_repeated_failure(self, reconciler, pending_checkout):
        reconciler.settle_failure(pending_checkout.payment_intent_id)
        RentalStateService.start_payment(pending_checkout.application.id)

        outcome = reconciler.settle_failure(pending_checkout.payment_intent_id)

        assert outcome.records_failed == 0
        assert outcome.application_reverted is False
        assert (
            get_fresh_application(pending_checkout.application.id).status
            == ApplicationStatus.PAYMENT_PENDING
        )

    def test_other_pending_intent_keeps_application_pending(self, reconciler, pending_checkout):
        PaymentRecordFactory(
            application=pending_checkout.application,
            processor_intent_id="pi_retry",
            payment_type=PaymentType.FIRST_MONTH_RENT,
        )

        outcome = reconciler.settle_failure(pending_checkout.payment_intent_id)

        assert outcome.records_failed == 2
        assert outcome.application_reverted is False
        assert (
            get_fresh_application(pending_checkout.application.id).status
            == ApplicationStatus.PAYMENT_PENDING
        )

    def test_late_failure_after_success(self, reconciler, pending_checkout, owner_account):
        reconciler.settle_success(pending_checkout.payment_intent_id)

        outcome = reconciler.settle_failure(pending_checkout.payment_intent_id)

        assert outcome.records_failed == 0
        assert outcome.application_reverted is False
        assert record_statuses(pending_checkout) == {PaymentRecordStatus.COMPLETED}
        assert (
            get_fresh_application(pending_checkout.application.id).status
            == ApplicationStatus.COMPLETED
        )

    def test_unknown_intent(self, reconciler, db):
        with pytest.raises(PaymentNotFoundError):
            reconciler.settle_failure("pi_missing")
