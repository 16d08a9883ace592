"""
Pytest fixtures shared by all payments tests.

Provides a paying tenant, an owner with a connected account, an
application waiting for payment with its records and distribution rows,
and a mock Stripe adapter that succeeds by default.

Usage:
    def test_settles(pending_checkout, mock_stripe):
        outcome = SettlementReconciler(mock_stripe).settle_success(
            pending_checkout.payment_intent_id
        )
"""

from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import OwnerFactory, UserFactory
from payments.adapters import (
    AccountLinkResult,
    ConnectedAccountResult,
    PaymentIntentResult,
    TransferResult,
)
from payments.ledger import ledger
from payments.models import PaymentRecord
from payments.state_machines import PaymentType
from payments.tests.factories import ConnectedAccountFactory, PaymentRecordFactory
from rentals.states import ApplicationStatus
from rentals.tests.factories import PropertyFactory, RentalApplicationFactory

INTENT_ID = "pi_test_checkout"


# =============================================================================
# Users and Rentals
# =============================================================================


@pytest.fixture
def tenant(db):
    return UserFactory(profile__first_name="Tara", profile__last_name="Tenant")


@pytest.fixture
def owner(db):
    return OwnerFactory()


@pytest.fixture
def rental_property(owner):
    """$1,000/month property with the default 5% platform fee."""
    return PropertyFactory(owner=owner, price_cents=100000)


@pytest.fixture
def approved_application(tenant, rental_property):
    return RentalApplicationFactory(
        tenant=tenant,
        rental_property=rental_property,
        status=ApplicationStatus.APPROVED,
    )


@pytest.fixture
def owner_account(owner):
    """Owner's connected account, ready for transfers."""
    return ConnectedAccountFactory(profile=owner.profile)


# =============================================================================
# Checkout State
# =============================================================================


@dataclass
class Checkout:
    """An application in payment_pending with one intent's records and rows."""

    application: object
    payment_intent_id: str
    records: list[PaymentRecord]

    @property
    def distributions(self):
        return [row for record in self.records for row in record.distributions.all()]


@pytest.fixture
def pending_checkout(tenant, rental_property):
    """
    Rent ($1,000) and deposit ($1,000) paid through one intent.

    Each record splits $50 platform / $950 owner; distribution rows exist.
    """
    application = RentalApplicationFactory(
        tenant=tenant,
        rental_property=rental_property,
        status=ApplicationStatus.PAYMENT_PENDING,
    )
    records = [
        PaymentRecordFactory(
            application=application,
            payment_type=payment_type,
            processor_intent_id=INTENT_ID,
        )
        for payment_type in (PaymentType.FIRST_MONTH_RENT, PaymentType.SECURITY_DEPOSIT)
    ]
    for record in records:
        ledger.create_distributions(record)
    return Checkout(application=application, payment_intent_id=INTENT_ID, records=records)


# =============================================================================
# Stripe
# =============================================================================


def make_intent(
    id: str = INTENT_ID,
    status: str = "succeeded",
    amount_cents: int = 200000,
    metadata: dict | None = None,
    latest_charge: str | None = "ch_test_checkout",
) -> PaymentIntentResult:
    return PaymentIntentResult(
        id=id,
        status=status,
        amount_cents=amount_cents,
        currency="usd",
        client_secret=f"{id}_secret_test",
        latest_charge=latest_charge,
        metadata=metadata or {},
    )


@pytest.fixture
def mock_stripe():
    """
    Mock StripeAdapter that succeeds by default.

    Transfers get a distinct id per call and echo the requested amount.
    """
    adapter = MagicMock(name="StripeAdapter")
    adapter.create_payment_intent.side_effect = lambda params: make_intent(
        status="requires_payment_method",
        amount_cents=params.amount_cents,
        metadata=params.metadata,
        latest_charge=None,
    )
    adapter.retrieve_connected_account.side_effect = lambda account_id: ConnectedAccountResult(
        id=account_id,
        charges_enabled=True,
        payouts_enabled=True,
        details_submitted=True,
        capabilities={"transfers": "active", "card_payments": "active"},
        raw_response={
            "id": account_id,
            "charges_enabled": True,
            "payouts_enabled": True,
            "details_submitted": True,
            "capabilities": {"transfers": "active", "card_payments": "active"},
            "requirements": {"currently_due": [], "disabled_reason": None},
        },
    )

    counter = {"n": 0}

    def _transfer(amount_cents, destination_account, idempotency_key, **kwargs):
        counter["n"] += 1
        return TransferResult(
            id=f"tr_test_{counter['n']:04d}",
            amount_cents=amount_cents,
            currency=kwargs.get("currency", "usd"),
            destination_account=destination_account,
            transfer_group=kwargs.get("transfer_group"),
            metadata=kwargs.get("metadata") or {},
        )

    adapter.create_transfer.side_effect = _transfer
    adapter.create_account_link.return_value = AccountLinkResult(
        url="https://connect.stripe.com/setup/e/acct_test/abc", expires_at=1_900_000_000
    )
    return adapter


@pytest.fixture
def succeeded_intent_for():
    """Build a succeeded intent whose metadata points at an application."""

    def _build(application, intent_id: str = INTENT_ID, **kwargs):
        return make_intent(
            id=intent_id,
            metadata={"application_id": str(application.id)},
            **kwargs,
        )

    return _build


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def tenant_client(tenant):
    client = APIClient()
    client.force_authenticate(user=tenant)
    return client


@pytest.fixture
def owner_client(owner):
    client = APIClient()
    client.force_authenticate(user=owner)
    return client


