"""
Tests for rental models.

Tests cover:
- Property fee and deposit fallbacks
- Property and RentalAgreement FSM transitions
- RentalApplication payability
- EmailVerification expiry
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from django_fsm import TransitionNotAllowed
from freezegun import freeze_time

from authentication.tests.factories import UserFactory
from rentals.states import (
    AgreementStatus,
    ApplicationStatus,
    PropertyStatus,
)
from rentals.tests.factories import (
    EmailVerificationFactory,
    PropertyFactory,
    RentalAgreementFactory,
    RentalApplicationFactory,
)


@pytest.mark.django_db
class TestProperty:
    def test_deposit_defaults_to_one_month(self):
        rental_property = PropertyFactory(price_cents=150000)

        assert rental_property.effective_security_deposit_cents == 150000

    def test_explicit_deposit(self):
        rental_property = PropertyFactory(price_cents=150000, security_deposit_cents=0)

        assert rental_property.effective_security_deposit_cents == 0

    def test_fee_percentages_fall_back_to_settings(self, settings):
        settings.PLATFORM_FEE_PERCENT = Decimal("5.00")
        settings.MANAGEMENT_FEE_PERCENT = Decimal("0.00")
        rental_property = PropertyFactory()

        assert rental_property.effective_platform_fee_percentage == Decimal("5.00")
        assert rental_property.effective_management_fee_percentage == Decimal("0.00")

    def test_property_fee_overrides(self):
        rental_property = PropertyFactory(
            platform_fee_percentage=Decimal("3.50"),
            management_fee_percentage=Decimal("8.00"),
        )

        assert rental_property.effective_platform_fee_percentage == Decimal("3.50")
        assert rental_property.effective_management_fee_percentage == Decimal("8.00")

    def test_management_recipient(self):
        company = UserFactory()
        managed = PropertyFactory(management_company=company)
        unmanaged = PropertyFactory()

        assert managed.management_recipient == company
        assert unmanaged.management_recipient == unmanaged.owner

    def test_mark_available_after_lease(self, rented_property):
        rented_property.mark_available()

        assert rented_property.status == PropertyStatus.AVAILABLE

    @pytest.mark.parametrize(
        "property_status",
        [PropertyStatus.AVAILABLE, PropertyStatus.PENDING, PropertyStatus.MAINTENANCE],
    )
    def test_mark_available_requires_rented(self, property_status):
        rental_property = PropertyFactory(status=property_status)

        with pytest.raises(TransitionNotAllowed):
            rental_property.mark_available()


@pytest.mark.django_db
class TestRentalApplication:
    @pytest.mark.parametrize(
        "application_status,expected",
        [
            (ApplicationStatus.PENDING, False),
            (ApplicationStatus.APPROVED, True),
            (ApplicationStatus.PAYMENT_PENDING, True),
            (ApplicationStatus.COMPLETED, False),
            (ApplicationStatus.REJECTED, False),
        ],
    )
    def test_is_payable(self, application_status, expected):
        application = RentalApplicationFactory(status=application_status)

        assert application.is_payable is expected


@pytest.mark.django_db
class TestRentalAgreement:
    def test_end_sets_timestamp(self):
        agreement = RentalAgreementFactory()

        agreement.end()

        assert agreement.status == AgreementStatus.ENDED
        assert agreement.ended_at is not None

    def test_cannot_end_twice(self):
        agreement = RentalAgreementFactory(status=AgreementStatus.ENDED)

        with pytest.raises(TransitionNotAllowed):
            agreement.end()


@pytest.mark.django_db
class TestEmailVerification:
    def test_not_expired_within_ttl(self):
        verification = EmailVerificationFactory()

        assert verification.is_expired is False

    def test_expired_after_ttl(self):
        verification = EmailVerificationFactory()

        with freeze_time(timezone.now() + timedelta(minutes=16)):
            assert verification.is_expired is True
