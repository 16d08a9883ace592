"""
Pytest fixtures for rental tests.
"""

import pytest
from rest_framework.test import APIClient

from rentals.states import ApplicationStatus, PropertyStatus
from rentals.tests.factories import PropertyFactory, RentalApplicationFactory


@pytest.fixture
def rental_property(db):
    """Available property."""
    return PropertyFactory()


@pytest.fixture
def approved_application(db, rental_property):
    """Application approved and awaiting payment."""
    return RentalApplicationFactory(
        rental_property=rental_property, status=ApplicationStatus.APPROVED
    )


@pytest.fixture
def payment_pending_application(db, rental_property):
    return RentalApplicationFactory(
        rental_property=rental_property, status=ApplicationStatus.PAYMENT_PENDING
    )


@pytest.fixture
def rented_property(db):
    return PropertyFactory(status=PropertyStatus.RENTED)


@pytest.fixture
def api_client():
    return APIClient()
