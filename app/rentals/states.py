"""
State enums for rental models.

These are Django TextChoices used by django-fsm fields on the rental models.

State Machines Overview:

RentalApplication States:
    pending → approved → payment_pending → completed
    payment_pending → approved (payment failed, tenant may retry)
    pending/approved → rejected (another applicant won the property)

Property States:
    available/pending → rented (an application settled)
    rented/pending/maintenance → available (agreement ended, back on the market)

RentalAgreement States:
    active → ended
"""

from django.db import models


class ApplicationStatus(models.TextChoices):
    """
    States for the RentalApplication lifecycle.

    Terminal states: COMPLETED, REJECTED

    Payment-related transitions only start from APPROVED or
    PAYMENT_PENDING.
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    PAYMENT_PENDING = "payment_pending", "Payment Pending"
    COMPLETED = "completed", "Completed"
    REJECTED = "rejected", "Rejected"


class ApplicationPaymentStatus(models.TextChoices):
    """
    Payment progress of a RentalApplication.

    Values:
        NOT_REQUIRED: No payment in flight (initial, or reset after a failure)
        PENDING: A payment intent exists and is awaiting the tenant
        COMPLETED: The payment settled
    """

    NOT_REQUIRED = "not_required", "Not Required"
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"


class PropertyStatus(models.TextChoices):
    """
    States for the Property listing.

    A property moves to RENTED exactly once per successful settlement and
    only returns to AVAILABLE when its agreement is ended.
    """

    AVAILABLE = "available", "Available"
    PENDING = "pending", "Pending"
    RENTED = "rented", "Rented"
    MAINTENANCE = "maintenance", "Maintenance"


class AgreementStatus(models.TextChoices):
    """States for a RentalAgreement."""

    ACTIVE = "active", "Active"
    ENDED = "ended", "Ended"


# Statuses from which a payment intent may be created or settled
PAYABLE_APPLICATION_STATUSES = (
    ApplicationStatus.APPROVED,
    ApplicationStatus.PAYMENT_PENDING,
)

# Statuses of competing applications rejected when a property is rented
COMPETING_APPLICATION_STATUSES = (
    ApplicationStatus.PENDING,
    ApplicationStatus.APPROVED,
)
