"""
Rental services: application/property state changes and email verification.

Services:
    RentalStateService: Status changes triggered by payments and owners
    EmailVerificationService: Send and check payer email codes

Settlement-driven changes (complete, revert, rent, reject competitors) are
written as conditional updates ("set X only if currently Y") rather than
load-modify-save. The webhook and the client confirm call can settle the
same payment concurrently, and the row count returned by the update tells
each caller whether it was the one that performed the transition.

Usage:
    from rentals.services import RentalStateService

    changed = RentalStateService.complete_application(application.id)
    agreement, created = RentalStateService.create_agreement(application)
"""

from __future__ import annotations

import secrets
import smtplib
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.mail import send_mail
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
)
from core.services import BaseService, ServiceResult
from rentals.models import EmailVerification, Property, RentalAgreement, RentalApplication
from rentals.states import (
    COMPETING_APPLICATION_STATUSES,
    PAYABLE_APPLICATION_STATUSES,
    AgreementStatus,
    ApplicationPaymentStatus,
    ApplicationStatus,
    PropertyStatus,
)

if TYPE_CHECKING:
    import uuid


class RentalStateService(BaseService):
    """
    Application, property and agreement transitions.

    Every settlement-path method is safe to call repeatedly: the second
    call observes the already-applied state and reports that nothing
    changed.
    """

    @classmethod
    def get_application(cls, application_id: uuid.UUID) -> RentalApplication:
        """
        Load an application with its property, owner and tenant.

        Raises:
            NotFoundError: If the application does not exist
        """
        application = (
            RentalApplication.objects.select_related(
                "rental_property",
                "rental_property__owner",
                "rental_property__owner__profile",
                "rental_property__management_company",
                "tenant",
            )
            .filter(id=application_id)
            .first()
        )
        if application is None:
            raise NotFoundError(
                "Application not found",
                error_code="APPLICATION_NOT_FOUND",
                details={"application_id": str(application_id)},
            )
        return application

    @classmethod
    def start_payment(cls, application_id: uuid.UUID) -> bool:
        """
        Move an application to payment_pending with payment_status pending.

        Returns:
            True if the row was updated, False if it is no longer payable
        """
        updated = RentalApplication.objects.filter(
            id=application_id,
            status__in=PAYABLE_APPLICATION_STATUSES,
        ).update(
            status=ApplicationStatus.PAYMENT_PENDING,
            payment_status=ApplicationPaymentStatus.PENDING,
            updated_at=timezone.now(),
        )
        return updated == 1

    @classmethod
    def complete_application(cls, application_id: uuid.UUID) -> bool:
        """
        Mark the application completed after its payment settled.

        Returns:
            True if this call performed the transition, False if the
            application was already completed

        Raises:
            NotFoundError: If the application does not exist
            ConflictError: If the application is neither payable nor completed
        """
        updated = RentalApplication.objects.filter(
            id=application_id,
            status__in=PAYABLE_APPLICATION_STATUSES,
        ).update(
            status=ApplicationStatus.COMPLETED,
            payment_status=ApplicationPaymentStatus.COMPLETED,
            updated_at=timezone.now(),
        )
        if updated:
            cls.get_logger().info(
                "Application completed",
                extra={"application_id": str(application_id)},
            )
            return True

        current = (
            RentalApplication.objects.filter(id=application_id)
            .values_list("status", flat=True)
            .first()
        )
        if current is None:
            raise NotFoundError(
                "Application not found",
                error_code="APPLICATION_NOT_FOUND",
                details={"application_id": str(application_id)},
            )
        if current == ApplicationStatus.COMPLETED:
            return False
        raise ConflictError(
            f"Cannot complete application in '{current}' status",
            error_code="INVALID_STATE_TRANSITION",
            details={"application_id": str(application_id), "status": current},
        )

    @classmethod
    def revert_application_payment(cls, application_id: uuid.UUID) -> bool:
        """
        Return an application to approved/not_required after a failed payment.

        Only a payment_pending application is reverted; a completed one
        is never touched by a late failure event.

        Returns:
            True if the application was reverted
        """
        updated = RentalApplication.objects.filter(
            id=application_id,
            status=ApplicationStatus.PAYMENT_PENDING,
        ).update(
            status=ApplicationStatus.APPROVED,
            payment_status=ApplicationPaymentStatus.NOT_REQUIRED,
            updated_at=timezone.now(),
        )
        if updated:
            cls.get_logger().info(
                "Application payment reverted",
                extra={"application_id": str(application_id)},
            )
        return updated == 1

    @classmethod
    def mark_property_rented(
        cls, property_id: uuid.UUID, application_id: uuid.UUID | None = None
    ) -> bool:
        """
        Transition a property to rented.

        Returns:
            True if this call performed the transition, False if the
            property was already rented for this application

        Raises:
            ConflictError: If the property is in a state that cannot be rented,
                or is already rented under another application's agreement
        """
        updated = Property.objects.filter(
            id=property_id,
            status__in=[PropertyStatus.AVAILABLE, PropertyStatus.PENDING],
        ).update(status=PropertyStatus.RENTED, updated_at=timezone.now())
        if updated:
            cls.get_logger().info(
                "Property marked rented",
                extra={"property_id": str(property_id)},
            )
            return True

        current = (
            Property.objects.filter(id=property_id)
            .values_list("status", flat=True)
            .first()
        )
        if current == PropertyStatus.RENTED:
            if application_id is not None:
                cls._ensure_not_rented_by_other(property_id, application_id)
            return False
        raise ConflictError(
            f"Cannot rent property in '{current}' status",
            error_code="INVALID_STATE_TRANSITION",
            details={"property_id": str(property_id), "status": current},
        )

    @classmethod
    def _ensure_not_rented_by_other(
        cls, property_id: uuid.UUID, application_id: uuid.UUID
    ) -> None:
        """Raise ConflictError if another application holds an active agreement."""
        other = (
            RentalAgreement.objects.filter(
                rental_property_id=property_id, status=AgreementStatus.ACTIVE
            )
            .exclude(application_id=application_id)
            .values_list("application_id", flat=True)
            .first()
        )
        if other is not None:
            raise ConflictError(
                "Property is already rented under another application",
                error_code="PROPERTY_ALREADY_RENTED",
                details={
                    "property_id": str(property_id),
                    "application_id": str(application_id),
                    "rented_by_application_id": str(other),
                },
            )

    @classmethod
    def reject_competing_applications(cls, application: RentalApplication) -> int:
        """
        Reject every other pending/approved application for the same property.

        Returns:
            Number of applications rejected
        """
        rejected = (
            RentalApplication.objects.filter(
                rental_property_id=application.rental_property_id,
                status__in=COMPETING_APPLICATION_STATUSES,
            )
            .exclude(id=application.id)
            .update(status=ApplicationStatus.REJECTED, updated_at=timezone.now())
        )
        if rejected:
            cls.get_logger().info(
                "Rejected competing applications",
                extra={
                    "application_id": str(application.id),
                    "property_id": str(application.rental_property_id),
                    "rejected_count": rejected,
                },
            )
        return rejected

    @classmethod
    def create_agreement(
        cls, application: RentalApplication
    ) -> tuple[RentalAgreement, bool]:
        """
        Create the rental agreement for a settled application, at most once.

        Lease runs from today for LEASE_TERM_DAYS; rent and deposit are
        copied from the property now.

        Returns:
            Tuple of (agreement, created)

        Raises:
            ConflictError: If the property already has an active agreement
                for another application
        """
        existing = RentalAgreement.objects.filter(application=application).first()
        if existing is not None:
            return existing, False
        cls._ensure_not_rented_by_other(application.rental_property_id, application.id)

        rental_property = application.rental_property
        today = timezone.localdate()
        try:
            with transaction.atomic():
                agreement = RentalAgreement.objects.create(
                    application=application,
                    rental_property=rental_property,
                    tenant_id=application.tenant_id,
                    owner_id=rental_property.owner_id,
                    lease_start_date=today,
                    lease_end_date=today + timedelta(days=settings.LEASE_TERM_DAYS),
                    monthly_rent_cents=rental_property.price_cents,
                    security_deposit_cents=rental_property.effective_security_deposit_cents,
                )
        except IntegrityError:
            # A concurrent settlement inserted it first
            return RentalAgreement.objects.get(application=application), False

        cls.get_logger().info(
            "Rental agreement created",
            extra={
                "agreement_id": str(agreement.id),
                "application_id": str(application.id),
            },
        )
        return agreement, True

    @classmethod
    def end_agreement(cls, agreement_id: uuid.UUID, user) -> ServiceResult[RentalAgreement]:
        """
        End an active agreement and put its property back on the market.

        Only the property owner or staff may end an agreement.
        """
        with cls.atomic():
            agreement = (
                RentalAgreement.objects.select_for_update()
                .select_related("rental_property")
                .filter(id=agreement_id)
                .first()
            )
            if agreement is None:
                return ServiceResult.failure(
                    "Agreement not found", error_code="AGREEMENT_NOT_FOUND"
                )
            if agreement.owner_id != user.id and not user.is_staff:
                return ServiceResult.failure(
                    "Only the property owner can end this agreement",
                    error_code="PERMISSION_DENIED",
                )
            if agreement.status != AgreementStatus.ACTIVE:
                return ServiceResult.failure(
                    f"Agreement is already {agreement.status}",
                    error_code="INVALID_STATE_TRANSITION",
                )

            agreement.end()
            agreement.save()

            rental_property = Property.objects.select_for_update().get(
                id=agreement.rental_property_id
            )
            if rental_property.status == PropertyStatus.RENTED:
                rental_property.mark_available()
                rental_property.save(update_fields=["status", "updated_at"])

        cls.get_logger().info(
            "Rental agreement ended",
            extra={
                "agreement_id": str(agreement.id),
                "property_id": str(agreement.rental_property_id),
            },
        )
        return ServiceResult.success(agreement)


class EmailVerificationService(BaseService):
    """
    Payer email verification for the payment flow.

    A tenant requests a code for an application, receives it by email and
    submits it back. The resulting verification id may then be passed to
    payment intent creation.
    """

    @classmethod
    def send_code(
        cls, application_id: uuid.UUID, email: str, user
    ) -> EmailVerification:
        """
        Create a fresh code for the application and email it.

        Older unverified codes for the application are discarded. If the
        email cannot be sent the new code is removed again.

        Raises:
            NotFoundError: If the application does not exist
            PermissionDeniedError: If the user is not the applicant
            ExternalServiceError: If sending the email failed
        """
        application = RentalApplication.objects.filter(id=application_id).first()
        if application is None:
            raise NotFoundError(
                "Application not found", error_code="APPLICATION_NOT_FOUND"
            )
        if application.tenant_id != user.id:
            raise PermissionDeniedError(
                "Only the applicant can verify an email for this application",
                error_code="NOT_APPLICANT",
            )

        EmailVerification.objects.filter(
            application=application, verified=False
        ).delete()

        ttl_minutes = settings.EMAIL_VERIFICATION_TTL_MINUTES
        verification = EmailVerification.objects.create(
            application=application,
            email=email,
            code=f"{secrets.randbelow(1_000_000):06d}",
            expires_at=timezone.now() + timedelta(minutes=ttl_minutes),
        )

        try:
            send_mail(
                subject="Your payment verification code",
                message=(
                    f"Your verification code is {verification.code}. "
                    f"It expires in {ttl_minutes} minutes."
                ),
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[email],
            )
        except (smtplib.SMTPException, OSError) as exc:
            cls.get_logger().error(
                "Failed to send verification email",
                extra={"application_id": str(application_id), "error": str(exc)},
            )
            verification.delete()
            raise ExternalServiceError(
                "Failed to send verification email",
                error_code="EMAIL_SEND_FAILED",
            ) from exc

        cls.get_logger().info(
            "Verification code sent",
            extra={
                "application_id": str(application_id),
                "verification_id": str(verification.id),
            },
        )
        return verification

    @classmethod
    def verify_code(cls, verification_id: uuid.UUID, code: str) -> EmailVerification:
        """
        Check a submitted code.

        Raises:
            NotFoundError: Unknown verification
            ValidationError: Expired code or wrong code
            RateLimitError: Too many attempts
        """
        verification = EmailVerification.objects.filter(id=verification_id).first()
        if verification is None:
            raise NotFoundError(
                "Verification not found", error_code="VERIFICATION_NOT_FOUND"
            )
        if verification.verified:
            return verification
        if verification.is_expired:
            raise ValidationError(
                "Verification code has expired", error_code="VERIFICATION_EXPIRED"
            )

        max_attempts = settings.EMAIL_VERIFICATION_MAX_ATTEMPTS
        if verification.attempts >= max_attempts:
            raise RateLimitError(
                "Too many verification attempts",
                error_code="TOO_MANY_ATTEMPTS",
                details={"max_attempts": max_attempts},
            )

        EmailVerification.objects.filter(id=verification.id).update(
            attempts=F("attempts") + 1
        )
        verification.refresh_from_db(fields=["attempts"])

        if not secrets.compare_digest(verification.code, code):
            raise ValidationError(
                "Invalid verification code",
                error_code="INVALID_CODE",
                details={"attempts_remaining": max(max_attempts - verification.attempts, 0)},
            )

        verification.verified = True
        verification.verified_at = timezone.now()
        verification.save(update_fields=["verified", "verified_at", "updated_at"])

        cls.get_logger().info(
            "Email verified",
            extra={"verification_id": str(verification.id)},
        )
        return verification
