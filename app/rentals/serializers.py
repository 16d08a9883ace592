"""
DRF serializers for the rentals app.

Request serializers validate input for the email verification and
agreement endpoints; response serializers shape model output.
"""

from __future__ import annotations

from rest_framework import serializers

from rentals.models import EmailVerification, RentalAgreement


class SendEmailVerificationSerializer(serializers.Serializer):
    """Request body for sending a payment email verification code."""

    email = serializers.EmailField()


class EmailVerificationSentSerializer(serializers.Serializer):
    """Response after a code was sent."""

    verification_id = serializers.UUIDField()
    expires_in = serializers.IntegerField(help_text="Seconds until the code expires")


class VerifyEmailCodeSerializer(serializers.Serializer):
    """Request body for checking a verification code."""

    verification_id = serializers.UUIDField()
    code = serializers.RegexField(r"^\d{6}$", max_length=6, min_length=6)


class EmailVerificationSerializer(serializers.ModelSerializer):
    """Verification state returned after a successful check."""

    class Meta:
        model = EmailVerification
        fields = ["id", "application", "email", "verified", "verified_at"]
        read_only_fields = fields


class RentalAgreementSerializer(serializers.ModelSerializer):
    """Rental agreement with money rendered in cents."""

    class Meta:
        model = RentalAgreement
        fields = [
            "id",
            "application",
            "rental_property",
            "tenant",
            "owner",
            "lease_start_date",
            "lease_end_date",
            "monthly_rent_cents",
            "security_deposit_cents",
            "status",
            "ended_at",
        ]
        read_only_fields = fields
