"""
API views for rentals.

Provides:
- SendEmailVerificationView: Email a payment verification code
- VerifyEmailCodeView: Check a payment verification code
- EndAgreementView: End an active rental agreement (owner only)
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from rentals.serializers import (
    EmailVerificationSentSerializer,
    EmailVerificationSerializer,
    RentalAgreementSerializer,
    SendEmailVerificationSerializer,
    VerifyEmailCodeSerializer,
)
from rentals.services import EmailVerificationService, RentalStateService

END_AGREEMENT_ERROR_STATUS = {
    "AGREEMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
}


class SendEmailVerificationView(APIView):
    """
    Send a payment email verification code.

    POST /api/v1/rentals/applications/{application_id}/email-verification/

    Response:
        200 OK: Code sent, returns verification id and expiry
        400 Bad Request: Invalid email
        403 Forbidden: Caller is not the applicant
        404 Not Found: Unknown application
        502 Bad Gateway: Email could not be sent
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_payment_email_verification",
        summary="Send payment email verification code",
        request=SendEmailVerificationSerializer,
        responses={
            200: EmailVerificationSentSerializer,
            400: OpenApiResponse(description="Invalid email"),
            403: OpenApiResponse(description="Caller is not the applicant"),
            404: OpenApiResponse(description="Application not found"),
            502: OpenApiResponse(description="Email could not be sent"),
        },
        tags=["Rentals - Email Verification"],
    )
    def post(self, request, application_id):
        serializer = SendEmailVerificationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            verification = EmailVerificationService.send_code(
                application_id,
                serializer.validated_data["email"],
                request.user,
            )
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        output = EmailVerificationSentSerializer(
            {
                "verification_id": verification.id,
                "expires_in": settings.EMAIL_VERIFICATION_TTL_MINUTES * 60,
            }
        )
        return Response(output.data, status=status.HTTP_200_OK)


class VerifyEmailCodeView(APIView):
    """
    Check a payment email verification code.

    POST /api/v1/rentals/email-verification/verify/

    Response:
        200 OK: Email verified (or already verified)
        400 Bad Request: Wrong or expired code
        404 Not Found: Unknown verification
        429 Too Many Requests: Attempt limit reached
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="verify_payment_email_code",
        summary="Verify payment email code",
        request=VerifyEmailCodeSerializer,
        responses={
            200: EmailVerificationSerializer,
            400: OpenApiResponse(description="Wrong or expired code"),
            404: OpenApiResponse(description="Verification not found"),
            429: OpenApiResponse(description="Too many attempts"),
        },
        tags=["Rentals - Email Verification"],
    )
    def post(self, request):
        serializer = VerifyEmailCodeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            verification = EmailVerificationService.verify_code(
                serializer.validated_data["verification_id"],
                serializer.validated_data["code"],
            )
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        return Response(EmailVerificationSerializer(verification).data)


class EndAgreementView(APIView):
    """
    End an active rental agreement and return the property to available.

    POST /api/v1/rentals/agreements/{agreement_id}/end/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="end_rental_agreement",
        summary="End rental agreement",
        request=None,
        responses={
            200: RentalAgreementSerializer,
            403: OpenApiResponse(description="Caller is not the owner"),
            404: OpenApiResponse(description="Agreement not found"),
            409: OpenApiResponse(description="Agreement already ended"),
        },
        tags=["Rentals - Agreements"],
    )
    def post(self, request, agreement_id):
        result = RentalStateService.end_agreement(agreement_id, request.user)
        if not result.success:
            return Response(
                result.to_response(),
                status=END_AGREEMENT_ERROR_STATUS.get(
                    result.error_code, status.HTTP_400_BAD_REQUEST
                ),
            )
        return Response(RentalAgreementSerializer(result.data).data)
