"""
DRF views for payments app.

Endpoints:
    POST /api/v1/payments/create-intent/ - Create a PaymentIntent for an application
    POST /api/v1/payments/confirm/ - Settle a payment the client reports as succeeded
    GET /api/v1/payments/details/{application_id}/ - Amounts due for an application
    POST /api/v1/payments/connect/account/ - Start Stripe Connect onboarding
    GET /api/v1/payments/connect/account-status/ - Connected account status

The Stripe webhook endpoint lives in payments.webhooks.views.

Security:
    - All endpoints here require authentication
    - Only the applicant can create, confirm or view payments for an application
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from payments.fees import from_cents
from payments.serializers import (
    AccountStatusSerializer,
    ConfirmPaymentSerializer,
    CreateIntentSerializer,
    IntentCreatedSerializer,
    OnboardingLinkSerializer,
    PaymentConfirmedSerializer,
    PaymentDetailsSerializer,
)
from payments.services import (
    ConnectOnboardingService,
    CreateIntentParams,
    LineItem,
    PaymentIntentOrchestrator,
    SettlementReconciler,
)
from payments.state_machines import PaymentType

logger = logging.getLogger(__name__)


class CreateIntentView(APIView):
    """
    Create a Stripe PaymentIntent for an approved application.

    POST /api/v1/payments/create-intent/

    Request body:
        {
            "application_id": "uuid",
            "amount": "2100.00",
            "line_items": [{"type": "first_month_rent", "amount": "1000.00"}, ...],
            "verification_id": "uuid"  (optional)
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_payment_intent",
        summary="Create payment intent",
        request=CreateIntentSerializer,
        responses={
            201: IntentCreatedSerializer,
            400: OpenApiResponse(
                description="Invalid amount, line items, verification or application state"
            ),
            403: OpenApiResponse(description="Caller is not the applicant"),
            404: OpenApiResponse(description="Application not found"),
            502: OpenApiResponse(description="Stripe error"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = CreateIntentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            result = PaymentIntentOrchestrator().create_intent(
                CreateIntentParams(
                    application_id=data["application_id"],
                    amount_cents=data["amount_cents"],
                    line_items=[
                        LineItem(payment_type, amount_cents)
                        for payment_type, amount_cents in data["line_items_cents"]
                    ],
                    user=request.user,
                    verification_id=data.get("verification_id"),
                )
            )
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        breakdown = result.breakdown
        return Response(
            {
                "client_secret": result.client_secret,
                "payment_intent_id": result.payment_intent_id,
                "email_verified": result.email_verified,
                "owner_info": {
                    "id": str(result.owner.pk),
                    "name": result.owner.get_full_name(),
                },
                "payment_breakdown": {
                    "total": from_cents(breakdown.gross_cents),
                    "platform_fee": from_cents(breakdown.platform_fee_cents),
                    "management_fee": from_cents(breakdown.management_fee_cents),
                    "owner_net": from_cents(breakdown.owner_net_cents),
                },
                "warnings": result.warnings,
            },
            status=status.HTTP_201_CREATED,
        )


class ConfirmPaymentView(APIView):
    """
    Settle a payment after the client saw it succeed.

    POST /api/v1/payments/confirm/

    Safe to call after the webhook already settled the payment; the
    response then reports already_settled and no transfer is repeated.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="confirm_payment",
        summary="Confirm payment",
        request=ConfirmPaymentSerializer,
        responses={
            200: PaymentConfirmedSerializer,
            403: OpenApiResponse(description="Caller is not the applicant"),
            404: OpenApiResponse(description="Application or payment records not found"),
            409: OpenApiResponse(description="Intent not succeeded or not for this application"),
            502: OpenApiResponse(description="Stripe error"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = ConfirmPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            outcome = SettlementReconciler().confirm_payment(
                serializer.validated_data["application_id"],
                serializer.validated_data["payment_intent_id"],
                user=request.user,
            )
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        body = {
            "success": True,
            "application_id": str(outcome.application_id),
            "property_id": str(outcome.property_id) if outcome.property_id else None,
            "agreement_id": str(outcome.agreement_id) if outcome.agreement_id else None,
            "already_settled": outcome.already_settled,
            "banking_status": outcome.banking_status or None,
            "warnings": outcome.warnings,
        }
        if outcome.transfer_error:
            body["transfer_error"] = outcome.transfer_error
        else:
            body["transfer_result"] = [
                {
                    "distribution_id": transfer["distribution_id"],
                    "recipient_type": transfer["recipient_type"],
                    "transfer_id": transfer["transfer_id"],
                    "amount": from_cents(transfer["amount_cents"]),
                    "currency": transfer["currency"],
                }
                for transfer in outcome.transfer_result
            ]
        return Response(body, status=status.HTTP_200_OK)


class PaymentDetailsView(APIView):
    """
    Amounts due for an approved application.

    GET /api/v1/payments/details/{application_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_payment_details",
        summary="Get payment details",
        responses={
            200: PaymentDetailsSerializer,
            400: OpenApiResponse(description="Application is not approved"),
            403: OpenApiResponse(description="Caller is not the applicant"),
            404: OpenApiResponse(description="Application not found"),
        },
        tags=["Payments"],
    )
    def get(self, request, application_id):
        try:
            details = PaymentIntentOrchestrator.payment_details(application_id, request.user)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        application = details.application
        output = PaymentDetailsSerializer(
            {
                "application_id": application.id,
                "property_id": application.rental_property_id,
                "property_title": application.rental_property.title,
                "status": application.status,
                "payment_status": application.payment_status,
                "items": [
                    {
                        "type": item.payment_type,
                        "label": PaymentType(item.payment_type).label,
                        "amount": from_cents(item.amount_cents),
                        "required": True,
                    }
                    for item in details.line_items
                ],
                "total": from_cents(details.total_cents),
            }
        )
        return Response(output.data)


class ConnectAccountView(APIView):
    """
    Start (or resume) Stripe Connect onboarding for the calling owner.

    POST /api/v1/payments/connect/account/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_connect_account",
        summary="Create connected account",
        request=None,
        responses={
            200: OnboardingLinkSerializer,
            403: OpenApiResponse(description="Caller cannot receive payouts"),
            502: OpenApiResponse(description="Stripe error"),
        },
        tags=["Payments - Connect"],
    )
    def post(self, request):
        try:
            link = ConnectOnboardingService().start_onboarding(request.user)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        output = OnboardingLinkSerializer(
            {
                "account_id": link.account_id,
                "onboarding_url": link.onboarding_url,
                "already_onboarded": link.already_onboarded,
            }
        )
        return Response(output.data)


class AccountStatusView(APIView):
    """
    Connected account status, refreshed from Stripe.

    GET /api/v1/payments/connect/account-status/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_connect_account_status",
        summary="Get connected account status",
        responses={
            200: AccountStatusSerializer,
            502: OpenApiResponse(description="Stripe error"),
        },
        tags=["Payments - Connect"],
    )
    def get(self, request):
        try:
            account_status = ConnectOnboardingService().account_status(request.user)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        return Response(AccountStatusSerializer(account_status).data)
