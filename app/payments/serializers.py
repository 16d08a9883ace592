"""
DRF serializers for payments app.

The HTTP boundary speaks decimal dollar amounts; services work in integer
cents. Request serializers convert on the way in (``to_cents``) and the
views convert on the way out (``from_cents``).

Usage:
    serializer = CreateIntentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    serializer.validated_data["amount_cents"]
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.exceptions import InvalidAmountError
from payments.fees import to_cents
from payments.state_machines import PaymentType

MIN_AMOUNT = Decimal("0.01")


def _cents(value: Decimal) -> int:
    try:
        return to_cents(value)
    except InvalidAmountError as e:
        raise serializers.ValidationError(e.message) from e


class LineItemSerializer(serializers.Serializer):
    """One billable part of the checkout."""

    type = serializers.ChoiceField(choices=PaymentType.choices)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT)


class CreateIntentSerializer(serializers.Serializer):
    """
    Request body for creating a payment intent.

    Adds ``amount_cents`` and ``line_items_cents`` to validated_data.
    """

    application_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT)
    line_items = LineItemSerializer(many=True, allow_empty=False)
    verification_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        attrs["amount_cents"] = _cents(attrs["amount"])
        attrs["line_items_cents"] = [
            (item["type"], _cents(item["amount"])) for item in attrs["line_items"]
        ]
        total = sum(cents for _, cents in attrs["line_items_cents"])
        if total != attrs["amount_cents"]:
            raise serializers.ValidationError(
                {"line_items": ["Line item amounts must add up to the amount."]}
            )
        return attrs


class PaymentBreakdownSerializer(serializers.Serializer):
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    platform_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    management_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    owner_net = serializers.DecimalField(max_digits=12, decimal_places=2)


class OwnerInfoSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()


class IntentCreatedSerializer(serializers.Serializer):
    """Response after a payment intent was created."""

    client_secret = serializers.CharField(allow_null=True)
    payment_intent_id = serializers.CharField()
    email_verified = serializers.BooleanField()
    owner_info = OwnerInfoSerializer()
    payment_breakdown = PaymentBreakdownSerializer()
    warnings = serializers.ListField(child=serializers.CharField())


class ConfirmPaymentSerializer(serializers.Serializer):
    """Request body for confirming a completed payment."""

    application_id = serializers.UUIDField()
    payment_intent_id = serializers.RegexField(r"^pi_[A-Za-z0-9_]+$", max_length=255)


class TransferResultSerializer(serializers.Serializer):
    distribution_id = serializers.UUIDField()
    recipient_type = serializers.CharField()
    transfer_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()


class BankingStatusSerializer(serializers.Serializer):
    has_connected_account = serializers.BooleanField()
    onboarding_complete = serializers.BooleanField()
    can_receive_transfers = serializers.BooleanField()
    owner_distribution_statuses = serializers.ListField(child=serializers.CharField())


class PaymentConfirmedSerializer(serializers.Serializer):
    """Response after settlement ran for a confirmed payment."""

    success = serializers.BooleanField()
    application_id = serializers.UUIDField()
    property_id = serializers.UUIDField(allow_null=True)
    agreement_id = serializers.UUIDField(allow_null=True)
    already_settled = serializers.BooleanField()
    transfer_result = TransferResultSerializer(many=True, required=False)
    transfer_error = serializers.CharField(required=False)
    banking_status = BankingStatusSerializer(allow_null=True)
    warnings = serializers.ListField(child=serializers.CharField())


class PaymentLineItemSerializer(serializers.Serializer):
    type = serializers.CharField()
    label = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    required = serializers.BooleanField()


class PaymentDetailsSerializer(serializers.Serializer):
    """Amounts due for an approved application."""

    application_id = serializers.UUIDField()
    property_id = serializers.UUIDField()
    property_title = serializers.CharField()
    status = serializers.CharField()
    payment_status = serializers.CharField()
    items = PaymentLineItemSerializer(many=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class OnboardingLinkSerializer(serializers.Serializer):
    account_id = serializers.CharField()
    onboarding_url = serializers.URLField(allow_null=True)
    already_onboarded = serializers.BooleanField()


class AccountStatusSerializer(serializers.Serializer):
    has_account = serializers.BooleanField()
    account_id = serializers.CharField(required=False)
    onboarding_complete = serializers.BooleanField()
    can_receive_transfers = serializers.BooleanField()
    charges_enabled = serializers.BooleanField(required=False)
    payouts_enabled = serializers.BooleanField(required=False)
    details_submitted = serializers.BooleanField(required=False)
    requirements = serializers.DictField(required=False)
