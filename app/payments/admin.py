"""
Payment admin configuration.

Registers payment records, connected accounts and webhook events. The
distribution ledger admin lives in payments.ledger.admin.
"""

from django.contrib import admin

from payments.ledger.admin import DistributionRecordAdmin, DistributionRecordInline
from payments.models import ConnectedAccount, PaymentRecord, WebhookEvent

__all__ = [
    "ConnectedAccountAdmin",
    "DistributionRecordAdmin",
    "PaymentRecordAdmin",
    "WebhookEventAdmin",
]


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentRecord.

    Status is FSM-protected and amounts are fixed at creation, so the
    whole record is read-only.
    """

    list_display = [
        "id",
        "application",
        "payment_type",
        "gross_display",
        "status",
        "processor_intent_id",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "payment_type", "email_verified"]
    search_fields = ["id", "processor_intent_id", "transaction_id", "application__id"]
    readonly_fields = [
        "id",
        "application",
        "payment_type",
        "processor_intent_id",
        "status",
        "gross_amount_cents",
        "platform_fee_cents",
        "management_fee_cents",
        "owner_net_cents",
        "platform_fee_percentage",
        "management_fee_percentage",
        "currency",
        "due_date",
        "paid_at",
        "transaction_id",
        "email_verification",
        "email_verified",
        "verified_email",
        "created_at",
        "updated_at",
    ]
    inlines = [DistributionRecordInline]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "application", "payment_type", "status"),
            },
        ),
        (
            "Amounts",
            {
                "fields": (
                    "gross_amount_cents",
                    "platform_fee_cents",
                    "management_fee_cents",
                    "owner_net_cents",
                    "platform_fee_percentage",
                    "management_fee_percentage",
                    "currency",
                ),
            },
        ),
        (
            "Stripe",
            {
                "fields": ("processor_intent_id", "transaction_id", "due_date", "paid_at"),
            },
        ),
        (
            "Verification",
            {
                "fields": ("email_verification", "email_verified", "verified_email"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def gross_display(self, obj: PaymentRecord) -> str:
        """Display the gross amount formatted as currency."""
        return f"${obj.gross_amount_cents / 100:.2f}"

    gross_display.short_description = "Gross"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for ConnectedAccount.

    Provides visibility into Stripe Connect account status.
    """

    list_display = [
        "id",
        "profile",
        "stripe_account_id",
        "onboarding_status",
        "can_receive_transfers",
        "payouts_enabled",
        "charges_enabled",
        "created_at",
    ]
    list_filter = [
        "onboarding_status",
        "bank_verification_status",
        "can_receive_transfers",
        "payouts_enabled",
    ]
    search_fields = ["id", "stripe_account_id", "profile__user__email"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "profile", "stripe_account_id"),
            },
        ),
        (
            "Status",
            {
                "fields": (
                    "onboarding_status",
                    "bank_verification_status",
                    "details_submitted",
                    "charges_enabled",
                    "payouts_enabled",
                    "can_receive_transfers",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False
