"""
Django admin configuration for distribution ledger rows.

Distribution rows are the manual payout queue: operators filter on
transfer_failed / manual_processing_required, pay the recipient outside
the platform and reconcile. Amounts and recipients are read-only.
"""

from django.contrib import admin

from .models import DistributionRecord


class DistributionRecordInline(admin.TabularInline):
    model = DistributionRecord
    extra = 0
    can_delete = False
    fields = [
        "recipient_type",
        "recipient",
        "amount_cents",
        "percentage",
        "status",
        "processor_transfer_id",
        "transfer_error_code",
    ]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(DistributionRecord)
class DistributionRecordAdmin(admin.ModelAdmin):
    """
    Admin configuration for DistributionRecord.

    Rows cannot be added or deleted here; they are created with their
    payment record and moved only by settlement.
    """

    list_display = [
        "id",
        "payment_record",
        "recipient_type",
        "recipient",
        "amount_display",
        "status",
        "transfer_error_code",
        "transfer_attempted_at",
    ]
    list_filter = ["status", "recipient_type", "transfer_error_code"]
    search_fields = [
        "id",
        "processor_transfer_id",
        "payment_record__processor_intent_id",
        "recipient__email",
    ]
    readonly_fields = [
        "id",
        "payment_record",
        "recipient_type",
        "recipient",
        "amount_cents",
        "percentage",
        "processor_transfer_id",
        "transferred_at",
        "transfer_amount_cents",
        "transfer_currency",
        "transfer_attempted_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            "Share",
            {
                "fields": (
                    "id",
                    "payment_record",
                    "recipient_type",
                    "recipient",
                    "amount_cents",
                    "percentage",
                    "status",
                ),
            },
        ),
        (
            "Transfer",
            {
                "fields": (
                    "processor_transfer_id",
                    "transfer_amount_cents",
                    "transfer_currency",
                    "transferred_at",
                    "transfer_attempted_at",
                ),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("transfer_error_code", "transfer_error"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def amount_display(self, obj: DistributionRecord) -> str:
        """Display the amount formatted as currency."""
        return f"${obj.amount_cents / 100:.2f}"

    amount_display.short_description = "Amount"

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
