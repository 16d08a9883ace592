"""
Django admin configuration for rental models.

Status fields are FSM-protected, so they are read-only here; state
changes go through the services.
"""

from django.contrib import admin

from rentals.models import EmailVerification, Property, RentalAgreement, RentalApplication


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "status", "price_cents", "created_at")
    list_filter = ("status",)
    search_fields = ("title", "location", "owner__email")
    raw_id_fields = ("owner", "management_company")
    readonly_fields = ("status", "created_at", "updated_at")


@admin.register(RentalApplication)
class RentalApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "rental_property", "status", "payment_status", "created_at")
    list_filter = ("status", "payment_status")
    search_fields = ("id", "tenant__email", "rental_property__title")
    raw_id_fields = ("tenant", "rental_property")
    readonly_fields = ("status", "payment_status", "created_at", "updated_at")


@admin.register(RentalAgreement)
class RentalAgreementAdmin(admin.ModelAdmin):
    list_display = ("id", "rental_property", "tenant", "status", "lease_start_date", "lease_end_date")
    list_filter = ("status",)
    raw_id_fields = ("application", "rental_property", "tenant", "owner")
    readonly_fields = ("status", "ended_at", "created_at", "updated_at")


@admin.register(EmailVerification)
class EmailVerificationAdmin(admin.ModelAdmin):
    list_display = ("email", "application", "verified", "attempts", "expires_at")
    list_filter = ("verified",)
    search_fields = ("email",)
    raw_id_fields = ("application",)
    readonly_fields = ("code", "created_at", "updated_at")
