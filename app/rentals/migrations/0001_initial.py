import uuid

import django.core.validators
import django.db.models.deletion
import django_fsm
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier (UUID v4)",
            primary_key=True,
            serialize=False,
        ),
    )


PERCENT_VALIDATORS = [
    django.core.validators.MinValueValidator(Decimal("0.00")),
    django.core.validators.MaxValueValidator(Decimal("100.00")),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("title", models.CharField(max_length=200)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "price_cents",
                    models.PositiveBigIntegerField(
                        help_text="Monthly rent in smallest currency unit (cents)"
                    ),
                ),
                (
                    "security_deposit_cents",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Security deposit in cents (defaults to one month's rent)",
                        null=True,
                    ),
                ),
                (
                    "platform_fee_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Platform fee percentage (blank uses the platform default)",
                        max_digits=5,
                        null=True,
                        validators=PERCENT_VALIDATORS,
                    ),
                ),
                (
                    "management_fee_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Management fee percentage (blank uses the platform default)",
                        max_digits=5,
                        null=True,
                        validators=PERCENT_VALIDATORS,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("available", "Available"),
                            ("pending", "Pending"),
                            ("rented", "Rented"),
                            ("maintenance", "Maintenance"),
                        ],
                        db_index=True,
                        default="available",
                        help_text="Listing state (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="Owner receiving rent payouts",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "management_company",
                    models.ForeignKey(
                        blank=True,
                        help_text="Management company receiving the management fee",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="managed_properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Property",
                "verbose_name_plural": "Properties",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["owner", "status"], name="rentals_pro_owner_i_5b1f0e_idx"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RentalApplication",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("message", models.TextField(blank=True)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("payment_pending", "Payment Pending"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Application state (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("not_required", "Not Required"),
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                        ],
                        default="not_required",
                        help_text="Payment progress for this application",
                        max_length=20,
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rental_applications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "rental_property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="applications",
                        to="rentals.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "Rental Application",
                "verbose_name_plural": "Rental Applications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["rental_property", "status"],
                        name="rentals_ren_rental__8c2d41_idx",
                    ),
                    models.Index(
                        fields=["tenant", "status"], name="rentals_ren_tenant__3e9a72_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RentalAgreement",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("lease_start_date", models.DateField()),
                ("lease_end_date", models.DateField()),
                ("monthly_rent_cents", models.PositiveBigIntegerField()),
                ("security_deposit_cents", models.PositiveBigIntegerField()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[("active", "Active"), ("ended", "Ended")],
                        db_index=True,
                        default="active",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                (
                    "application",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="agreement",
                        to="rentals.rentalapplication",
                    ),
                ),
                (
                    "rental_property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="agreements",
                        to="rentals.property",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tenant_agreements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="owner_agreements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Rental Agreement",
                "verbose_name_plural": "Rental Agreements",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="EmailVerification",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("email", models.EmailField(max_length=254)),
                ("code", models.CharField(max_length=6)),
                ("expires_at", models.DateTimeField()),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("verified", models.BooleanField(default=False)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="email_verifications",
                        to="rentals.rentalapplication",
                    ),
                ),
            ],
            options={
                "verbose_name": "Email Verification",
                "verbose_name_plural": "Email Verifications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["application", "verified"],
                        name="rentals_ema_applica_d41c07_idx",
                    )
                ],
            },
        ),
    ]
