import uuid

import django.db.models.deletion
import django_fsm
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


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("authentication", "0001_initial"),
        ("rentals", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ConnectedAccount",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "stripe_account_id",
                    models.CharField(
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "onboarding_status",
                    models.CharField(
                        choices=[
                            ("not_started", "Not Started"),
                            ("in_progress", "In Progress"),
                            ("complete", "Complete"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="not_started",
                        help_text="Current Stripe Connect onboarding status",
                        max_length=20,
                    ),
                ),
                ("charges_enabled", models.BooleanField(default=False)),
                ("payouts_enabled", models.BooleanField(default=False)),
                ("details_submitted", models.BooleanField(default=False)),
                (
                    "can_receive_transfers",
                    models.BooleanField(
                        default=False,
                        help_text="True when the account's transfers capability is active",
                    ),
                ),
                (
                    "bank_verification_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("verified", "Verified"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "profile",
                    models.OneToOneField(
                        help_text="Profile this connected account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="connected_account",
                        to="authentication.profile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Connected Account",
                "verbose_name_plural": "Connected Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentRecord",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("first_month_rent", "First Month Rent"),
                            ("security_deposit", "Security Deposit"),
                            ("admin_fee", "Administrative Fee"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "processor_intent_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx) shared by the checkout's line items",
                        max_length=255,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Payment state (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("gross_amount_cents", models.PositiveBigIntegerField()),
                ("platform_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("management_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("owner_net_cents", models.PositiveBigIntegerField(default=0)),
                (
                    "platform_fee_percentage",
                    models.DecimalField(decimal_places=2, max_digits=5),
                ),
                (
                    "management_fee_percentage",
                    models.DecimalField(decimal_places=2, max_digits=5),
                ),
                ("currency", models.CharField(default="usd", max_length=3)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "transaction_id",
                    models.CharField(
                        blank=True,
                        help_text="Processor transaction reference (latest charge or intent id)",
                        max_length=255,
                    ),
                ),
                ("email_verified", models.BooleanField(default=False)),
                ("verified_email", models.EmailField(blank=True, max_length=254)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_records",
                        to="rentals.rentalapplication",
                    ),
                ),
                (
                    "email_verification",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_records",
                        to="rentals.emailverification",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Record",
                "verbose_name_plural": "Payment Records",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["application", "status"],
                        name="payments_pa_applica_0e6b52_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            gross_amount_cents=models.F("platform_fee_cents")
                            + models.F("management_fee_cents")
                            + models.F("owner_net_cents")
                        ),
                        name="payment_record_parts_sum_to_gross",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DistributionRecord",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "recipient_type",
                    models.CharField(
                        choices=[
                            ("platform", "Platform"),
                            ("management", "Management Company"),
                            ("owner", "Owner"),
                        ],
                        max_length=20,
                    ),
                ),
                ("amount_cents", models.PositiveBigIntegerField()),
                ("percentage", models.DecimalField(decimal_places=2, max_digits=5)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("transferred", "Transferred"),
                            ("transfer_failed", "Transfer Failed"),
                            ("manual_processing_required", "Manual Processing Required"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=32,
                    ),
                ),
                ("processor_transfer_id", models.CharField(blank=True, max_length=255)),
                ("transferred_at", models.DateTimeField(blank=True, null=True)),
                (
                    "transfer_amount_cents",
                    models.PositiveBigIntegerField(blank=True, null=True),
                ),
                ("transfer_currency", models.CharField(blank=True, max_length=3)),
                ("transfer_error", models.TextField(blank=True)),
                ("transfer_error_code", models.CharField(blank=True, max_length=64)),
                (
                    "transfer_attempted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the row was claimed for a transfer attempt",
                        null=True,
                    ),
                ),
                (
                    "payment_record",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="distributions",
                        to="payments.paymentrecord",
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        blank=True,
                        help_text="Receiving user; empty for the platform share",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="distributions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Distribution Record",
                "verbose_name_plural": "Distribution Records",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "transfer_attempted_at"],
                        name="payments_di_status_2f4d8a_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("payment_record", "recipient_type"),
                        name="unique_distribution_per_recipient_type",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Full webhook payload from Stripe (JSON)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current processing status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When event was successfully processed",
                        null=True,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Error message if processing failed",
                        null=True,
                    ),
                ),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Number of processing attempts",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "retry_count"],
                        name="payments_we_status_7a1c3e_idx",
                    )
                ],
            },
        ),
    ]
