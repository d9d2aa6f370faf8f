import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models

import payments.models.transaction


def base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="When this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="When this record was last modified",
            ),
        ),
    ]


PROVIDER_CHOICES = [("cashfree", "Cashfree"), ("phonepe", "PhonePe")]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                *base_fields(),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Free-form key-value metadata",
                    ),
                ),
                ("provider", models.CharField(choices=PROVIDER_CHOICES, max_length=20)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("initiated", "Initiated"),
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="initiated",
                        help_text="Current state of the transaction (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "attempt_number",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Sequence number of this transaction within its order",
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("amount_minor", models.PositiveIntegerField(help_text="Amount in paise")),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "merchant_transaction_id",
                    models.CharField(
                        default=payments.models.transaction.generate_merchant_transaction_id,
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("provider_order_id", models.CharField(blank=True, db_index=True, max_length=128)),
                ("provider_session_token", models.TextField(blank=True)),
                ("provider_payment_id", models.CharField(blank=True, max_length=128)),
                ("provider_transaction_id", models.CharField(blank=True, max_length=128)),
                ("provider_reference_id", models.CharField(blank=True, max_length=128)),
                ("payment_mode", models.CharField(blank=True, max_length=50)),
                ("upi_payer_handle", models.CharField(blank=True, max_length=255)),
                ("upi_utr", models.CharField(blank=True, max_length=64)),
                ("upi_instrument_label", models.CharField(blank=True, max_length=100)),
                ("redirect_url", models.URLField(blank=True, max_length=1024)),
                ("receipt_url", models.URLField(blank=True, max_length=1024)),
                ("failure_reason", models.TextField(blank=True)),
                ("error_code", models.CharField(blank=True, max_length=100)),
                ("gateway_response", models.JSONField(blank=True, default=dict)),
                ("webhook_data", models.JSONField(blank=True, default=dict)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Transaction",
                "verbose_name_plural": "Payment Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order", "-created_at"], name="txn_order_created_idx"),
                    models.Index(fields=["provider", "status"], name="txn_provider_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "attempt_number"),
                        name="unique_transaction_attempt_per_order",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount_minor__gt=0),
                        name="transaction_amount_minor_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRefund",
            fields=[
                *base_fields(),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("initiated", "Initiated"),
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="initiated",
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("amount_minor", models.PositiveIntegerField(help_text="Amount in paise")),
                ("merchant_refund_id", models.CharField(max_length=64, unique=True)),
                ("provider_refund_id", models.CharField(blank=True, max_length=128)),
                ("reason", models.TextField(blank=True)),
                ("gateway_response", models.JSONField(blank=True, default=dict)),
                ("error_code", models.CharField(blank=True, max_length=100)),
                ("error_message", models.TextField(blank=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="orders.order",
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="payments.paymenttransaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Refund",
                "verbose_name_plural": "Payment Refunds",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount_minor__gt=0),
                        name="refund_amount_minor_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationJob",
            fields=[
                *base_fields(),
                ("merchant_transaction_id", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("attempt", models.PositiveIntegerField(default=0)),
                ("next_poll_at", models.DateTimeField(db_index=True)),
                ("expire_at", models.DateTimeField()),
                ("last_polled_at", models.DateTimeField(blank=True, null=True)),
                ("last_status", models.CharField(blank=True, max_length=64)),
                ("last_response_code", models.CharField(blank=True, max_length=64)),
                ("last_error", models.TextField(blank=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reconciliation_jobs",
                        to="orders.order",
                    ),
                ),
                (
                    "transaction",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reconciliation_job",
                        to="payments.paymenttransaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reconciliation Job",
                "verbose_name_plural": "Reconciliation Jobs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "next_poll_at"],
                        name="recon_status_next_poll_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentEvent",
            fields=[
                *base_fields(),
                ("provider", models.CharField(choices=PROVIDER_CHOICES, max_length=20)),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("return", "Browser return"),
                            ("webhook", "Webhook"),
                            ("poll", "Status poll"),
                        ],
                        max_length=20,
                    ),
                ),
                ("event_key", models.CharField(max_length=255, unique=True)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("processing_error", models.TextField(blank=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_events",
                        to="orders.order",
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="events",
                        to="payments.paymenttransaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Event",
                "verbose_name_plural": "Payment Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["provider", "event_type"],
                        name="event_provider_type_idx",
                    ),
                ],
            },
        ),
    ]
