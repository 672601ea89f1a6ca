import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
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
                (
                    "processor_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx); set once",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Payment amount in smallest currency unit (e.g., cents)",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "state",
                    django_fsm.FSMField(
                        choices=[
                            ("created", "Created"),
                            ("requires_action", "Requires Action"),
                            ("processing", "Processing"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="created",
                        help_text="Current lifecycle state",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each transition",
                    ),
                ),
                (
                    "last_transition_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the state last changed",
                        null=True,
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Reason reported by the processor for a failure or cancellation",
                        null=True,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata for extensibility",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["state", "last_transition_at"],
                        name="payments_pa_state_2c1f0b_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="payment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "state__in",
                                [
                                    "created",
                                    "requires_action",
                                    "processing",
                                    "succeeded",
                                    "failed",
                                    "canceled",
                                ],
                            )
                        ),
                        name="payment_state_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProcessedWebhookEvent",
            fields=[
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
                (
                    "processor_event_id",
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
                (
                    "received_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the event was first claimed",
                    ),
                ),
                (
                    "applied_transition",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("require_action", "Additional authentication required"),
                            ("start_processing", "Submitted for capture"),
                            ("succeed", "Funds captured"),
                            ("fail", "Declined or authentication failed"),
                            ("cancel", "Canceled"),
                        ],
                        help_text="Trigger applied to the payment (null when rejected)",
                        max_length=32,
                        null=True,
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        choices=[
                            ("claimed", "Claimed"),
                            ("applied", "Applied"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="claimed",
                        help_text="Applied or rejected; claimed only inside the unit of work",
                        max_length=16,
                    ),
                ),
                (
                    "from_state",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("created", "Created"),
                            ("requires_action", "Requires Action"),
                            ("processing", "Processing"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                        ],
                        help_text="Payment state when the event was evaluated",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "to_state",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("created", "Created"),
                            ("requires_action", "Requires Action"),
                            ("processing", "Processing"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                        ],
                        help_text="Payment state after the event (null when rejected)",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "detail",
                    models.TextField(
                        blank=True,
                        help_text="Why the transition was rejected",
                        null=True,
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        blank=True,
                        help_text="Payment the event targeted",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="processed_webhook_events",
                        to="payments.payment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Processed Webhook Event",
                "verbose_name_plural": "Processed Webhook Events",
                "ordering": ["-received_at"],
                "indexes": [
                    models.Index(
                        fields=["payment", "received_at"],
                        name="payments_pr_payment_8d41a7_idx",
                    ),
                    models.Index(
                        fields=["outcome", "received_at"],
                        name="payments_pr_outcome_5b9e3c_idx",
                    ),
                ],
            },
        ),
    ]
