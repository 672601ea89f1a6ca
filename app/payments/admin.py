"""
Payment admin configuration.

Both models are read-only in the admin. Payment state only changes
through verified webhooks (or the client store's pre-confirmation
writes), and ledger rows are never modified after commit.
"""

from django.contrib import admin

from payments.models import Payment, ProcessedWebhookEvent

__all__ = [
    "PaymentAdmin",
    "ProcessedWebhookEventAdmin",
]


class ProcessedWebhookEventInline(admin.TabularInline):
    """Ledger rows shown on the payment page, newest first."""

    model = ProcessedWebhookEvent
    fields = [
        "processor_event_id",
        "event_type",
        "outcome",
        "applied_transition",
        "from_state",
        "to_state",
        "received_at",
    ]
    readonly_fields = fields
    ordering = ["-received_at"]
    extra = 0
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Provides visibility into payments and their lifecycle state.
    """

    list_display = [
        "id",
        "processor_intent_id",
        "amount_display",
        "state",
        "version",
        "last_transition_at",
        "created_at",
    ]
    list_filter = ["state", "currency", "created_at"]
    search_fields = ["id", "processor_intent_id"]
    readonly_fields = [
        "id",
        "processor_intent_id",
        "amount_cents",
        "currency",
        "state",
        "version",
        "last_transition_at",
        "failure_reason",
        "metadata",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [ProcessedWebhookEventInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "processor_intent_id", "amount_cents", "currency"),
            },
        ),
        (
            "Lifecycle",
            {
                "fields": ("state", "version", "last_transition_at", "failure_reason"),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata",),
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

    @admin.display(description="Amount")
    def amount_display(self, obj: Payment) -> str:
        """Display the amount formatted as currency."""
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"

    def has_add_permission(self, request) -> bool:
        """Payments are created by checkout, not through admin."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payments (audit trail)."""
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        """State is owned by the webhook pipeline."""
        return False


@admin.register(ProcessedWebhookEvent)
class ProcessedWebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for ProcessedWebhookEvent.

    Shows which Stripe events were applied or rejected, and why.
    """

    list_display = [
        "processor_event_id",
        "event_type",
        "outcome",
        "payment",
        "applied_transition",
        "from_state",
        "to_state",
        "received_at",
    ]
    list_filter = ["outcome", "event_type", "received_at"]
    search_fields = ["processor_event_id", "payment__id", "payment__processor_intent_id"]
    readonly_fields = [
        "id",
        "processor_event_id",
        "event_type",
        "received_at",
        "payment",
        "applied_transition",
        "outcome",
        "from_state",
        "to_state",
        "detail",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "received_at"
    ordering = ["-received_at"]

    def has_add_permission(self, request) -> bool:
        """Ledger rows are only written by the webhook pipeline."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Deleting a row would let the event be applied again."""
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False
