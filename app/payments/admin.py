"""
Payment admin configuration.

Registers payment domain models with the Django admin. Transaction state
is managed by the FSM and the service layer, so status fields are
read-only here.
"""

from django.contrib import admin

from payments.models import (
    PaymentEvent,
    PaymentRefund,
    PaymentTransaction,
    ReconciliationJob,
)
from payments.state_machines import ReconciliationStatus

__all__ = [
    "PaymentEventAdmin",
    "PaymentRefundAdmin",
    "PaymentTransactionAdmin",
    "ReconciliationJobAdmin",
]


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentTransaction.

    State changes should be made through the service layer, not admin.
    """

    list_display = [
        "merchant_transaction_id",
        "order",
        "provider",
        "status",
        "attempt_number",
        "amount",
        "created_at",
    ]
    list_filter = ["provider", "status", "created_at"]
    search_fields = [
        "merchant_transaction_id",
        "provider_order_id",
        "provider_transaction_id",
        "order__id",
    ]
    readonly_fields = [
        "id",
        "order",
        "status",
        "attempt_number",
        "merchant_transaction_id",
        "provider_order_id",
        "provider_transaction_id",
        "provider_payment_id",
        "gateway_response",
        "webhook_data",
        "completed_at",
        "failed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "order", "provider", "status", "attempt_number"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "amount_minor", "currency"),
            },
        ),
        (
            "Provider",
            {
                "fields": (
                    "merchant_transaction_id",
                    "provider_order_id",
                    "provider_transaction_id",
                    "provider_payment_id",
                    "redirect_url",
                    "expires_at",
                ),
            },
        ),
        (
            "UPI",
            {
                "fields": ("payment_mode", "upi_payer_handle", "upi_utr", "upi_instrument_label"),
            },
        ),
        (
            "Failure",
            {
                "fields": ("failure_reason", "error_code"),
            },
        ),
        (
            "Raw Data",
            {
                "fields": ("gateway_response", "webhook_data", "metadata"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("completed_at", "failed_at", "cancelled_at", "created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for transactions (audit trail)."""
        return False


@admin.register(PaymentRefund)
class PaymentRefundAdmin(admin.ModelAdmin):
    list_display = ["merchant_refund_id", "order", "transaction", "amount", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["merchant_refund_id", "provider_refund_id", "order__id"]
    readonly_fields = ["id", "gateway_response", "completed_at", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(ReconciliationJob)
class ReconciliationJobAdmin(admin.ModelAdmin):
    """
    Admin configuration for ReconciliationJob.

    The "poll now" action queues an immediate provider poll for pending jobs.
    """

    list_display = [
        "merchant_transaction_id",
        "order",
        "status",
        "attempt",
        "next_poll_at",
        "expire_at",
        "last_status",
        "last_polled_at",
    ]
    list_filter = ["status"]
    search_fields = ["merchant_transaction_id", "order__id"]
    readonly_fields = [
        "id",
        "order",
        "transaction",
        "merchant_transaction_id",
        "status",
        "attempt",
        "next_poll_at",
        "expire_at",
        "last_polled_at",
        "last_status",
        "last_response_code",
        "last_error",
        "completed_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    actions = ["poll_now"]

    @admin.action(description="Poll provider now for selected jobs")
    def poll_now(self, request, queryset):
        """Queue a poll for each selected pending job."""
        from payments.tasks import poll_reconciliation_job

        job_ids = list(
            queryset.filter(status=ReconciliationStatus.PENDING).values_list("id", flat=True)
        )
        for job_id in job_ids:
            poll_reconciliation_job.delay(str(job_id))
        self.message_user(request, f"Queued {len(job_ids)} reconciliation polls.")

    def has_add_permission(self, request) -> bool:
        """Jobs are created by payment initiation only."""
        return False


@admin.register(PaymentEvent)
class PaymentEventAdmin(admin.ModelAdmin):
    list_display = ["event_key", "provider", "event_type", "processed_at", "created_at"]
    list_filter = ["provider", "event_type"]
    search_fields = ["event_key", "order__id"]
    readonly_fields = [
        "id",
        "provider",
        "event_type",
        "event_key",
        "order",
        "transaction",
        "payload",
        "processed_at",
        "processing_error",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
