from django.contrib import admin
from django.db.models import Prefetch

from ledger_core.models import Customer, Invoice, InvoiceLine, Payment
from ledger_core.services import compute_totals, next_number
from .ReadOnly import ReadOnlyAdmin
from .actions import (cancel_selected_invoices, mark_invoices_as_sent,
                      recompute_selected_invoices)
from .inlines import InvoiceLineInline, PaymentInline
from .mixins import TenantAdminMixin


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "number",
        "customer",
        "quote",
        "date",
        "due_date",
        "status",
        "totals_ttc",
        "paid_total",
        "remaining_balance",
    )
    list_filter = ("company", "status", "date")
    search_fields = ("number", "customer__name", "quote__number")
    actions = [mark_invoices_as_sent, cancel_selected_invoices, recompute_selected_invoices]
    inlines = [InvoiceLineInline, PaymentInline]
    # status and settlement fields are derived from payments or set by actions
    readonly_fields = ("number", "quote", "status", "totals_ht", "totals_vat", "totals_ttc",
                       "paid_total", "paid_at", "created_at")

    def save_model(self, request, obj, form, change):
        if not change:
            if not request.user.is_superuser:
                obj.company = self._get_request_company(request)
            obj.number = next_number(obj.company, "invoice")
        super().save_model(request, obj, form, change)

    # totals follow the lines on a hand-made draft; converted ones keep the quote totals
    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        invoice = form.instance
        if invoice.status == "draft" and invoice.quote_id is None:
            invoice.totals_ht, invoice.totals_vat, invoice.totals_ttc = compute_totals(invoice.lines.all())
            invoice.save(update_fields=["totals_ht", "totals_vat", "totals_ttc"])

    """
        For each Invoice, prefetch its lines and payments in display order
    """
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "customer", "quote").prefetch_related(
            Prefetch("lines", queryset=InvoiceLine.objects.order_by("position", "id")),
            Prefetch("payments", queryset=Payment.objects.order_by("paid_at", "id")),
        )

    # invoices holding payments cannot be deleted (see signals)
    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.payments.exists():
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Payment)
class PaymentAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("id", "company", "invoice", "paid_at", "amount", "method")
    list_filter = ("company", "method")
    search_fields = ("invoice__number", "note")
    date_hierarchy = "paid_at"

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "invoice")


# Register `Customer` model
@admin.register(Customer)
class CustomerAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "name", "contact_email", "payment_terms_days", "account_code")
    list_filter = ("company",)
    search_fields = ("name", "contact_email", "account_code")
