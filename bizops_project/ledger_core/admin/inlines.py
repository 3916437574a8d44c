from django.contrib import admin

from ledger_core.models import InvoiceLine, Payment, QuoteLine

# ---------- Helpful inline admin classes ----------

LINE_FIELDS = (
    "position",
    "description",
    "quantity",
    "unit",
    "unit_price",
    "vat_rate",
    "line_total_ht",
)


class FrozenLinesMixin:
    """Lines become read-only once the parent document is frozen."""

    def document_is_frozen(self, obj):
        return False

    def has_add_permission(self, request, obj=None):
        if obj is not None and self.document_is_frozen(obj):
            return False
        return super().has_add_permission(request, obj)

    def has_change_permission(self, request, obj=None):
        if obj is not None and self.document_is_frozen(obj):
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and self.document_is_frozen(obj):
            return False
        return super().has_delete_permission(request, obj)


class QuoteLineInline(FrozenLinesMixin, admin.TabularInline):
    """Show QuoteLine rows on the Quote page"""

    model = QuoteLine
    extra = 0  # don’t show “empty” rows by default
    fields = LINE_FIELDS
    readonly_fields = ("line_total_ht",)
    ordering = ("position", "id")

    def document_is_frozen(self, obj):
        return obj.is_converted


class InvoiceLineInline(FrozenLinesMixin, admin.TabularInline):
    """Show InvoiceLine rows on the Invoice page, editable only in draft"""

    model = InvoiceLine
    extra = 0
    fields = LINE_FIELDS
    readonly_fields = ("line_total_ht",)
    ordering = ("position", "id")

    def document_is_frozen(self, obj):
        return obj.status != "draft"


class PaymentInline(admin.TabularInline):
    """Payments are recorded and reversed through services.payment only"""

    model = Payment
    extra = 0
    fields = ("paid_at", "amount", "method", "note")
    readonly_fields = fields
    can_delete = False
    show_change_link = True
    ordering = ("paid_at", "id")

    def has_add_permission(self, request, obj=None):
        return False
