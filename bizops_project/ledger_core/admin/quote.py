from django.contrib import admin
from django.db.models import Prefetch

from ledger_core.models import Quote, QuoteLine
from ledger_core.services import next_number
from .actions import convert_selected_quotes, mark_quotes_as_accepted, mark_quotes_as_sent
from .inlines import QuoteLineInline
from .mixins import TenantAdminMixin


# Register `Quote` model
@admin.register(Quote)
class QuoteAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "number",
        "customer",
        "date",
        "valid_until",
        "status",
        "totals_ttc",
        "converted_at",
    )
    list_filter = ("company", "status", "date")
    search_fields = ("number", "customer__name")
    actions = [mark_quotes_as_sent, mark_quotes_as_accepted, convert_selected_quotes]
    inlines = [QuoteLineInline]
    # number comes from the sequence, totals from the lines, status from the actions
    readonly_fields = ("number", "status", "totals_ht", "totals_vat", "totals_ttc",
                       "converted_at", "signed_at", "created_at")

    # new quotes take their number from the sequence, inside the admin transaction
    def save_model(self, request, obj, form, change):
        if not change:
            if not request.user.is_superuser:
                obj.company = self._get_request_company(request)
            obj.number = next_number(obj.company, "quote")
        super().save_model(request, obj, form, change)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "customer").prefetch_related(
            Prefetch("lines", queryset=QuoteLine.objects.order_by("position", "id"))
        )
