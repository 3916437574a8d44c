from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ledger_core.exceptions import LedgerError
from ledger_core.services import (convert_quote_to_invoice, recompute_settlement,
                                  transition_quote)

# ---------- Admin actions ----------


@admin.action(description="Convert selected quotes to invoices")
def convert_selected_quotes(
    modeladmin,  # `ModelAdmin` class for Quote
    request,  # HTTP request object
    queryset,  # quotes the admin selected from list view
):
    """
    Admin action: convert each selected Quote through the conversion service.
    - Each quote is converted in its own transaction (done by the service).
    - Already converted quotes are reported, not duplicated.
    - Failures are reported per quote and do not stop the batch.
    """
    created = 0
    existing = 0
    failures = 0

    for quote in queryset.order_by("pk"):
        try:
            result = convert_quote_to_invoice(quote.company, quote.pk, user=request.user)
        except (LedgerError, ValidationError) as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not convert quote %(number)s: %(err)s") % {"number": quote.number, "err": exc},
                level=messages.ERROR,
            )
            continue
        if result.created:
            created += 1
        else:
            existing += 1

    # Final summary message
    modeladmin.message_user(
        request,
        _("Created %(created)d invoices, %(existing)d already converted, %(failures)d failed.") % {
            "created": created,
            "existing": existing,
            "failures": failures,
        },
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description="Mark selected quotes as Sent")
def mark_quotes_as_sent(modeladmin, request, queryset):
    done = 0
    for quote in queryset:
        try:
            transition_quote(quote, "sent", user=request.user)
            done += 1
        except (LedgerError, ValidationError) as exc:
            modeladmin.message_user(request, f"Quote {quote.number}: {exc}", level=messages.ERROR)
    modeladmin.message_user(request, f"Marked {done} quote(s) as sent.", level=messages.SUCCESS)


@admin.action(description="Mark selected quotes as Accepted")
def mark_quotes_as_accepted(modeladmin, request, queryset):
    done = 0
    for quote in queryset:
        try:
            transition_quote(quote, "accepted", user=request.user)
            done += 1
        except (LedgerError, ValidationError) as exc:
            modeladmin.message_user(request, f"Quote {quote.number}: {exc}", level=messages.ERROR)
    modeladmin.message_user(request, f"Marked {done} quote(s) as accepted.", level=messages.SUCCESS)


@admin.action(description="Recompute paid total and status from payments")
def recompute_selected_invoices(modeladmin, request, queryset):
    """Rebuild derived settlement fields; useful after a manual data fix."""
    changed = 0
    for invoice in queryset:
        before = (invoice.paid_total, invoice.status)
        balance = recompute_settlement(invoice, user=request.user)
        if (balance.paid_total, balance.status) != before:
            changed += 1
    modeladmin.message_user(
        request,
        f"Recomputed {queryset.count()} invoice(s) at {timezone.now():%Y-%m-%d %H:%M}, {changed} changed.",
        level=messages.SUCCESS,
    )


@admin.action(description="Mark selected invoices as Sent")
def mark_invoices_as_sent(modeladmin, request, queryset):
    done = 0
    for invoice in queryset:
        try:
            invoice.transition_to("sent")
            done += 1
        except ValidationError as exc:
            modeladmin.message_user(request, f"Invoice {invoice.number}: {exc}", level=messages.ERROR)
    modeladmin.message_user(request, f"Marked {done} invoice(s) as sent.", level=messages.SUCCESS)


@admin.action(description="Cancel selected invoices")
def cancel_selected_invoices(modeladmin, request, queryset):
    done = 0
    for invoice in queryset:
        try:
            invoice.transition_to("cancelled")
            done += 1
        except ValidationError as exc:
            modeladmin.message_user(request, f"Invoice {invoice.number}: {exc}", level=messages.ERROR)
    modeladmin.message_user(request, f"Cancelled {done} invoice(s).", level=messages.SUCCESS)
