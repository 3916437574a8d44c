from functools import wraps
from django.core.exceptions import ValidationError
from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.views.decorators.http import require_GET, require_POST
from . import exceptions
from .models import Invoice
from .services import (convert_quote_to_invoice, generate_ledger_export,
                       invoice_balance, record_payment, reverse_payment)

# HTTP status for each failure class
ERROR_STATUS = {
    exceptions.InvalidAmount: 400,
    exceptions.InvalidPaymentMethod: 400,
    exceptions.InvalidTaxId: 400,
    exceptions.InvalidDateRange: 400,
    exceptions.QuoteNotFound: 404,
    exceptions.InvoiceNotFound: 404,
    exceptions.PaymentNotFound: 404,
    exceptions.InvalidQuoteStatus: 409,
    exceptions.InvalidInvoiceStatus: 409,
    exceptions.NumberingConflict: 409,
    exceptions.PersistenceFailure: 500,
}


def _error(error, status):
    return JsonResponse(
        {"ok": False, "error": type(error).__name__, "detail": str(error)},
        status=status,
    )


def ledger_view(view):
    """Require a resolved company and turn ledger errors into JSON responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "company", None) is None:
            return JsonResponse({"ok": False, "error": "NoCompany"}, status=403)
        try:
            return view(request, *args, **kwargs)
        except exceptions.LedgerError as exc:
            return _error(exc, ERROR_STATUS.get(type(exc), 400))
        except ValidationError as exc:
            return _error(exc, 400)
    return wrapper


def _balance_payload(balance):
    return {
        "invoice_id": balance.invoice.pk,
        "number": balance.invoice.number,
        "status": balance.status,
        "totals_ttc": str(balance.invoice.totals_ttc),
        "paid_total": str(balance.paid_total),
        "remaining": str(balance.remaining),
    }


def _parse_day(value, name):
    day = parse_date(value or "")
    if day is None:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date")
    return day


def _parse_moment(value):
    """Accept a date (YYYY-MM-DD) or an ISO datetime, None when absent."""
    if not value:
        return None
    if len(value) == 10:
        return _parse_day(value, "paid_at")
    moment = parse_datetime(value)
    if moment is None:
        raise ValidationError("paid_at must be an ISO date or datetime")
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


@require_POST
@ledger_view
def convert_quote_view(request, quote_id):
    terms = request.POST.get("payment_terms_days")
    if terms and not terms.isdigit():
        raise ValidationError("payment_terms_days must be a whole number of days")
    result = convert_quote_to_invoice(
        request.company,
        quote_id,
        payment_terms_days=int(terms) if terms else None,
        user=request.user,
    )
    return JsonResponse(
        {
            "ok": True,
            "invoice_id": result.invoice.pk,
            "number": result.invoice.number,
            "already_converted": result.already_converted,
        },
        status=201 if result.created else 200,
    )


@require_POST
@ledger_view
def record_payment_view(request, invoice_id):
    paid_at = _parse_moment(request.POST.get("paid_at"))
    payment = record_payment(
        request.company,
        invoice_id,
        request.POST.get("amount"),
        request.POST.get("method", "bank_transfer"),
        paid_at=paid_at,
        note=request.POST.get("note"),
        user=request.user,
    )
    payload = _balance_payload(invoice_balance(payment.invoice))
    payload.update({"ok": True, "payment_id": payment.pk})
    return JsonResponse(payload, status=201)


@require_POST
@ledger_view
def reverse_payment_view(request, payment_id):
    balance = reverse_payment(request.company, payment_id, user=request.user)
    payload = _balance_payload(balance)
    payload["ok"] = True
    return JsonResponse(payload)


@require_GET
@ledger_view
def invoice_balance_view(request, invoice_id):
    try:
        invoice = Invoice.objects.for_company(request.company).get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise exceptions.InvoiceNotFound(f"Invoice {invoice_id} not found")
    payload = _balance_payload(invoice_balance(invoice))
    payload["ok"] = True
    return JsonResponse(payload)


@require_GET
@ledger_view
def ledger_export_view(request):
    start = _parse_day(request.GET.get("start"), "start")
    end = _parse_day(request.GET.get("end"), "end")
    document = generate_ledger_export(
        request.company,
        start,
        end,
        tax_id=request.GET.get("tax_id") or None,
        user=request.user,
    )
    response = HttpResponse(document.as_bytes(), content_type="text/plain; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{document.filename}"'
    return response
