import datetime
import logging
from django.db import transaction
from django.utils import timezone
from ..exceptions import InvalidAmount
from ..models import Invoice, InvoiceLine, Quote, QuoteLine
from .audit_helper import log_action
from .lines import build_lines, compute_totals
from .numbering import next_number

logger = logging.getLogger(__name__)


# ----------------------------
# Direct document creation
# ----------------------------
def create_quote(company, customer, rows, *, date=None, valid_until=None,
                 description="", user=None) -> Quote:
    """Create a numbered draft quote with its lines in one unit."""
    lines = build_lines(QuoteLine, rows, company=company)
    totals = compute_totals(lines)

    with transaction.atomic():
        quote = Quote(
            company=company,
            customer=customer,
            number=next_number(company, "quote"),
            date=date or timezone.localdate(),
            valid_until=valid_until,
            currency_code=company.currency_code,
            description=description,
            totals_ht=totals.ht,
            totals_vat=totals.vat,
            totals_ttc=totals.ttc,
        )
        quote.save()
        for line in lines:
            line.document = quote
        QuoteLine.objects.bulk_create(lines)

        log_action(
            action="create",
            instance=quote,
            user=user,
            changes={"number": quote.number, "totals_ttc": str(quote.totals_ttc)},
        )
    logger.info("created quote %s for company %s", quote.number, company.pk)
    return quote


def create_invoice(company, customer, rows, *, date=None, payment_terms_days=None,
                   description="", user=None) -> Invoice:
    """Create a numbered draft invoice; totals are computed once, here."""
    lines = build_lines(InvoiceLine, rows, company=company)
    totals = compute_totals(lines)
    issue_date = date or timezone.localdate()
    if totals.ttc <= 0:
        raise InvalidAmount("An invoice needs a positive total")
    terms = resolve_payment_terms(company, customer, payment_terms_days)

    with transaction.atomic():
        invoice = Invoice(
            company=company,
            customer=customer,
            number=next_number(company, "invoice"),
            date=issue_date,
            due_date=issue_date + datetime.timedelta(days=terms),
            currency_code=company.currency_code,
            description=description,
            totals_ht=totals.ht,
            totals_vat=totals.vat,
            totals_ttc=totals.ttc,
        )
        invoice.save()
        for line in lines:
            line.document = invoice
        InvoiceLine.objects.bulk_create(lines)

        log_action(
            action="create",
            instance=invoice,
            user=user,
            changes={"number": invoice.number, "totals_ttc": str(invoice.totals_ttc)},
        )
    logger.info("created invoice %s for company %s", invoice.number, company.pk)
    return invoice


def resolve_payment_terms(company, customer=None, override=None) -> int:
    """Explicit override, then customer terms, then company default."""
    if override is not None:
        if override < 0:
            raise ValueError("Payment terms cannot be negative")
        return int(override)
    if customer is not None and customer.payment_terms_days is not None:
        return customer.payment_terms_days
    return company.payment_terms_days


def transition_quote(quote: Quote, new_status: str, user=None) -> Quote:
    """Move a quote along its workflow and keep an audit trail."""
    with transaction.atomic():
        quote = Quote.objects.select_for_update().get(pk=quote.pk)
        old_status = quote.status
        quote.transition_to(new_status)
        log_action(
            action="update",
            instance=quote,
            user=user,
            changes={"status": [old_status, new_status]},
        )
    return quote
