"""
Quote → invoice conversion.

Idempotent by lookup: a quote converts into at most one invoice (also
enforced by a unique constraint on Invoice.quote). Converting again
returns the existing invoice with created=False.
"""
import datetime
import logging
from typing import NamedTuple
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from ..exceptions import (InvalidAmount, InvalidQuoteStatus, PersistenceFailure,
                          QuoteNotFound)
from ..models import Invoice, InvoiceLine, Quote
from ..models.quote import CONVERTIBLE_STATUSES
from .audit_helper import log_action
from .documents import resolve_payment_terms
from .lines import clone_lines
from .numbering import next_number

logger = logging.getLogger(__name__)


class ConversionResult(NamedTuple):
    invoice: Invoice
    created: bool

    @property
    def already_converted(self):
        return not self.created


def _existing_invoice(quote):
    return Invoice.objects.filter(quote=quote).first()


def convert_quote_to_invoice(company, quote_id, *, payment_terms_days=None,
                             issue_date=None, user=None) -> ConversionResult:
    """
    Turn an accepted (or signed) quote into a draft invoice.

    The invoice gets its own number, a copy of every quote line and the
    quote totals verbatim, so it matches what the client agreed to.
    Header, lines, counter and audit record are written in one
    transaction; if any part fails nothing is kept.
    """
    try:
        quote = Quote.objects.for_company(company).get(pk=quote_id)
    except Quote.DoesNotExist:
        raise QuoteNotFound(f"Quote {quote_id} not found")

    existing = _existing_invoice(quote)
    if existing is not None:
        logger.info("quote %s already converted to %s", quote.number, existing.number)
        return ConversionResult(existing, False)

    if quote.status not in CONVERTIBLE_STATUSES:
        raise InvalidQuoteStatus(
            f"Quote {quote.number} is {quote.status}, expected one of {CONVERTIBLE_STATUSES}"
        )
    if quote.totals_ttc <= 0:
        raise InvalidAmount(f"Quote {quote.number} has nothing to invoice")

    issue_date = issue_date or timezone.localdate()
    terms = resolve_payment_terms(company, quote.customer, payment_terms_days)

    try:
        with transaction.atomic():
            # serialize concurrent conversions of the same quote
            quote = Quote.objects.select_for_update().get(pk=quote.pk)
            existing = _existing_invoice(quote)
            if existing is not None:
                return ConversionResult(existing, False)

            source_lines = list(quote.lines.order_by("position", "id"))

            invoice = Invoice(
                company=company,
                customer=quote.customer,
                quote=quote,
                number=next_number(company, "invoice"),
                status="draft",
                date=issue_date,
                due_date=issue_date + datetime.timedelta(days=terms),
                currency_code=quote.currency_code,
                description=quote.description,
                # carried over, not recomputed
                totals_ht=quote.totals_ht,
                totals_vat=quote.totals_vat,
                totals_ttc=quote.totals_ttc,
            )
            invoice.save()

            clones = clone_lines(source_lines, InvoiceLine, document=invoice, company=company)
            InvoiceLine.objects.bulk_create(clones)

            persisted = InvoiceLine.objects.filter(document=invoice).count()
            if persisted != len(source_lines):
                raise PersistenceFailure(
                    f"Invoice {invoice.number}: {persisted} of {len(source_lines)} lines written"
                )

            quote.converted_at = timezone.now()
            quote.save(update_fields=["converted_at"])

            log_action(
                action="convert",
                instance=invoice,
                user=user,
                changes={
                    "quote_id": quote.pk,
                    "quote_number": quote.number,
                    "number": invoice.number,
                    "lines": persisted,
                    "totals_ttc": str(invoice.totals_ttc),
                },
            )
    except (IntegrityError, ValidationError):
        # lost the race on the unique quote reference
        existing = _existing_invoice(quote)
        if existing is None:
            raise
        logger.info("quote %s converted concurrently to %s", quote.number, existing.number)
        return ConversionResult(existing, False)

    logger.info("converted quote %s into invoice %s", quote.number, invoice.number)
    return ConversionResult(invoice, True)


def find_orphaned_invoices(company):
    """
    Invoices created from a quote whose lines never made it to the store.

    Conversion is atomic, so anything listed here was written outside the
    engine (imports, manual SQL) and needs attention.
    """
    orphans = []
    invoices = (
        Invoice.objects.for_company(company)
        .filter(quote__isnull=False)
        .select_related("quote")
        .order_by("number")
    )
    for invoice in invoices:
        expected = invoice.quote.lines.count()
        actual = invoice.lines.count()
        if actual != expected:
            orphans.append((invoice, expected, actual))
    return orphans
