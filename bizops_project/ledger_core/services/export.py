"""
Accounting ledger export (FEC style journal file).

Entries are derived from invoices and payments on every call and never
stored. Output depends only on the records and the requested range, so
two runs over unchanged data give byte-identical files.

Row layout, pipe separated, one entry per line:

    journal | date (YYYYMMDD) | account | counter-account | piece ref |
    label | debit | credit | currency

The receivable account is carried as counter-account on every row: sale
rows credit revenue and VAT against it, settlement rows debit the bank
against it.
"""
import datetime
import logging
import re
from decimal import Decimal
from typing import List, NamedTuple
from django.utils import timezone
from ..conf import ledger_setting
from ..exceptions import InvalidDateRange, InvalidTaxId
from ..models import Invoice, Payment
from .audit_helper import log_action

logger = logging.getLogger(__name__)

DELIMITER = "|"
LINE_SEPARATOR = "\n"
ZERO = Decimal("0.00")
_NUMBER_RE = re.compile(r"^(.*?)(\d+)$")
_UNSAFE_RE = re.compile(r"[|\r\n\t]+")


class AccountingEntry(NamedTuple):
    sequence: int
    journal_code: str
    entry_date: datetime.date
    account: str
    counter_account: str
    piece_ref: str
    label: str
    debit: Decimal
    credit: Decimal
    currency: str

    def to_row(self):
        fields = [
            self.journal_code,
            self.entry_date.strftime("%Y%m%d"),
            self.account,
            self.counter_account,
            self.piece_ref,
            self.label,
            _amount(self.debit),
            _amount(self.credit),
            self.currency,
        ]
        return DELIMITER.join(_clean(f) for f in fields)


class ExportDocument(NamedTuple):
    filename: str
    entries: List[AccountingEntry]
    content: str

    def as_bytes(self):
        return self.content.encode("utf-8")


# ----------------------------
# Formatting helpers
# ----------------------------
def _amount(value):
    return f"{value.quantize(Decimal('0.01')):.2f}"


def _clean(text):
    return _UNSAFE_RE.sub(" ", str(text)).strip()


def _number_key(number):
    """Order INV-00009 before INV-00010 even if padding changed."""
    match = _NUMBER_RE.match(number or "")
    if match is None:
        return (number or "", -1, number or "")
    prefix, digits = match.groups()
    return (prefix, int(digits), number)


def normalize_tax_id(tax_id):
    """Strip whitespace and require exactly 9 digits (SIREN)."""
    cleaned = re.sub(r"\s", "", tax_id or "")
    if not re.fullmatch(r"\d{9}", cleaned):
        raise InvalidTaxId(f"Tax id must be 9 digits, got {tax_id!r}")
    return cleaned


def export_filename(tax_id, end_date):
    tag = ledger_setting("LEDGER_EXPORT_TAG")
    return f"{tax_id}{tag}{end_date.strftime('%Y%m%d')}.txt"


def _receivable_account(accounts, invoice):
    if invoice.customer_id is None:
        return f"{accounts['receivable']}000000"
    return f"{accounts['receivable']}{invoice.customer.receivable_code}"


# ----------------------------
# Entry derivation
# ----------------------------
def build_entries(company, start_date, end_date) -> List[AccountingEntry]:
    """Accounting entries for invoices issued and payments received in range."""
    accounts = ledger_setting("LEDGER_EXPORT_ACCOUNTS")
    journals = ledger_setting("LEDGER_EXPORT_JOURNALS")

    invoices = sorted(
        Invoice.objects.for_company(company)
        .filter(date__range=(start_date, end_date))
        .select_related("customer"),
        key=lambda inv: _number_key(inv.number),
    )

    payments_by_invoice = {}
    payments = (
        Payment.objects.for_company(company)
        .filter(invoice__in=[inv.pk for inv in invoices],
                paid_at__date__range=(start_date, end_date))
        .order_by("paid_at", "id")
    )
    for payment in payments:
        payments_by_invoice.setdefault(payment.invoice_id, []).append(payment)

    entries = []

    def add(**fields):
        entries.append(AccountingEntry(sequence=len(entries) + 1, **fields))

    for inv in invoices:
        receivable = _receivable_account(accounts, inv)
        customer_name = inv.customer.name if inv.customer_id else "Unknown customer"

        # Sale: revenue and VAT credited against the customer receivable
        add(
            journal_code=journals["sales"],
            entry_date=inv.date,
            account=accounts["revenue"],
            counter_account=receivable,
            piece_ref=inv.number,
            label=f"Invoice {inv.number} - {customer_name}",
            debit=ZERO,
            credit=inv.totals_ht,
            currency=inv.currency_code,
        )
        if inv.totals_vat > 0:
            add(
                journal_code=journals["sales"],
                entry_date=inv.date,
                account=accounts["vat_collected"],
                counter_account=receivable,
                piece_ref=inv.number,
                label=f"VAT on invoice {inv.number}",
                debit=ZERO,
                credit=inv.totals_vat,
                currency=inv.currency_code,
            )

        # Settlements: bank debited against the customer receivable
        for payment in payments_by_invoice.get(inv.pk, []):
            add(
                journal_code=journals["bank"],
                entry_date=timezone.localdate(payment.paid_at),
                account=accounts["bank"],
                counter_account=receivable,
                piece_ref=inv.number,
                label=f"Payment {payment.get_method_display().lower()} invoice {inv.number}",
                debit=payment.amount,
                credit=ZERO,
                currency=inv.currency_code,
            )
    return entries


def render_entries(entries):
    return LINE_SEPARATOR.join(entry.to_row() for entry in entries)


def generate_ledger_export(company, start_date, end_date, tax_id=None,
                           user=None) -> ExportDocument:
    """
    Build the ledger export for [start_date, end_date] (inclusive).

    tax_id defaults to the company SIREN. Validation happens before any
    query so a bad request never reads or writes anything.
    """
    if tax_id is None:
        tax_id = company.siren
    siren = normalize_tax_id(tax_id)
    if start_date > end_date:
        raise InvalidDateRange(f"Start {start_date} is after end {end_date}")

    entries = build_entries(company, start_date, end_date)
    document = ExportDocument(
        filename=export_filename(siren, end_date),
        entries=entries,
        content=render_entries(entries),
    )

    log_action(
        action="export_ledger",
        instance=company,
        company=company,
        user=user,
        changes={
            "filename": document.filename,
            "start": start_date.isoformat(),
            "end": end_date.isoformat(),
            "entries": len(entries),
        },
    )
    logger.info("ledger export %s: %s entries", document.filename, len(entries))
    return document
