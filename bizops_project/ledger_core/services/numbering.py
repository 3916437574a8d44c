"""
Document numbering: gapless, monotonic numbers per (company, doc type).

Numbers are reserved inside the caller's database transaction. The
document that receives the number is written in that same transaction,
so a failed write rolls the counter back and no number is lost. Every
creation path (quotes, direct invoices, conversions) follows this rule.
"""
import logging
from django.db import IntegrityError, transaction
from ..conf import ledger_setting
from ..exceptions import NumberingConflict
from ..models import DocumentSequence, Invoice, Quote

logger = logging.getLogger(__name__)

DOC_MODELS = {
    "quote": Quote,
    "invoice": Invoice,
}


def _prefix_for(company, doc_type):
    if doc_type == "quote":
        return company.quote_prefix
    return company.invoice_prefix


def _locked_sequence(company, doc_type):
    """Fetch (or open) the counter row and lock it until the transaction ends."""
    if doc_type not in DOC_MODELS:
        raise ValueError(f"Unknown document type: {doc_type!r}")
    try:
        # savepoint so a lost creation race leaves the outer transaction usable
        with transaction.atomic():
            seq, created = DocumentSequence.objects.select_for_update().get_or_create(
                company=company,
                doc_type=doc_type,
                defaults={"prefix": _prefix_for(company, doc_type)},
            )
    except IntegrityError as exc:
        raise NumberingConflict(
            f"Sequence {doc_type} for {company} was opened concurrently"
        ) from exc
    if created:
        logger.info("opened %s sequence for company %s", doc_type, company.pk)
    return seq


def _compare_and_swap(seq, expected, new):
    """Advance the counter only if nobody moved it since we read it."""
    updated = DocumentSequence.objects.filter(
        pk=seq.pk, last_value=expected
    ).update(last_value=new)
    return updated == 1


@transaction.atomic
def next_number(company, doc_type):
    """
    Reserve and return the next number, e.g. "INV-00042".

    Raises NumberingConflict when the counter row changed between the
    read and the write; the caller must retry the whole issuance.
    """
    seq = _locked_sequence(company, doc_type)
    current = seq.last_value
    issued = current + 1

    if not _compare_and_swap(seq, current, issued):
        raise NumberingConflict(
            f"Sequence {doc_type} for company {company.pk} moved past {current}"
        )

    seq.last_value = issued
    number = seq.format(issued, ledger_setting("LEDGER_NUMBER_PADDING"))
    logger.debug("reserved %s for company %s", number, company.pk)
    return number


def peek_next_number(company, doc_type):
    """Preview the next number without reserving it (display only)."""
    seq = DocumentSequence.objects.filter(company=company, doc_type=doc_type).first()
    padding = ledger_setting("LEDGER_NUMBER_PADDING")
    if seq is None:
        return f"{_prefix_for(company, doc_type)}{1:0{padding}d}"
    return seq.format(seq.last_value + 1, padding)


def sequence_gaps(company, doc_type):
    """
    Counter values in 1..last_value with no surviving document.

    A gap means a numbered document was deleted afterwards; the number
    itself is never handed out again.
    """
    seq = DocumentSequence.objects.filter(company=company, doc_type=doc_type).first()
    if seq is None:
        return []
    padding = ledger_setting("LEDGER_NUMBER_PADDING")
    model = DOC_MODELS[doc_type]
    existing = set(
        model.objects.for_company(company).values_list("number", flat=True)
    )
    return [
        value
        for value in range(1, seq.last_value + 1)
        if seq.format(value, padding) not in existing
    ]
