from typing import NamedTuple
from ..models import Invoice, Payment
from .conversion import find_orphaned_invoices
from .numbering import sequence_gaps
from .payment import settle_status


class Finding(NamedTuple):
    kind: str
    object_id: int
    detail: str


def check_company(company):
    """
    Cross-check the cached invoice state against the records it derives from.

    Returns a list of Findings; an empty list means the ledger is consistent.
    """
    findings = []

    for inv in Invoice.objects.for_company(company).order_by("number"):
        paid = Payment.objects.filter(invoice=inv).total_amount()
        if paid != inv.paid_total:
            findings.append(Finding(
                "paid_total", inv.pk,
                f"{inv.number}: cached {inv.paid_total}, payments sum to {paid}"))
        # a fully paid invoice must say so, and only then
        expected = settle_status(inv.status, paid, inv.totals_ttc)
        if (expected == "paid") != (inv.status == "paid"):
            findings.append(Finding(
                "status", inv.pk,
                f"{inv.number}: status {inv.status}, payments imply {expected}"))
        if paid > inv.totals_ttc:
            findings.append(Finding(
                "overpaid", inv.pk,
                f"{inv.number}: paid {paid} over total {inv.totals_ttc}"))

    for inv, expected, actual in find_orphaned_invoices(company):
        findings.append(Finding(
            "orphaned_lines", inv.pk,
            f"{inv.number}: {actual} line(s), quote has {expected}"))

    for doc_type in ("quote", "invoice"):
        gaps = sequence_gaps(company, doc_type)
        if gaps:
            findings.append(Finding(
                "numbering_gap", company.pk,
                f"{doc_type} numbers without a document: {gaps}"))
    return findings
