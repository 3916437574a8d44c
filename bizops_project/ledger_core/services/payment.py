"""
Payment ledger.

Invoice.status, paid_total and paid_at are a cache of a pure function of
the persisted payment set (see settle_status). Every mutation rewrites
the cache inside the same transaction as the payment row, and
recompute_settlement() can rebuild it from scratch at any time.
"""
import datetime
import logging
from decimal import Decimal, InvalidOperation
from typing import NamedTuple
from django.db import transaction
from django.utils import timezone
from ..conf import ledger_setting
from ..exceptions import (InvalidAmount, InvalidInvoiceStatus,
                          InvalidPaymentMethod, InvoiceNotFound,
                          PaymentNotFound)
from ..models import Invoice, Payment
from ..models.payment import PAYMENT_METHOD_CHOICES
from .audit_helper import log_action

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
PAYMENT_METHODS = {code for code, _label in PAYMENT_METHOD_CHOICES}


class Settlement(NamedTuple):
    invoice: Invoice
    paid_total: Decimal
    remaining: Decimal
    status: str


# ----------------------------
# Pure helpers
# ----------------------------
def parse_amount(amount) -> Decimal:
    """Validate a payment amount before anything touches the database."""
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Not a valid amount: {amount!r}")
    if not value.is_finite():
        raise InvalidAmount(f"Not a valid amount: {amount!r}")
    if value <= 0:
        raise InvalidAmount("Payment amount must be positive")
    if value != value.quantize(CENT):
        raise InvalidAmount("Payment amount cannot have more than 2 decimals")
    return value.quantize(CENT)


def settle_status(status, paid_total, totals_ttc, *, track_partial=None):
    """
    Invoice status implied by the amount paid so far.

    - paid_total >= totals_ttc (with money received): "paid"
    - a "paid" or "draft" invoice with a balance left becomes "sent"
    - sent / partially_paid / overdue are left alone, unless partial
      tracking is on, in which case 0 < paid < total gives
      "partially_paid" and nothing paid gives "sent"
    - cancelled never moves
    """
    if track_partial is None:
        track_partial = ledger_setting("LEDGER_TRACK_PARTIAL_PAYMENTS")

    if status == "cancelled":
        return status
    if paid_total > 0 and paid_total >= totals_ttc:
        return "paid"

    if track_partial and status != "overdue":
        if paid_total > 0:
            return "partially_paid"
        return "sent" if status != "draft" else "draft"

    if status == "paid":
        return "sent"
    if status == "draft" and paid_total > 0:
        return "sent"
    return status


def invoice_balance(invoice) -> Settlement:
    return Settlement(
        invoice=invoice,
        paid_total=invoice.paid_total,
        remaining=invoice.totals_ttc - invoice.paid_total,
        status=invoice.status,
    )


# ----------------------------
# Cache maintenance
# ----------------------------
def _apply_settlement(invoice):
    """Rewrite the invoice cache from the persisted payment set."""
    payments = Payment.objects.filter(invoice=invoice)
    paid_total = payments.total_amount()
    new_status = settle_status(invoice.status, paid_total, invoice.totals_ttc)

    invoice.paid_total = paid_total
    if new_status == "paid":
        # date of the latest payment, whatever order they were recorded in
        last = payments.order_by("-paid_at", "-id").values_list("paid_at", flat=True).first()
        invoice.paid_at = last or timezone.now()
    else:
        invoice.paid_at = None
    invoice.status = new_status
    invoice.save(update_fields=["paid_total", "status", "paid_at"])
    return invoice


def _locked_invoice(company, invoice_id):
    try:
        return Invoice.objects.select_for_update().for_company(company).get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise InvoiceNotFound(f"Invoice {invoice_id} not found")


def recompute_settlement(invoice, user=None) -> Settlement:
    """Repair paid_total / status / paid_at from the payments alone."""
    with transaction.atomic():
        invoice = _locked_invoice(invoice.company, invoice.pk)
        before = (invoice.paid_total, invoice.status)
        _apply_settlement(invoice)
        after = (invoice.paid_total, invoice.status)
        if before != after:
            logger.warning(
                "invoice %s cache drift: %s/%s -> %s/%s",
                invoice.number, before[0], before[1], after[0], after[1],
            )
            log_action(
                action="recompute_settlement",
                instance=invoice,
                user=user,
                changes={
                    "paid_total": [str(before[0]), str(after[0])],
                    "status": [before[1], after[1]],
                },
            )
    return invoice_balance(invoice)


# ----------------------------
# Payment-related workflows
# ----------------------------
def record_payment(company, invoice_id, amount, method, paid_at=None, note=None,
                   user=None) -> Payment:
    """
    Record money received against an invoice.

    The remaining balance is checked against the payments persisted at
    execution time, with the invoice row locked, so two concurrent
    recordings cannot overpay it together.
    """
    value = parse_amount(amount)
    if method not in PAYMENT_METHODS:
        raise InvalidPaymentMethod(f"Unknown payment method {method!r}")
    if paid_at is None:
        paid_at = timezone.now()
    elif isinstance(paid_at, datetime.date) and not isinstance(paid_at, datetime.datetime):
        paid_at = timezone.make_aware(
            datetime.datetime.combine(paid_at, datetime.time(12, 0)))

    with transaction.atomic():
        # Lock the invoice row until the transaction finishes
        inv = _locked_invoice(company, invoice_id)

        if inv.status == "cancelled":
            raise InvalidInvoiceStatus(f"Invoice {inv.number} is cancelled")
        if inv.status == "draft" and not ledger_setting("LEDGER_PROMOTE_DRAFT_ON_PAYMENT"):
            raise InvalidInvoiceStatus(
                f"Invoice {inv.number} is still a draft, send it first")

        paid = Payment.objects.filter(invoice=inv).total_amount()
        remaining = inv.totals_ttc - paid
        if value > remaining:
            raise InvalidAmount(
                f"Payment {value} exceeds remaining balance {remaining} on {inv.number}")

        payment = Payment(
            company=inv.company,
            invoice=inv,
            amount=value,
            method=method,
            paid_at=paid_at,
            note=note or "",
        )
        payment.save()

        old_status = inv.status
        _apply_settlement(inv)

        log_action(
            action="record_payment",
            instance=payment,
            user=user,
            changes={
                "invoice_id": inv.pk,
                "amount": str(value),
                "method": method,
                "paid_total": str(inv.paid_total),
                "status": [old_status, inv.status],
            },
        )

    logger.info(
        "payment %s of %s on %s, status %s", payment.pk, value, inv.number, inv.status)
    return payment


def reverse_payment(company, payment_id, user=None) -> Settlement:
    """Delete a payment and recompute the invoice from what is left."""
    invoice_id = (
        Payment.objects.for_company(company)
        .filter(pk=payment_id)
        .values_list("invoice_id", flat=True)
        .first()
    )
    if invoice_id is None:
        raise PaymentNotFound(f"Payment {payment_id} not found")

    with transaction.atomic():
        inv = _locked_invoice(company, invoice_id)
        # re-read under the invoice lock, a concurrent reversal may have won
        try:
            payment = Payment.objects.get(pk=payment_id, invoice=inv)
        except Payment.DoesNotExist:
            raise PaymentNotFound(f"Payment {payment_id} not found")

        amount = payment.amount
        payment_pk = payment.pk
        log_action(
            action="reverse_payment",
            instance=payment,
            user=user,
            changes={
                "invoice_id": inv.pk,
                "amount": str(amount),
                "method": payment.method,
                "paid_at": payment.paid_at.isoformat(),
            },
        )
        payment.delete()

        old_status = inv.status
        _apply_settlement(inv)

    logger.info(
        "reversed payment %s (%s) on %s, status %s -> %s",
        payment_pk, amount, inv.number, old_status, inv.status)
    return invoice_balance(inv)


def mark_overdue(company, today=None):
    """Flag open invoices whose due date has passed. Returns the count."""
    today = today or timezone.localdate()
    with transaction.atomic():
        candidates = (
            Invoice.objects.select_for_update()
            .for_company(company)
            .filter(status__in=("sent", "partially_paid"), due_date__lt=today)
        )
        count = 0
        for inv in candidates:
            inv.status = "overdue"
            inv.save(update_fields=["status"])
            log_action(action="mark_overdue", instance=inv, changes={"due_date": inv.due_date.isoformat()})
            count += 1
    if count:
        logger.info("%s invoice(s) overdue for company %s", count, company.pk)
    return count
