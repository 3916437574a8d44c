import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from ledger_core.exceptions import (InvalidAmount, InvalidInvoiceStatus,
                                    InvalidPaymentMethod, InvoiceNotFound,
                                    PaymentNotFound)
from ledger_core.models import AuditLog, Invoice, Payment
from ledger_core.services import (convert_quote_to_invoice, invoice_balance,
                                  mark_overdue, recompute_settlement,
                                  record_payment, reverse_payment,
                                  settle_status)

from .helpers import (make_accepted_quote, make_company, make_customer,
                      make_sent_invoice)

TTC = Decimal("1200.00")


class PaymentLedgerTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.invoice = make_sent_invoice(self.company, self.customer)

    def pay(self, amount, **kwargs):
        return record_payment(self.company, self.invoice.pk, amount, "bank_transfer", **kwargs)

    def assertConsistent(self):
        """paid_total is the sum of the payments and status agrees with it."""
        inv = Invoice.objects.get(pk=self.invoice.pk)
        paid = sum((p.amount for p in Payment.objects.filter(invoice=inv)), Decimal("0.00"))
        self.assertEqual(inv.paid_total, paid)
        self.assertEqual(inv.status == "paid", paid >= inv.totals_ttc)
        self.assertEqual(inv.paid_at is not None, inv.status == "paid")
        return inv

    def test_pay_in_two_steps_then_reverse(self):
        self.pay("500.00", paid_at=datetime.date(2025, 1, 12))
        inv = self.assertConsistent()
        self.assertEqual(inv.status, "sent")
        self.assertEqual(inv.paid_total, Decimal("500.00"))
        self.assertEqual(invoice_balance(inv).remaining, Decimal("700.00"))

        second = self.pay("700.00", paid_at=datetime.date(2025, 1, 15))
        inv = self.assertConsistent()
        self.assertEqual(inv.status, "paid")
        self.assertEqual(inv.paid_total, TTC)
        self.assertEqual(inv.paid_at.date(), datetime.date(2025, 1, 15))

        balance = reverse_payment(self.company, second.pk)
        self.assertEqual(balance.status, "sent")
        self.assertEqual(balance.paid_total, Decimal("500.00"))
        self.assertEqual(balance.remaining, Decimal("700.00"))
        inv = self.assertConsistent()
        self.assertIsNone(inv.paid_at)
        self.assertFalse(Payment.objects.filter(pk=second.pk).exists())

    def test_overpayment_is_rejected_without_writing(self):
        with self.assertRaises(InvalidAmount):
            self.pay("1200.01")
        self.assertFalse(Payment.objects.exists())

        self.pay("500.00")
        with self.assertRaises(InvalidAmount):
            self.pay("700.01")
        self.assertEqual(Payment.objects.count(), 1)
        self.assertConsistent()

    def test_exact_remaining_balance_is_accepted(self):
        self.pay("1199.99")
        self.pay("0.01")
        self.assertEqual(self.assertConsistent().status, "paid")

    def test_cent_amounts_keep_the_cache_at_two_decimals(self):
        self.pay("700.10")
        self.pay("0.10")
        third = self.pay("0.20")
        inv = self.assertConsistent()
        self.assertEqual(inv.paid_total, Decimal("700.40"))
        self.assertEqual(inv.paid_total.as_tuple().exponent, -2)

        reverse_payment(self.company, third.pk)
        balance = recompute_settlement(Invoice.objects.get(pk=self.invoice.pk))
        self.assertEqual(balance.paid_total, Decimal("700.20"))
        self.assertEqual(balance.remaining, Decimal("499.80"))
        self.assertConsistent()

    def test_back_dated_final_payment_keeps_latest_date(self):
        self.pay("600.00", paid_at=datetime.date(2025, 1, 20))
        self.pay("600.00", paid_at=datetime.date(2025, 1, 12))
        inv = self.assertConsistent()
        self.assertEqual(inv.status, "paid")
        self.assertEqual(inv.paid_at.date(), datetime.date(2025, 1, 20))

        inv = recompute_settlement(inv).invoice
        self.assertEqual(inv.paid_at.date(), datetime.date(2025, 1, 20))

    def test_bad_amounts_and_methods(self):
        for amount in ("0", "-5", "abc", "10.001", "NaN", None):
            with self.assertRaises(InvalidAmount):
                self.pay(amount)
        with self.assertRaises(InvalidPaymentMethod):
            record_payment(self.company, self.invoice.pk, "10.00", "bitcoin")
        self.assertFalse(Payment.objects.exists())

    def test_invariant_holds_over_a_sequence_of_operations(self):
        first = self.pay("100.00")
        self.assertConsistent()
        second = self.pay("300.00")
        self.assertConsistent()
        reverse_payment(self.company, first.pk)
        self.assertConsistent()
        self.pay("900.00")
        self.assertEqual(self.assertConsistent().status, "paid")
        reverse_payment(self.company, second.pk)
        self.assertEqual(self.assertConsistent().status, "sent")

    def test_payments_are_append_only(self):
        payment = self.pay("100.00")
        payment.amount = Decimal("50.00")
        with self.assertRaises(ValidationError):
            payment.save()

    def test_audit_trail(self):
        payment = self.pay("100.00")
        reverse_payment(self.company, payment.pk)
        actions = list(
            AuditLog.objects.filter(object_type="Payment").order_by("pk").values_list("action", flat=True)
        )
        self.assertListEqual(actions, ["record_payment", "reverse_payment"])

    def test_cancelled_invoice_refuses_payments(self):
        invoice = convert_quote_to_invoice(
            self.company, make_accepted_quote(self.company, self.customer).pk
        ).invoice
        invoice.transition_to("cancelled")
        with self.assertRaises(InvalidInvoiceStatus):
            record_payment(self.company, invoice.pk, "10.00", "cash")

    def test_cannot_cancel_or_delete_invoice_with_payments(self):
        self.pay("100.00")
        with self.assertRaises(ValidationError):
            self.invoice.transition_to("cancelled")
        with self.assertRaises(ValidationError):
            Invoice.objects.get(pk=self.invoice.pk).delete()

    def test_unknown_or_foreign_records(self):
        other = make_company("Other Co")
        with self.assertRaises(InvoiceNotFound):
            record_payment(other, self.invoice.pk, "10.00", "cash")
        payment = self.pay("10.00")
        with self.assertRaises(PaymentNotFound):
            reverse_payment(other, payment.pk)
        with self.assertRaises(PaymentNotFound):
            reverse_payment(self.company, 999999)


class DraftAndPartialPolicyTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        quote = make_accepted_quote(self.company, self.customer)
        self.draft = convert_quote_to_invoice(self.company, quote.pk).invoice

    def test_payment_promotes_draft_to_sent(self):
        record_payment(self.company, self.draft.pk, "100.00", "cheque")
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.status, "sent")

    @override_settings(LEDGER_PROMOTE_DRAFT_ON_PAYMENT=False)
    def test_payment_on_draft_can_be_refused(self):
        with self.assertRaises(InvalidInvoiceStatus):
            record_payment(self.company, self.draft.pk, "100.00", "cheque")
        self.assertFalse(Payment.objects.exists())

    @override_settings(LEDGER_TRACK_PARTIAL_PAYMENTS=True)
    def test_partial_payments_tracked_when_enabled(self):
        self.draft.transition_to("sent")
        payment = record_payment(self.company, self.draft.pk, "500.00", "card")
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.status, "partially_paid")

        balance = reverse_payment(self.company, payment.pk)
        self.assertEqual(balance.status, "sent")


class OverdueAndRepairTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.invoice = make_sent_invoice(self.company, self.customer)  # due 2025-02-09

    def test_mark_overdue_flags_only_open_invoices_past_due(self):
        self.assertEqual(mark_overdue(self.company, today=datetime.date(2025, 2, 9)), 0)

        paid = make_sent_invoice(self.company, self.customer)
        record_payment(self.company, paid.pk, "1200.00", "bank_transfer")

        self.assertEqual(mark_overdue(self.company, today=datetime.date(2025, 2, 10)), 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "overdue")
        paid.refresh_from_db()
        self.assertEqual(paid.status, "paid")

    def test_overdue_invoice_can_still_be_settled(self):
        mark_overdue(self.company, today=datetime.date(2025, 3, 1))
        record_payment(self.company, self.invoice.pk, "200.00", "cash")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "overdue")
        record_payment(self.company, self.invoice.pk, "1000.00", "cash")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "paid")

    def test_recompute_repairs_a_drifted_cache(self):
        record_payment(self.company, self.invoice.pk, "1200.00", "bank_transfer")
        Invoice.objects.filter(pk=self.invoice.pk).update(
            paid_total=Decimal("0.00"), status="sent", paid_at=None
        )

        balance = recompute_settlement(Invoice.objects.get(pk=self.invoice.pk))

        self.assertEqual(balance.status, "paid")
        self.assertEqual(balance.paid_total, TTC)
        self.assertTrue(AuditLog.objects.filter(action="recompute_settlement").exists())

    def test_recompute_is_a_no_op_on_a_clean_invoice(self):
        record_payment(self.company, self.invoice.pk, "300.00", "bank_transfer")
        balance = recompute_settlement(self.invoice)
        self.assertEqual(balance.paid_total, Decimal("300.00"))
        self.assertFalse(AuditLog.objects.filter(action="recompute_settlement").exists())


@pytest.mark.parametrize(
    "status, paid, track_partial, expected",
    [
        ("sent", "0.00", False, "sent"),
        ("sent", "500.00", False, "sent"),
        ("sent", "1200.00", False, "paid"),
        ("paid", "500.00", False, "sent"),
        ("draft", "0.00", False, "draft"),
        ("draft", "500.00", False, "sent"),
        ("overdue", "500.00", False, "overdue"),
        ("cancelled", "1200.00", False, "cancelled"),
        ("sent", "500.00", True, "partially_paid"),
        ("partially_paid", "0.00", True, "sent"),
        ("paid", "500.00", True, "partially_paid"),
        ("overdue", "500.00", True, "overdue"),
        ("draft", "0.00", True, "draft"),
    ],
)
def test_settle_status(status, paid, track_partial, expected):
    assert settle_status(status, Decimal(paid), TTC, track_partial=track_partial) == expected
