import datetime
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase

from ledger_core.exceptions import (InvalidAmount, InvalidQuoteStatus,
                                    PersistenceFailure, QuoteNotFound)
from ledger_core.models import AuditLog, Invoice, InvoiceLine, Quote, QuoteLine
from ledger_core.services import (convert_quote_to_invoice, create_invoice,
                                  create_quote, find_orphaned_invoices,
                                  next_number, peek_next_number,
                                  transition_quote)
from ledger_core.services import conversion

from .helpers import CONSULTING, make_accepted_quote, make_company, make_customer

ISSUE_DATE = datetime.date(2025, 1, 10)


class QuoteConversionTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.quote = make_accepted_quote(self.company, self.customer)

    def test_accepted_quote_becomes_draft_invoice(self):
        result = convert_quote_to_invoice(self.company, self.quote.pk, issue_date=ISSUE_DATE)

        self.assertTrue(result.created)
        invoice = result.invoice
        self.assertEqual(self.quote.number, "Q-00001")
        self.assertEqual(invoice.number, "INV-00001")
        self.assertEqual(invoice.status, "draft")
        self.assertEqual(invoice.quote_id, self.quote.pk)
        self.assertEqual(invoice.customer_id, self.customer.pk)
        self.assertEqual(invoice.date, ISSUE_DATE)
        self.assertEqual(invoice.due_date, ISSUE_DATE + datetime.timedelta(days=30))
        self.assertEqual(invoice.totals_ht, Decimal("1000.00"))
        self.assertEqual(invoice.totals_vat, Decimal("200.00"))
        self.assertEqual(invoice.totals_ttc, Decimal("1200.00"))
        self.assertEqual(invoice.paid_total, Decimal("0.00"))

        self.quote.refresh_from_db()
        self.assertIsNotNone(self.quote.converted_at)

    def test_lines_are_copied_one_for_one(self):
        quote = make_accepted_quote(self.company, self.customer, rows=[
            {"description": "Design", "quantity": "2", "unit": "day", "unit_price": "450", "vat_rate": "20"},
            {"description": "Licence", "quantity": "1", "unit_price": "99.90", "vat_rate": "5.5"},
        ])
        invoice = convert_quote_to_invoice(self.company, quote.pk).invoice

        quote_lines = list(quote.lines.order_by("position"))
        invoice_lines = list(invoice.lines.order_by("position"))
        self.assertEqual(len(invoice_lines), 2)
        for q_line, i_line in zip(quote_lines, invoice_lines):
            self.assertNotEqual(q_line.pk, i_line.pk)
            for field in InvoiceLine.CLONED_FIELDS:
                self.assertEqual(getattr(i_line, field), getattr(q_line, field))

    def test_totals_are_carried_over_not_recomputed(self):
        Quote.objects.filter(pk=self.quote.pk).update(
            totals_ht=Decimal("999.99"), totals_vat=Decimal("200.01"), totals_ttc=Decimal("1200.00")
        )
        invoice = convert_quote_to_invoice(self.company, self.quote.pk).invoice
        self.assertEqual(invoice.totals_ht, Decimal("999.99"))
        self.assertEqual(invoice.totals_vat, Decimal("200.01"))

    def test_second_conversion_returns_existing_invoice(self):
        first = convert_quote_to_invoice(self.company, self.quote.pk)
        second = convert_quote_to_invoice(self.company, self.quote.pk)

        self.assertTrue(first.created)
        self.assertFalse(second.created)
        self.assertTrue(second.already_converted)
        self.assertEqual(first.invoice.pk, second.invoice.pk)
        self.assertEqual(Invoice.objects.filter(quote=self.quote).count(), 1)
        self.assertEqual(AuditLog.objects.filter(action="convert").count(), 1)
        # no invoice number was burnt by the repeat
        self.assertEqual(peek_next_number(self.company, "invoice"), "INV-00002")

    def test_signed_quote_converts(self):
        quote = transition_quote(self.quote, "signed")
        self.assertIsNotNone(quote.signed_at)
        self.assertTrue(convert_quote_to_invoice(self.company, quote.pk).created)

    def test_draft_quote_is_rejected(self):
        draft = create_quote(self.company, self.customer, [CONSULTING])
        with self.assertRaises(InvalidQuoteStatus):
            convert_quote_to_invoice(self.company, draft.pk)
        self.assertFalse(Invoice.objects.exists())

    def test_rejected_quote_is_rejected(self):
        quote = create_quote(self.company, self.customer, [CONSULTING])
        transition_quote(quote, "sent")
        transition_quote(quote, "rejected")
        with self.assertRaises(InvalidQuoteStatus):
            convert_quote_to_invoice(self.company, quote.pk)

    def test_unknown_quote(self):
        with self.assertRaises(QuoteNotFound):
            convert_quote_to_invoice(self.company, 999999)

    def test_quote_of_another_company_is_not_found(self):
        other = make_company("Other Co")
        with self.assertRaises(QuoteNotFound):
            convert_quote_to_invoice(other, self.quote.pk)
        self.assertFalse(Invoice.objects.exists())

    def test_payment_terms_precedence(self):
        self.customer.payment_terms_days = 45
        self.customer.save()
        invoice = convert_quote_to_invoice(self.company, self.quote.pk, issue_date=ISSUE_DATE).invoice
        self.assertEqual(invoice.due_date, datetime.date(2025, 2, 24))

        quote = make_accepted_quote(self.company, self.customer)
        invoice = convert_quote_to_invoice(
            self.company, quote.pk, issue_date=ISSUE_DATE, payment_terms_days=0
        ).invoice
        self.assertEqual(invoice.due_date, ISSUE_DATE)

    def test_converted_quote_is_frozen(self):
        convert_quote_to_invoice(self.company, self.quote.pk)
        line = self.quote.lines.first()

        line.unit_price = Decimal("1.00")
        with self.assertRaises(ValidationError):
            line.save()
        with self.assertRaises(ValidationError):
            QuoteLine.objects.create(document=self.quote, description="Extra", unit_price=Decimal("5"))
        with self.assertRaises(ValidationError):
            transition_quote(self.quote, "expired")
        with self.assertRaises(ValidationError):
            Quote.objects.get(pk=self.quote.pk).delete()

    def test_partial_write_rolls_everything_back(self):
        # lines silently lost on the way to the store
        with mock.patch("ledger_core.services.conversion.clone_lines", return_value=[]):
            with self.assertRaises(PersistenceFailure):
                convert_quote_to_invoice(self.company, self.quote.pk)

        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(AuditLog.objects.filter(action="convert").exists())
        self.quote.refresh_from_db()
        self.assertIsNone(self.quote.converted_at)
        self.assertEqual(peek_next_number(self.company, "invoice"), "INV-00001")

        # a clean retry succeeds with the same number
        self.assertEqual(convert_quote_to_invoice(self.company, self.quote.pk).invoice.number, "INV-00001")

    def test_orphaned_invoices_are_reported(self):
        invoice = convert_quote_to_invoice(self.company, self.quote.pk).invoice
        self.assertListEqual(find_orphaned_invoices(self.company), [])

        InvoiceLine.objects.filter(document=invoice).delete()
        orphans = find_orphaned_invoices(self.company)
        self.assertEqual(len(orphans), 1)
        self.assertEqual(orphans[0][0].pk, invoice.pk)
        self.assertEqual(orphans[0][1:], (1, 0))


class ConcurrentConversionTests(TestCase):
    """Another request converts the same quote while this one is in flight."""

    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.quote = make_accepted_quote(self.company, self.customer)
        real_lookup = conversion._existing_invoice
        calls = []

        def lookup_before_winner_committed(quote):
            # both pre-checks ran before the other request wrote its invoice
            calls.append(quote.pk)
            return None if len(calls) <= 2 else real_lookup(quote)

        self.stale_lookup = lookup_before_winner_committed

    def make_winner(self):
        return Invoice.objects.create(
            company=self.company,
            customer=self.customer,
            quote=self.quote,
            number=next_number(self.company, "invoice"),
            date=ISSUE_DATE,
            totals_ht=self.quote.totals_ht,
            totals_vat=self.quote.totals_vat,
            totals_ttc=self.quote.totals_ttc,
        )

    def assertLostRace(self, result, winner):
        self.assertFalse(result.created)
        self.assertEqual(result.invoice.pk, winner.pk)
        self.assertEqual(Invoice.objects.filter(quote=self.quote).count(), 1)
        self.assertFalse(InvoiceLine.objects.exists())
        self.assertFalse(AuditLog.objects.filter(action="convert").exists())
        # the loser's number was rolled back with its invoice
        self.assertEqual(peek_next_number(self.company, "invoice"), "INV-00002")

    def test_model_validation_catches_the_duplicate(self):
        winner = self.make_winner()
        with mock.patch.object(conversion, "_existing_invoice", side_effect=self.stale_lookup):
            result = convert_quote_to_invoice(self.company, self.quote.pk)
        self.assertLostRace(result, winner)

    def test_database_constraint_catches_the_duplicate(self):
        winner = self.make_winner()
        # skip model validation so the unique index itself rejects the row
        with mock.patch.object(conversion, "_existing_invoice", side_effect=self.stale_lookup), \
                mock.patch.object(Invoice, "full_clean"):
            result = convert_quote_to_invoice(self.company, self.quote.pk)
        self.assertLostRace(result, winner)


class ZeroTotalTests(TestCase):
    FREE = {"description": "Goodwill visit", "quantity": "1", "unit_price": "0.00", "vat_rate": "20.00"}

    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)

    def test_zero_total_quote_cannot_be_converted(self):
        quote = make_accepted_quote(self.company, self.customer, rows=[self.FREE])
        self.assertEqual(quote.totals_ttc, Decimal("0.00"))

        with self.assertRaises(InvalidAmount):
            convert_quote_to_invoice(self.company, quote.pk)
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(peek_next_number(self.company, "invoice"), "INV-00001")

    def test_zero_total_invoice_is_rejected(self):
        with self.assertRaises(InvalidAmount):
            create_invoice(self.company, self.customer, [self.FREE])
        with self.assertRaises(InvalidAmount):
            create_invoice(self.company, self.customer, [])
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(peek_next_number(self.company, "invoice"), "INV-00001")
