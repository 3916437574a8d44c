import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from ledger_core.models import EntityMembership, Invoice, Payment
from ledger_core.services import create_quote, record_payment

from .helpers import (CONSULTING, make_accepted_quote, make_company,
                      make_customer, make_sent_invoice)

User = get_user_model()


class LedgerApiTests(TestCase):
    def setUp(self):
        self.company = make_company(siren="123456789")
        self.customer = make_customer(self.company, account_code="ACME")
        self.user = User.objects.create_user(username="alice", password="pw")
        EntityMembership.objects.create(user=self.user, company=self.company, role="accountant")
        self.client.force_login(self.user)

    def test_convert_quote_then_repeat(self):
        quote = make_accepted_quote(self.company, self.customer)
        url = reverse("ledger_core:convert-quote", args=[quote.pk])

        response = self.client.post(url, {"payment_terms_days": "15"})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["number"], "INV-00001")
        self.assertFalse(body["already_converted"])
        invoice = Invoice.objects.get(pk=body["invoice_id"])
        self.assertEqual(invoice.due_date - invoice.date, datetime.timedelta(days=15))

        again = self.client.post(url)
        self.assertEqual(again.status_code, 200)
        self.assertTrue(again.json()["already_converted"])
        self.assertEqual(again.json()["invoice_id"], invoice.pk)

    def test_convert_errors_map_to_status_codes(self):
        draft = create_quote(self.company, self.customer, [CONSULTING])
        response = self.client.post(reverse("ledger_core:convert-quote", args=[draft.pk]))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "InvalidQuoteStatus")

        response = self.client.post(reverse("ledger_core:convert-quote", args=[999999]))
        self.assertEqual(response.status_code, 404)

        response = self.client.post(
            reverse("ledger_core:convert-quote", args=[draft.pk]), {"payment_terms_days": "soon"}
        )
        self.assertEqual(response.status_code, 400)

    def test_convert_requires_post(self):
        quote = make_accepted_quote(self.company, self.customer)
        response = self.client.get(reverse("ledger_core:convert-quote", args=[quote.pk]))
        self.assertEqual(response.status_code, 405)

    def test_record_and_reverse_payment(self):
        invoice = make_sent_invoice(self.company, self.customer)
        url = reverse("ledger_core:record-payment", args=[invoice.pk])

        response = self.client.post(url, {"amount": "500.00", "method": "cheque", "paid_at": "2025-01-12"})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"], "sent")
        self.assertEqual(Decimal(body["remaining"]), Decimal("700.00"))
        self.assertEqual(Decimal(body["paid_total"]), Decimal("500.00"))

        response = self.client.post(url, {"amount": "700.00"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], "paid")
        payment_id = response.json()["payment_id"]
        self.assertEqual(Payment.objects.get(pk=payment_id).method, "bank_transfer")

        response = self.client.post(reverse("ledger_core:reverse-payment", args=[payment_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "sent")
        self.assertEqual(Decimal(response.json()["remaining"]), Decimal("700.00"))

    def test_payment_validation_errors(self):
        invoice = make_sent_invoice(self.company, self.customer)
        url = reverse("ledger_core:record-payment", args=[invoice.pk])

        for data, error in (
            ({"amount": "2000.00"}, "InvalidAmount"),
            ({"amount": "-1"}, "InvalidAmount"),
            ({"amount": "10", "method": "barter"}, "InvalidPaymentMethod"),
        ):
            response = self.client.post(url, data)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["error"], error)

        response = self.client.post(url, {"amount": "10", "paid_at": "yesterday"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Payment.objects.exists())

    def test_invoice_balance(self):
        invoice = make_sent_invoice(self.company, self.customer)
        record_payment(self.company, invoice.pk, "200.00", "cash")
        response = self.client.get(reverse("ledger_core:invoice-balance", args=[invoice.pk]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["number"], invoice.number)
        self.assertEqual(Decimal(body["remaining"]), Decimal("1000.00"))

    def test_ledger_export_download(self):
        make_sent_invoice(self.company, self.customer, issue_date=datetime.date(2025, 1, 10))
        response = self.client.get(
            reverse("ledger_core:ledger-export"), {"start": "2025-01-01", "end": "2025-01-31"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response["Content-Disposition"], 'attachment; filename="123456789FEC20250131.txt"'
        )
        rows = response.content.decode("utf-8").split("\n")
        self.assertEqual(len(rows), 2)
        self.assertTrue(rows[0].startswith("VT|20250110|706000|411ACME|INV-00001|"))

    def test_ledger_export_bad_requests(self):
        url = reverse("ledger_core:ledger-export")
        self.assertEqual(self.client.get(url, {"start": "2025-02-01", "end": "2025-01-01"}).status_code, 400)
        self.assertEqual(
            self.client.get(url, {"start": "2025-01-01", "end": "2025-01-31", "tax_id": "12"}).status_code, 400
        )
        self.assertEqual(self.client.get(url, {"start": "January"}).status_code, 400)

    def test_other_company_records_are_invisible(self):
        other = make_company("Other Co")
        foreign = make_sent_invoice(other, make_customer(other))
        response = self.client.get(reverse("ledger_core:invoice-balance", args=[foreign.pk]))
        self.assertEqual(response.status_code, 404)
        response = self.client.post(
            reverse("ledger_core:record-payment", args=[foreign.pk]), {"amount": "10"}
        )
        self.assertEqual(response.status_code, 404)


class NoCompanyTests(TestCase):
    def test_anonymous_request_is_refused(self):
        response = self.client.get(reverse("ledger_core:invoice-balance", args=[1]))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "NoCompany")

    def test_user_without_membership_is_refused(self):
        user = User.objects.create_user(username="bob", password="pw")
        self.client.force_login(user)
        response = self.client.get(
            reverse("ledger_core:ledger-export"), {"start": "2025-01-01", "end": "2025-01-31"}
        )
        self.assertEqual(response.status_code, 403)
