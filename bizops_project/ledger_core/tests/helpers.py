import datetime

from ledger_core.models import Company, Customer
from ledger_core.services import (convert_quote_to_invoice, create_quote,
                                  transition_quote)

# 10 × 100.00 at 20 % VAT → 1000.00 HT, 200.00 VAT, 1200.00 TTC
CONSULTING = {"description": "Consulting", "quantity": "10", "unit": "h",
              "unit_price": "100.00", "vat_rate": "20.00"}


def make_company(name="Test Co", slug=None, **extra):
    return Company.objects.create(name=name, slug=slug or name.lower().replace(" ", "-"), **extra)


def make_customer(company, name="Acme", **extra):
    return Customer.objects.create(company=company, name=name, **extra)


def make_accepted_quote(company, customer, rows=None, date=None):
    """Numbered quote moved draft → sent → accepted."""
    quote = create_quote(company, customer, rows or [CONSULTING], date=date)
    transition_quote(quote, "sent")
    return transition_quote(quote, "accepted")


def make_sent_invoice(company, customer, rows=None, issue_date=None):
    """Convert a fresh accepted quote and send the invoice."""
    quote = make_accepted_quote(company, customer, rows)
    invoice = convert_quote_to_invoice(
        company, quote.pk, issue_date=issue_date or datetime.date(2025, 1, 10)
    ).invoice
    invoice.transition_to("sent")
    return invoice
