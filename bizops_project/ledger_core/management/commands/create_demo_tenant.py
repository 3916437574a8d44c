import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from ledger_core.models import Company, Customer, EntityMembership
from ledger_core.services import (convert_quote_to_invoice, create_quote,
                                  record_payment, transition_quote)

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo tenant (company), user, and a quote converted into a partly paid invoice."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",  # Define flag
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )
        parser.add_argument(
            "--siren", default="123456789", help="SIREN used for ledger exports."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        company_name = options["company_name"]
        username = options["username"]
        password = options["password"]

        # Generate unique slug for company
        def unique_slug_for_company(name, max_tries=100):
            # Convert company name into a slug (e.g., "Test Ltd" → "test-ltd")
            base = slugify(name) or "company"
            slug = base
            i = 1
            # If plain slug is taken, append -1, -2, etc.
            while Company.objects.filter(slug=slug).exists():
                slug = f"{base}-{i}"
                i += 1
                if i > max_tries:
                    raise RuntimeError("Couldn't generate unique slug")
            return slug

        # 1. Create user
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:  # if user newly created
            user.set_password(password)
            user.save()
        self.stdout.write(
            self.style.SUCCESS(f"Created user: {user.username} (pw={password})")
        )

        # 2. Create company, owned by the demo user
        company, created = Company.objects.get_or_create(
            name=company_name,
            defaults={
                "slug": unique_slug_for_company(company_name),
                "owner": user,
                "siren": options["siren"],
            },
        )
        EntityMembership.objects.get_or_create(
            user=user, company=company, defaults={"role": "owner"}
        )
        self.stdout.write(self.style.SUCCESS(f"Created company: {company}"))

        # 3. Create customer
        customer, _ = Customer.objects.get_or_create(
            company=company,
            name=f"{company_name} Client",
            defaults={"contact_email": "billing@example.com"},
        )
        self.stdout.write(self.style.SUCCESS(f"Created customer: {customer}"))

        # 4. Quote with two lines, walked through the workflow
        today = timezone.localdate()
        quote = create_quote(
            company,
            customer,
            [
                {"description": "Consulting", "quantity": "5", "unit": "day",
                 "unit_price": "160.00", "vat_rate": company.default_vat_rate},
                {"description": "Travel", "quantity": "1",
                 "unit_price": "200.00", "vat_rate": "0"},
            ],
            date=today,
            valid_until=today + datetime.timedelta(days=30),
            user=user,
        )
        transition_quote(quote, "sent", user=user)
        transition_quote(quote, "accepted", user=user)
        self.stdout.write(
            self.style.SUCCESS(f"Created quote: {quote.number} ({quote.totals_ttc})")
        )

        # 5. Convert it and record a first payment
        invoice = convert_quote_to_invoice(company, quote.pk, user=user).invoice
        self.stdout.write(self.style.SUCCESS(f"Created invoice: {invoice.number}"))

        payment = record_payment(
            company, invoice.pk, Decimal("500.00"), "bank_transfer", user=user
        )
        self.stdout.write(
            self.style.SUCCESS(f"Recorded payment of {payment.amount} on {invoice.number}")
        )
        self.stdout.write(self.style.SUCCESS("Demo tenant setup complete!"))
