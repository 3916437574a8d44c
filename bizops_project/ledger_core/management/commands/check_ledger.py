from django.core.management.base import BaseCommand, CommandError

from ledger_core.models import Company, Invoice
from ledger_core.services import check_company, recompute_settlement


class Command(BaseCommand):
    help = "Cross-check invoice caches, converted lines and numbering for each company."

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            help="Slug of a single company to check (default: all companies).",
        )
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Recompute paid total and status of invoices with cache findings.",
        )

    def handle(self, *args, **options):
        companies = Company.objects.order_by("pk")
        if options["company"]:
            companies = companies.filter(slug=options["company"])
            if not companies.exists():
                raise CommandError(f"No company with slug {options['company']!r}")

        total = 0
        for company in companies:
            findings = check_company(company)
            total += len(findings)
            if not findings:
                self.stdout.write(self.style.SUCCESS(f"{company}: consistent"))
                continue

            for finding in findings:
                self.stdout.write(
                    self.style.WARNING(f"{company}: [{finding.kind}] {finding.detail}")
                )

            if options["repair"]:
                # only cache drift can be repaired, the rest needs a human
                invoice_ids = {
                    f.object_id for f in findings if f.kind in ("paid_total", "status")
                }
                for invoice in Invoice.objects.filter(pk__in=invoice_ids):
                    balance = recompute_settlement(invoice)
                    self.stdout.write(
                        self.style.NOTICE(
                            f"{company}: repaired {invoice.number} -> {balance.status}, paid {balance.paid_total}"
                        )
                    )

        if total:
            self.stdout.write(self.style.WARNING(f"{total} finding(s)."))
        else:
            self.stdout.write(self.style.SUCCESS("No findings."))
