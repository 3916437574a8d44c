from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.utils import timezone

from ledger_core.models import Company
from ledger_core.services import generate_ledger_export


class Command(BaseCommand):
    help = "Seed a demo company (wraps create_demo_tenant) and print its ledger export for this month."

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company",  # Define flag
            type=str,
            default="Demo Ltd",
            help="Name of the demo company (default: Demo Ltd)",
        )
        parser.add_argument("--username", default="demo")
        parser.add_argument(
            "--no-export",
            action="store_true",
            help="Skip printing the ledger export.",
        )

    def handle(self, *args, **options):
        com_name = options["company"]

        self.stdout.write(self.style.NOTICE(f"Seeding demo data for {com_name}..."))
        call_command(
            "create_demo_tenant",
            company_name=com_name,
            username=options["username"],
            stdout=self.stdout,
        )

        if not options["no_export"]:
            company = Company.objects.get(name=com_name)
            today = timezone.localdate()
            document = generate_ledger_export(company, today.replace(day=1), today)
            self.stdout.write(self.style.NOTICE(f"--- {document.filename} ---"))
            self.stdout.write(document.content)
        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully!"))
