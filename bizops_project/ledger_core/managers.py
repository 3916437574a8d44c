from decimal import ROUND_HALF_UP, Decimal
from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce

CENT = Decimal("0.01")


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):
        return self.filter(company=company)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    # Allow Django to serialize this manager in migrations
    use_in_migrations = True

    # every model using TenantManager can call:
    # Invoice.objects.for_company(request.company)


class PaymentQuerySet(TenantQuerySet):
    def total_amount(self):
        """Sum of the payment amounts, 0.00 for an empty set."""
        total = self.aggregate(
            total=Coalesce(
                Sum("amount"),
                models.Value(Decimal("0.00")),
                output_field=models.DecimalField(max_digits=18, decimal_places=2),
            )
        )["total"]
        # SQLite returns the sum unrounded (e.g. 700.100000000000)
        return Decimal(str(total)).quantize(CENT, rounding=ROUND_HALF_UP)


class PaymentManager(models.Manager.from_queryset(PaymentQuerySet)):
    use_in_migrations = True
