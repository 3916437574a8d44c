from django.core.exceptions import \
    ValidationError  # Built-in way to raise validation errors
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company


# ---------- Customer ----------
# Represents client who receives quotes and invoices (AR side)
class Customer(models.Model):
    # Multi-tenant: every customer belongs to a single company.
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # The customer’s legal or trade name
    name = models.CharField(max_length=200)

    # Optional contact for billing/communication
    contact_email = models.EmailField(null=True, blank=True)

    # Overrides Company.payment_terms_days when set
    payment_terms_days = models.PositiveIntegerField(null=True, blank=True)

    # Auxiliary account code appended to the receivable account in exports
    """ Example: account_code "C00042" → receivable "411C00042". """
    account_code = models.CharField(max_length=20, blank=True, default="")

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:

        indexes = [
            models.Index(fields=["company", "name"]),
        ]

        # Enforce uniqueness per tenant
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_customer_name"
            ),
        ]

    # Display customer name in admin/UI
    def __str__(self):
        return self.name

    @property
    def receivable_code(self):
        return self.account_code or f"C{self.pk:05d}"

    def clean(self):
        code = self.account_code
        # the export file is pipe-delimited
        if code and not code.isalnum():
            raise ValidationError("Account code must be alphanumeric")
        return super().clean()

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
