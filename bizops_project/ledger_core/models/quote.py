from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import TenantManager
from .customer import Customer
from .entitymembership import Company
from .line import LineItem

QUOTE_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("accepted", "Accepted"),
    ("signed", "Signed"),
    ("expired", "Expired"),
    ("rejected", "Rejected"),
]

# Quotes in these states can be turned into an invoice
CONVERTIBLE_STATUSES = ("accepted", "signed")


class Quote(models.Model):  # Represents a customer quote (devis)

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
    )

    # human-readable, issued by the numbering authority (e.g. "Q-00001")
    number = models.CharField(max_length=64)
    date = models.DateField(default=timezone.localdate)  # issue date
    valid_until = models.DateField(null=True, blank=True)

    status = models.CharField(
        max_length=10, choices=QUOTE_STATUS_CHOICES, default="draft"
    )
    currency_code = models.CharField(max_length=3, default="EUR")

    # Derived from lines by recalc_totals(), never typed in
    totals_ht = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    totals_vat = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    totals_ttc = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Set once by the conversion engine
    converted_at = models.DateTimeField(null=True, blank=True)
    signed_at = models.DateTimeField(null=True, blank=True)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "customer"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "number"], name="uq_quote_company_number"
            )
        ]

    def __str__(self):
        return f"Quote {self.number or self.pk}"

    @property
    def is_converted(self):
        return self.converted_at is not None

    def recalc_totals(self):
        """Recompute header totals from the persisted lines."""
        from ..services.lines import compute_totals

        if not self.pk:
            totals = compute_totals([])
        else:
            totals = compute_totals(self.lines.all())
        self.totals_ht, self.totals_vat, self.totals_ttc = totals

    def clean(self):
        if self.customer_id and self.customer.company_id != self.company_id:
            raise ValidationError("Customer must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # the invoice keeps a PROTECT reference, refuse early with a clear message
        if self.is_converted:
            raise ValidationError("Cannot delete a quote that has been converted.")
        return super().delete(*args, **kwargs)

    def transition_to(self, new_status):
        """Move along the quote workflow, refusing anything else."""
        allowed = {
            "draft": ["sent"],
            "sent": ["accepted", "rejected", "expired"],
            "accepted": ["signed", "expired"],
            "signed": [],
            "expired": ["sent"],
            "rejected": [],
        }
        if self.is_converted:
            raise ValidationError("A converted quote cannot change status.")
        if new_status not in allowed.get(self.status, []):
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")

        self.status = new_status
        if new_status == "signed":
            self.signed_at = timezone.now()
        self.save(update_fields=["status", "signed_at"])


class QuoteLine(LineItem):
    document = models.ForeignKey(
        Quote, on_delete=models.CASCADE, related_name="lines")

    class Meta(LineItem.Meta):
        indexes = [
            models.Index(fields=["company", "document"]),
        ]

    def save(self, *args, **kwargs):
        quote = Quote.objects.only("converted_at").get(pk=self.document_id)
        if quote.converted_at is not None:
            raise ValidationError("Lines of a converted quote are frozen.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.document.is_converted:
            raise ValidationError("Lines of a converted quote are frozen.")
        return super().delete(*args, **kwargs)
