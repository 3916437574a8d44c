from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import TenantManager
from .customer import Customer
from .entitymembership import Company
from .line import LineItem
from .quote import Quote

INV_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("partially_paid", "Partially paid"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]


class Invoice(models.Model):  # Represents a customer invoice

    # Invoice belongs to one company (multi-tenant)
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        # prevent deleting customer who has an invoice
        on_delete=models.PROTECT,
    )

    # Provenance only: deleting a quote never cascades to its invoice
    quote = models.ForeignKey(
        Quote,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    # human-readable, issued by the numbering authority (e.g. "INV-00001")
    number = models.CharField(max_length=64)
    date = models.DateField(default=timezone.localdate)  # issue date
    due_date = models.DateField(null=True, blank=True)

    status = models.CharField(
        max_length=16, choices=INV_STATUS_CHOICES, default="draft"
    )
    """ Workflow:
        draft = not yet sent, lines still editable.
        sent / partially_paid / overdue = issued, balance remaining.
        paid = payments cover totals_ttc.
        cancelled = no further payments accepted. """

    currency_code = models.CharField(max_length=3, default="EUR")

    # Fixed at creation/conversion, payments never alter them
    totals_ht = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    totals_vat = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    totals_ttc = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Cache of Σ payments, rewritten by services.payment on every mutation
    paid_total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    paid_at = models.DateTimeField(null=True, blank=True)

    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "number"]),
            models.Index(fields=["company", "date"]),
            models.Index(fields=["company", "status"]),
        ]

        constraints = [
            # Within one company, each invoice number must be unique
            models.UniqueConstraint(
                fields=["company", "number"],
                name="uq_invoice_company_number"
            ),
            # A quote converts into at most one invoice
            models.UniqueConstraint(
                fields=["quote"],
                condition=models.Q(quote__isnull=False),
                name="uq_invoice_quote",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_total__gte=0),
                name="inv_non_negative_paid_total",
            ),
        ]

    def __str__(self):
        return f"Inv {self.number or self.pk}"

    @property
    def remaining_balance(self):
        return self.totals_ttc - self.paid_total

    def clean(self):
        if self.customer_id and self.customer.company_id != self.company_id:
            raise ValidationError("Customer must belong to the same company.")
        if self.quote_id and self.quote.company_id != self.company_id:
            raise ValidationError("Quote must belong to the same company.")

        """Totals and number are frozen once the invoice leaves draft"""
        if self.pk and self.status != "draft":
            orig = Invoice.objects.get(pk=self.pk)
            changed_fields = []
            for field in ["number", "totals_ht", "totals_vat", "totals_ttc", "company_id"]:
                if getattr(orig, field) != getattr(self, field):
                    changed_fields.append(field)
            if changed_fields:
                raise ValidationError(
                    f"Cannot modify {changed_fields} on an issued invoice."
                )

    def save(self, *args, **kwargs):
        self.full_clean()  # will trigger clean()
        super().save(*args, **kwargs)

    def transition_to(self, new_status):
        """Manual lifecycle moves. Payment-driven moves go through services.payment."""
        allowed = {
            "draft": ["sent", "cancelled"],
            "sent": ["cancelled"],
            "partially_paid": [],
            "overdue": ["cancelled"],
            "paid": [],
            "cancelled": [],
        }
        if new_status not in allowed.get(self.status, []):
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")
        if new_status == "cancelled" and self.payments.exists():
            raise ValidationError("Reverse the payments before cancelling.")

        self.status = new_status
        self.save(update_fields=["status"])


class InvoiceLine(LineItem):
    document = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines")

    class Meta(LineItem.Meta):
        indexes = [
            models.Index(fields=["company", "document"]),
        ]

    def _ensure_draft(self):
        status = Invoice.objects.only("status").get(pk=self.document_id).status
        if status != "draft":
            raise ValidationError("Lines can only change while the invoice is draft.")

    def save(self, *args, **kwargs):
        self._ensure_draft()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._ensure_draft()
        return super().delete(*args, **kwargs)
