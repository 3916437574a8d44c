from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class LineItem(models.Model):
    """
    Billable line shared by quotes and invoices.
    Subclasses add the FK to their parent document as `document`.
    """

    # Fields copied one-for-one when a quote is converted
    CLONED_FIELDS = (
        "position",
        "description",
        "quantity",
        "unit",
        "unit_price",
        "vat_rate",
        "line_total_ht",
    )

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # order of the line on the document, starting at 1
    position = models.PositiveIntegerField(default=1)
    description = models.TextField(blank=True, default="")

    # Core pricing logic: quantity × unit_price = line_total_ht
    quantity = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("1")
    )
    unit = models.CharField(max_length=20, default="u")
    unit_price = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0.00")
    )
    # percentage, 20.00 means 20 %
    vat_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    # exact product, rounding happens when totals are aggregated
    line_total_ht = models.DecimalField(
        max_digits=26, decimal_places=8, default=Decimal("0")
    )

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        abstract = True
        ordering = ("position", "id")

    def __str__(self):
        return f"{self.position}. {self.description[:40]} ({self.line_total_ht})"

    def compute_line_total(self):
        return (self.quantity or Decimal("0")) * (self.unit_price or Decimal("0"))

    def clean(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError("Quantity must be >= 0")
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0")
        if self.vat_rate is not None and not (0 <= self.vat_rate <= 100):
            raise ValidationError("VAT rate must be between 0 and 100")

        # Tenant safety
        doc = getattr(self, "document", None)
        if doc is not None and self.company_id and doc.company_id != self.company_id:
            raise ValidationError("Line company must match its document company")

    """ Ensure no inconsistent line can ever be persisted """

    def save(self, *args, **kwargs):
        # copy company from the parent document if missing
        if not self.company_id and getattr(self, "document_id", None):
            self.company_id = self.document.company_id
        self.line_total_ht = self.compute_line_total()
        self.full_clean()
        return super().save(*args, **kwargs)
