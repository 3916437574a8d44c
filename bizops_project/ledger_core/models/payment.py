from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import PaymentManager
from .entitymembership import Company
from .invoice import Invoice

PAYMENT_METHOD_CHOICES = [
    ("bank_transfer", "Bank transfer"),
    ("cheque", "Cheque"),
    ("cash", "Cash"),
    ("card", "Card"),
    ("direct_debit", "Direct debit"),
    ("other", "Other"),
]


class Payment(models.Model):
    """
    Money received against one invoice.
    Payments are append-only: amending one means reversing it and
    recording a new one, so the invoice cache is always recomputed.
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # The invoice is the sole owner of its payments
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    paid_at = models.DateTimeField(default=timezone.now)
    note = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping, plus .total_amount()
    objects = PaymentManager()

    class Meta:
        ordering = ("paid_at", "id")
        indexes = [
            models.Index(fields=["company", "invoice"]),
            models.Index(fields=["company", "paid_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_positive_amount",
            ),
        ]

    def __str__(self):
        return f"{self.amount} {self.get_method_display()} → {self.invoice}"

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Payment amount must be positive")
        # Prevent cross-company contamination
        if self.invoice_id and self.invoice.company_id != self.company_id:
            raise ValidationError("Invoice must belong to the same company.")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Payments cannot be edited, reverse and record again.")
        self.full_clean()
        return super().save(*args, **kwargs)
