from django.db import models
from ..managers import TenantManager
from .entitymembership import Company

DOC_TYPE_CHOICES = [
    ("quote", "Quote"),
    ("invoice", "Invoice"),
]


# ---------- Document number counter ----------
class DocumentSequence(models.Model):
    """
    One counter row per (company, document type).
    last_value only ever moves forward, through a locked
    compare-and-swap in services.numbering.
    """
    company = models.ForeignKey(Company, on_delete=models.PROTECT)
    doc_type = models.CharField(max_length=10, choices=DOC_TYPE_CHOICES)
    # prefix captured when the sequence was opened
    prefix = models.CharField(max_length=20)
    last_value = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "doc_type"], name="uq_sequence_company_doctype"
            ),
        ]

    def __str__(self):
        return f"{self.company} {self.doc_type} #{self.last_value}"

    def format(self, value, padding):
        return f"{self.prefix}{value:0{padding}d}"
