from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from ..managers import TenantManager


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant / Organization"""
    # Store company’s full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # Link to a user account (creator or admin of company)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )

    # Single currency per company, no conversion is performed
    currency_code = models.CharField(max_length=3, default="EUR")

    # French company identifier, used as the default export tax id
    siren = models.CharField(max_length=9, blank=True, default="")

    # Billing settings
    quote_prefix = models.CharField(max_length=20, default="Q-")
    invoice_prefix = models.CharField(max_length=20, default="INV-")
    payment_terms_days = models.PositiveIntegerField(default=30)
    """ Example: If terms = 30 → invoice due 30 days after issue. """
    default_vat_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("20.00"),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )

    # Store timestamp when the record is first created
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    def clean(self):
        if self.siren and not (len(self.siren) == 9 and self.siren.isdigit()):
            raise ValidationError("SIREN must be exactly 9 digits.")

    def save(self, *args, **kwargs):
        # Organization is immutable once created, except for billing settings
        if self.pk:
            orig = Company.objects.only("slug").get(pk=self.pk)
            if orig.slug != self.slug:
                raise ValidationError("Company slug cannot be changed.")
        self.full_clean()
        return super().save(*args, **kwargs)


# ---------- EntityMembership ----------
class EntityMembership(
    models.Model
):  # Bridge table between User and Company

    ROLE_CHOICES = [
        ("owner", "Owner"),
        ("admin", "Admin"),
        # can record payments, convert quotes, export
        ("accountant", "Accountant"),
        ("viewer", "Viewer"),  # read-only access
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",  # See all companies users belong to
    )

    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="memberships"
    )

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default="viewer",  # Defaults to "viewer" (safe, read-only)
    )

    # Suspend someone’s access without deleting the record
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # one user can only have one membership per company
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "user"]),
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"
