from django.contrib import admin

from ledger_core.models import Company, DocumentSequence, EntityMembership
from .ReadOnly import ReadOnlyAdmin
from .mixins import TenantAdminMixin


# Register `Company` model
@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "siren", "currency_code", "payment_terms_days", "owner")
    search_fields = ("name", "slug", "siren")
    ordering = ("name",)
    prepopulated_fields = {"slug": ("name",)}

    # Prefetch memberships and users to avoid N+1 queries
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        qs = qs.prefetch_related("memberships__user")
        if request.user.is_superuser:
            return qs
        # non-superusers only see companies they belong to
        return qs.filter(memberships__user=request.user, memberships__is_active=True).distinct()

    # slug is immutable once created
    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("slug", "created_at")
        return ("created_at",)

    def get_prepopulated_fields(self, request, obj=None):
        return {} if obj is not None else self.prepopulated_fields


@admin.register(EntityMembership)
class EntityMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "company")
    search_fields = ("user__username", "user__email", "company__name")


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(TenantAdminMixin, ReadOnlyAdmin):
    # counters only move through services.numbering
    list_display = ("company", "doc_type", "prefix", "last_value", "updated_at")
    list_filter = ("doc_type", "company")
