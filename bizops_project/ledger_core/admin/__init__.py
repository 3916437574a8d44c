from .actions import (cancel_selected_invoices, convert_selected_quotes,
                      mark_invoices_as_sent, mark_quotes_as_accepted,
                      mark_quotes_as_sent, recompute_selected_invoices)
from .auditlog import AuditLogAdmin
from .inlines import InvoiceLineInline, PaymentInline, QuoteLineInline
from .invoice import CustomerAdmin, InvoiceAdmin, PaymentAdmin
from .membership import CompanyAdmin, DocumentSequenceAdmin, EntityMembershipAdmin
from .mixins import TenantAdminMixin
from .quote import QuoteAdmin
