from .auditlog import AuditLog
from .customer import Customer
from .entitymembership import Company, EntityMembership
from .invoice import Invoice, InvoiceLine
from .payment import Payment
from .quote import Quote, QuoteLine
from .sequence import DocumentSequence
