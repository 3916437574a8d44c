import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def mark_overdue_invoices(company_id):
    # import lazily to avoid circular imports at module import time
    from .models import Company
    from .services import mark_overdue

    company = Company.objects.get(pk=company_id)
    return mark_overdue(company)


@shared_task
def mark_overdue_for_all_companies():
    """Beat entry point: fan out one overdue sweep per company."""
    from .models import Company

    company_ids = list(Company.objects.values_list("pk", flat=True))
    for company_id in company_ids:
        mark_overdue_invoices.delay(company_id)
    return len(company_ids)


@shared_task
def recompute_invoice_statuses(company_id):
    """Rebuild paid_total / status / paid_at of every invoice from its payments."""
    from .models import Company, Invoice
    from .services import recompute_settlement

    company = Company.objects.get(pk=company_id)
    changed = 0
    for invoice in Invoice.objects.for_company(company).order_by("pk"):
        before = (invoice.paid_total, invoice.status)
        balance = recompute_settlement(invoice)
        if (balance.paid_total, balance.status) != before:
            changed += 1
    logger.info("recomputed invoices for company %s, %s changed", company_id, changed)
    return changed
