from django.core.exceptions import ValidationError
from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from .models import Invoice, Payment, Quote, QuoteLine

""" Block invoice deletion if any payments are recorded."""


# pre_delete fires for queryset deletes too, unlike Model.delete()
@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    if Payment.objects.filter(invoice=instance).exists():
        raise ValidationError("Cannot delete invoice with recorded payments.")


"""Block deletion of a quote that was converted (provenance must survive)."""


@receiver(pre_delete, sender=Quote)
def prevent_delete_converted_quote(sender, instance, **kwargs):
    if instance.converted_at is not None:
        raise ValidationError("Cannot delete a quote that has been converted.")


"""
    Recalculate quote totals when a line is added/updated/removed.
    Quote totals are derived from lines, never typed in.
"""


@receiver((post_save, post_delete), sender=QuoteLine)
def quote_line_changed(sender, instance, **kwargs):
    try:
        quote = Quote.objects.get(pk=instance.document_id)
    except Quote.DoesNotExist:
        return
    quote.recalc_totals()
    quote.save(update_fields=["totals_ht", "totals_vat", "totals_ttc"])
