from django.urls import path
from . import views

app_name = "ledger_core"

urlpatterns = [
    path("quotes/<int:quote_id>/convert/", views.convert_quote_view, name="convert-quote"),
    path("invoices/<int:invoice_id>/payments/", views.record_payment_view, name="record-payment"),
    path("invoices/<int:invoice_id>/balance/", views.invoice_balance_view, name="invoice-balance"),
    path("payments/<int:payment_id>/reverse/", views.reverse_payment_view, name="reverse-payment"),
    path("exports/ledger/", views.ledger_export_view, name="ledger-export"),
]
