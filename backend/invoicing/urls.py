from django.urls import path
from .views import (
    invoice_list_create, invoice_detail, invoice_record_payment, invoice_payments, invoice_stats,
)

urlpatterns = [
    path('invoices/', invoice_list_create, name='invoice-list-create'),
    path('invoices/stats/overview/', invoice_stats, name='invoice-stats'),
    path('invoices/<int:pk>/', invoice_detail, name='invoice-detail'),
    path('invoices/<int:pk>/payment/', invoice_record_payment, name='invoice-record-payment'),
    path('invoices/<int:pk>/payments/', invoice_payments, name='invoice-payments'),
]
