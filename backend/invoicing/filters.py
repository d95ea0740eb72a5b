import django_filters
from django.db.models import Q

from .models import Invoice


class InvoiceFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    payment_status = django_filters.ChoiceFilter(choices=Invoice.PAYMENT_STATUS_CHOICES)
    customer = django_filters.NumberFilter(field_name='customer_id')
    sales_order = django_filters.NumberFilter(field_name='sales_order_id')
    date_from = django_filters.DateFilter(field_name='invoice_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='invoice_date', lookup_expr='lte')

    class Meta:
        model = Invoice
        fields = ['search', 'payment_status', 'customer', 'sales_order', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_number__icontains=value) |
            Q(customer__name__icontains=value) |
            Q(sales_order__order_number__icontains=value)
        )
