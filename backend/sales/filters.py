import django_filters
from django.db.models import Q

from .models import SalesOrder


class SalesOrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.ChoiceFilter(choices=SalesOrder.STATUS_CHOICES)
    customer = django_filters.NumberFilter(field_name='customer_id')
    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')

    class Meta:
        model = SalesOrder
        fields = ['search', 'status', 'customer', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value) |
            Q(customer__name__icontains=value)
        )
