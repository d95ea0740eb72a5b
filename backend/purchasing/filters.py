import django_filters
from django.db.models import Q

from .models import PurchaseOrder, GRN


class PurchaseOrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.ChoiceFilter(choices=PurchaseOrder.STATUS_CHOICES)
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')

    class Meta:
        model = PurchaseOrder
        fields = ['search', 'status', 'supplier', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(po_number__icontains=value) | Q(supplier__name__icontains=value))


class GRNFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.ChoiceFilter(choices=GRN.STATUS_CHOICES)
    purchase_order = django_filters.NumberFilter(field_name='purchase_order_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')

    class Meta:
        model = GRN
        fields = ['search', 'status', 'purchase_order', 'supplier']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(grn_number__icontains=value) | Q(purchase_order__po_number__icontains=value))
