import django_filters
from django.db.models import F, Q

from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filters for the product list"""
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='icontains')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock')
    is_active = django_filters.BooleanFilter(field_name='is_active')

    class Meta:
        model = Product
        fields = ['search', 'category', 'low_stock', 'is_active']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(sku__icontains=value) |
            Q(name__icontains=value) |
            Q(category__icontains=value)
        )

    def filter_low_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock__lte=F('reorder_level'))
        return queryset
