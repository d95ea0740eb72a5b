import django_filters
from django.db.models import Q

from .models import Customer, Supplier


class PartyFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    is_active = django_filters.BooleanFilter(field_name='is_active')

    code_field = None

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(**{f'{self.code_field}__icontains': value}) |
            Q(name__icontains=value) |
            Q(email__icontains=value) |
            Q(company__icontains=value)
        )


class CustomerFilter(PartyFilter):
    code_field = 'customer_code'

    class Meta:
        model = Customer
        fields = ['search', 'is_active']


class SupplierFilter(PartyFilter):
    code_field = 'supplier_code'

    class Meta:
        model = Supplier
        fields = ['search', 'is_active']
