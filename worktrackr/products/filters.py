import django_filters
from django.db.models import Q

from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the product catalogue using django-filter"""

    # Searches across name, description and SKU
    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.CharFilter(field_name='type', lookup_expr='exact')
    is_active = django_filters.BooleanFilter(field_name='is_active')

    class Meta:
        model = Product
        fields = ['search', 'type', 'is_active']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(description__icontains=value) | Q(sku__icontains=value)
        )
