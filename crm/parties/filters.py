import django_filters
from django.db.models import Q
from .models import Vendor


class VendorFilter(django_filters.FilterSet):
    """Vendor list filtering (category and free-text search)"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.ChoiceFilter(choices=Vendor.CATEGORY_CHOICES)

    class Meta:
        model = Vendor
        fields = ['search', 'category']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(email__icontains=value) |
            Q(phone__icontains=value)
        )
