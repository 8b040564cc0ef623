import django_filters
from django.db.models import Q
from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    """Transaction list filtering (?direction=&type=&vendor=&customer=&vehicle=&startDate=&endDate=)"""
    direction = django_filters.ChoiceFilter(choices=Transaction.DIRECTION_CHOICES)
    type = django_filters.ChoiceFilter(choices=Transaction.TYPE_CHOICES)
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    customer = django_filters.NumberFilter(field_name='customer_id')
    vehicle = django_filters.NumberFilter(field_name='vehicle_id')
    invoice = django_filters.NumberFilter(field_name='invoice_id')
    startDate = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    endDate = django_filters.DateFilter(field_name='date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Transaction
        fields = ['direction', 'type', 'vendor', 'customer', 'vehicle', 'invoice', 'startDate', 'endDate', 'search']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(description__icontains=value) |
            Q(reference_number__icontains=value) |
            Q(notes__icontains=value)
        )
