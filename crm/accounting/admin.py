from django.contrib import admin
from .models import Transaction, GeneralCost


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['date', 'direction', 'type', 'amount', 'currency', 'customer', 'vendor', 'invoice']
    list_filter = ['direction', 'type', 'currency']
    search_fields = ['description', 'reference_number', 'customer__name', 'vendor__name', 'invoice__invoice_number']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'date'


@admin.register(GeneralCost)
class GeneralCostAdmin(admin.ModelAdmin):
    list_display = ['date', 'description', 'amount', 'currency', 'category', 'vendor']
    list_filter = ['category']
    search_fields = ['description']
