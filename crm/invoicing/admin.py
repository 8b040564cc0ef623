from django.contrib import admin
from .models import ChargeType, Invoice, InvoiceCharge, CostInvoice, CostItem, SharedInvoice, SharedInvoiceVehicle


class InvoiceChargeInline(admin.TabularInline):
    model = InvoiceCharge
    extra = 0


class CostItemInline(admin.TabularInline):
    model = CostItem
    extra = 0


class SharedInvoiceVehicleInline(admin.TabularInline):
    model = SharedInvoiceVehicle
    extra = 0


@admin.register(ChargeType)
class ChargeTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'customer', 'vehicle', 'status', 'payment_status', 'is_locked', 'issue_date']
    list_filter = ['status', 'payment_status', 'is_locked']
    search_fields = ['invoice_number', 'customer__name', 'vehicle__vin']
    readonly_fields = ['invoice_number', 'share_token', 'approved_at', 'finalized_at', 'paid_at', 'created_at', 'updated_at']
    inlines = [InvoiceChargeInline]


@admin.register(CostInvoice)
class CostInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice', 'total_revenue', 'total_cost', 'profit', 'margin', 'roi']
    search_fields = ['invoice__invoice_number']
    readonly_fields = ['total_revenue', 'total_cost', 'profit', 'margin', 'roi', 'created_at', 'updated_at']
    inlines = [CostItemInline]


@admin.register(SharedInvoice)
class SharedInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'type', 'vendor', 'total_amount', 'payment_deadline']
    list_filter = ['type']
    search_fields = ['invoice_number', 'vendor__name']
    readonly_fields = ['invoice_number', 'created_at', 'updated_at']
    inlines = [SharedInvoiceVehicleInline]
