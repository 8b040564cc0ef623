from django.contrib import admin
from .models import Customer, Vendor


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'country', 'assigned_to', 'created_at']
    list_filter = ['country', 'assigned_to']
    search_fields = ['name', 'email', 'phone']
    ordering = ['name']
    readonly_fields = ['share_token', 'created_at', 'updated_at']


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'email', 'phone', 'created_at']
    list_filter = ['category']
    search_fields = ['name', 'email', 'phone']
    ordering = ['name']
