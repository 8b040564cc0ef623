from django.contrib import admin
from .models import Vehicle, VehicleShippingStage, VehicleStageHistory, VehicleStageCost, VehicleDocument, Yard


class VehicleShippingStageInline(admin.StackedInline):
    model = VehicleShippingStage
    extra = 0
    can_delete = False


class VehicleStageCostInline(admin.TabularInline):
    model = VehicleStageCost
    extra = 0


class VehicleDocumentInline(admin.TabularInline):
    model = VehicleDocument
    extra = 0


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['vin', 'make', 'model', 'year', 'customer', 'current_shipping_stage', 'created_at']
    list_filter = ['current_shipping_stage', 'make']
    search_fields = ['vin', 'make', 'model', 'customer__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [VehicleShippingStageInline, VehicleStageCostInline, VehicleDocumentInline]


@admin.register(VehicleStageHistory)
class VehicleStageHistoryAdmin(admin.ModelAdmin):
    list_display = ['vehicle', 'previous_stage', 'new_stage', 'user', 'created_at']
    list_filter = ['new_stage']
    search_fields = ['vehicle__vin']
    readonly_fields = ['created_at']


@admin.register(Yard)
class YardAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_person', 'phone', 'vendor']
    search_fields = ['name', 'contact_person']
