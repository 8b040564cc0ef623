from rest_framework import serializers
from crm.core.serializers import UserSummarySerializer
from crm.parties.serializers import CustomerSummarySerializer, VendorSummarySerializer
from .models import (
    Vehicle, VehicleShippingStage, VehicleStageHistory, VehicleStageCost, VehicleDocument, Yard,
)
from .stages import effective_stage, progress_percent, stage_label


class YardSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)

    class Meta:
        model = Yard
        fields = ['id', 'name', 'address', 'contact_person', 'phone', 'email', 'vendor', 'vendor_name', 'created_at']
        read_only_fields = ['created_at']


class VehicleSerializer(serializers.ModelSerializer):
    customer_detail = CustomerSummarySerializer(source='customer', read_only=True)
    stage = serializers.SerializerMethodField()
    stage_label = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()

    class Meta:
        model = Vehicle
        fields = [
            'id', 'vin', 'make', 'model', 'year', 'price', 'customer', 'customer_detail', 'inquiry',
            'current_shipping_stage', 'stage', 'stage_label', 'progress', 'notes',
            'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['current_shipping_stage', 'created_by', 'created_at', 'updated_at']

    def get_stage(self, obj):
        return effective_stage(obj)

    def get_stage_label(self, obj):
        return stage_label(effective_stage(obj))

    def get_progress(self, obj):
        return progress_percent(effective_stage(obj))

    def validate_vin(self, value):
        value = (value or '').strip().upper()
        if not value:
            raise serializers.ValidationError("VIN is required")
        queryset = Vehicle.objects.filter(vin__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A vehicle with this VIN already exists")
        return value


class VehicleShippingStageSerializer(serializers.ModelSerializer):
    stage_label = serializers.CharField(source='get_stage_display', read_only=True)
    yard_detail = YardSerializer(source='yard', read_only=True)
    purchase_vendor_detail = VendorSummarySerializer(source='purchase_vendor', read_only=True)
    transport_vendor_detail = VendorSummarySerializer(source='transport_vendor', read_only=True)
    repair_vendor_detail = VendorSummarySerializer(source='repair_vendor', read_only=True)
    forwarding_vendor_detail = VendorSummarySerializer(source='forwarding_vendor', read_only=True)
    freight_vendor_detail = VendorSummarySerializer(source='freight_vendor', read_only=True)

    class Meta:
        model = VehicleShippingStage
        exclude = ['vehicle']
        read_only_fields = ['total_charges', 'total_received', 'updated_at']


class VehicleStageHistorySerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = VehicleStageHistory
        fields = ['id', 'previous_stage', 'new_stage', 'action', 'notes', 'user', 'created_at']


class VehicleStageCostSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)

    class Meta:
        model = VehicleStageCost
        fields = ['id', 'vehicle', 'stage', 'cost_type', 'amount', 'currency', 'vendor', 'vendor_name',
                  'payment_deadline', 'payment_date', 'notes', 'created_at']
        read_only_fields = ['vehicle', 'created_at']

    def validate_amount(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value


class VehicleDocumentSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = VehicleDocument
        fields = ['id', 'vehicle', 'category', 'name', 'file_url', 'stage', 'visible_to_customer',
                  'uploaded_by', 'created_at']
        read_only_fields = ['vehicle', 'created_at']


class ShippingKanbanVehicleSerializer(serializers.ModelSerializer):
    """Card on the shipping kanban board"""
    customer = CustomerSummarySerializer(read_only=True)
    yard = serializers.SerializerMethodField()
    dhl_tracking = serializers.SerializerMethodField()
    documents_count = serializers.IntegerField(read_only=True)
    stage_costs_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Vehicle
        fields = ['id', 'vin', 'make', 'model', 'year', 'customer', 'current_shipping_stage', 'yard',
                  'dhl_tracking', 'documents_count', 'stage_costs_count', 'created_at']

    def _shipping_stage(self, obj):
        return getattr(obj, 'shipping_stage', None)

    def get_yard(self, obj):
        shipping_stage = self._shipping_stage(obj)
        if shipping_stage is None or shipping_stage.yard is None:
            return None
        return {'id': shipping_stage.yard.id, 'name': shipping_stage.yard.name}

    def get_dhl_tracking(self, obj):
        shipping_stage = self._shipping_stage(obj)
        return shipping_stage.dhl_tracking if shipping_stage else None

