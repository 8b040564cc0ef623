from rest_framework import serializers
from crm.core.serializers import UserSummarySerializer
from crm.parties.serializers import CustomerSummarySerializer, VendorSummarySerializer
from .models import Transaction, GeneralCost


class TransactionSerializer(serializers.ModelSerializer):
    vendor_detail = VendorSummarySerializer(source='vendor', read_only=True)
    customer_detail = CustomerSummarySerializer(source='customer', read_only=True)
    invoice_number = serializers.SerializerMethodField()
    vehicle_vin = serializers.SerializerMethodField()
    created_by = UserSummarySerializer(read_only=True)
    source = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            'id', 'source', 'direction', 'type', 'amount', 'currency', 'date', 'description',
            'vendor', 'vendor_detail', 'customer', 'customer_detail', 'vehicle', 'vehicle_vin',
            'invoice', 'invoice_number', 'vehicle_stage_cost', 'cost_item', 'reference_number',
            'notes', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_source(self, obj):
        return 'transaction'

    def get_invoice_number(self, obj):
        return obj.invoice.invoice_number if obj.invoice_id else None

    def get_vehicle_vin(self, obj):
        return obj.vehicle.vin if obj.vehicle_id else None

    def validate_amount(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value

    def validate_currency(self, value):
        return (value or 'JPY').upper()

    def validate(self, attrs):
        invoice = attrs.get('invoice')
        # Payments for an invoice belong to its customer and vehicle
        if invoice is not None:
            attrs.setdefault('customer', invoice.customer)
            attrs.setdefault('vehicle', invoice.vehicle)
        stage_cost = attrs.get('vehicle_stage_cost')
        if stage_cost is not None:
            attrs.setdefault('vehicle', stage_cost.vehicle)
        return attrs


class GeneralCostSerializer(serializers.ModelSerializer):
    vendor_detail = VendorSummarySerializer(source='vendor', read_only=True)
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = GeneralCost
        fields = ['id', 'description', 'amount', 'currency', 'date', 'category', 'vendor', 'vendor_detail',
                  'notes', 'created_by', 'created_at']
        read_only_fields = ['created_at']

    def validate_description(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Description is required")
        return value.strip()

    def validate_amount(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value
