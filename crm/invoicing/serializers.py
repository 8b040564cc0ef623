from rest_framework import serializers
from django.utils import timezone
from crm.core.serializers import UserSummarySerializer
from crm.parties.serializers import CustomerSummarySerializer, VendorSummarySerializer
from crm.vehicles.models import Vehicle
from .models import ChargeType, Invoice, InvoiceCharge, CostInvoice, CostItem, SharedInvoice, SharedInvoiceVehicle
from .totals import invoice_breakdown


class ChargeTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChargeType
        fields = ['id', 'name', 'created_at']
        read_only_fields = ['created_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        if ChargeType.objects.filter(name__iexact=value).exists():
            raise serializers.ValidationError("A charge type with this name already exists")
        return value


class InvoiceChargeSerializer(serializers.ModelSerializer):
    """
    A charge may reference its type by id (``charge_type``) or by name
    (``charge_type_name``); unknown names create the charge type.
    """
    charge_type_name = serializers.CharField(required=False, allow_blank=True, allow_null=True, write_only=True)
    charge_type_label = serializers.SerializerMethodField()

    class Meta:
        model = InvoiceCharge
        fields = ['id', 'charge_type', 'charge_type_name', 'charge_type_label', 'description', 'amount', 'created_at']
        read_only_fields = ['created_at']
        extra_kwargs = {'charge_type': {'required': False, 'allow_null': True}}

    def get_charge_type_label(self, obj):
        return obj.charge_type.name if obj.charge_type_id else None

    def validate_description(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("All charges must have a description")
        return value.strip()

    def validate_amount(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value

    def validate(self, attrs):
        name = (attrs.pop('charge_type_name', None) or '').strip()
        if name and not attrs.get('charge_type'):
            charge_type = ChargeType.objects.filter(name__iexact=name).first()
            if charge_type is None:
                charge_type = ChargeType.objects.create(name=name)
            attrs['charge_type'] = charge_type
        return attrs


class VehicleSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Vehicle
        fields = ['id', 'vin', 'make', 'model', 'year']


class InvoiceListSerializer(serializers.ModelSerializer):
    customer = CustomerSummarySerializer(read_only=True)
    vehicle = VehicleSummarySerializer(read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    total = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = ['id', 'invoice_number', 'status', 'payment_status', 'issue_date', 'due_date',
                  'customer', 'vehicle', 'created_by', 'total', 'is_locked', 'created_at']

    def get_total(self, obj):
        return invoice_breakdown(obj, obj.charges.all())['total']


class InvoiceSerializer(serializers.ModelSerializer):
    customer_detail = CustomerSummarySerializer(source='customer', read_only=True)
    vehicle_detail = VehicleSummarySerializer(source='vehicle', read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)
    finalized_by = UserSummarySerializer(read_only=True)
    charges = InvoiceChargeSerializer(many=True, required=False)
    totals = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'customer', 'customer_detail', 'vehicle', 'vehicle_detail',
            'status', 'payment_status', 'issue_date', 'due_date', 'tax_enabled', 'tax_rate',
            'customer_uses_in_japan', 'notes', 'metadata', 'wise_payment_link', 'share_token',
            'is_locked', 'charges', 'totals', 'created_by', 'approved_by', 'approved_at',
            'finalized_by', 'finalized_at', 'paid_at', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'invoice_number', 'payment_status', 'share_token', 'is_locked', 'approved_at',
            'finalized_at', 'paid_at', 'created_at', 'updated_at'
        ]
        extra_kwargs = {'issue_date': {'required': False}}

    def get_totals(self, obj):
        return invoice_breakdown(obj, obj.charges.all())

    def validate_tax_rate(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError("Tax rate must be between 0 and 100")
        return value

    def validate_charges(self, value):
        if not value:
            raise serializers.ValidationError("At least one charge is required")
        return value

    def validate(self, attrs):
        if self.instance is None and not attrs.get('charges'):
            raise serializers.ValidationError({'charges': "At least one charge is required"})
        return attrs

    def create(self, validated_data):
        charges = validated_data.pop('charges', [])
        validated_data.setdefault('issue_date', timezone.localdate())
        invoice = Invoice.objects.create(**validated_data)
        for charge in charges:
            InvoiceCharge.objects.create(invoice=invoice, **charge)
        return invoice

    def update(self, instance, validated_data):
        """Charges, when given, replace the existing ones"""
        charges = validated_data.pop('charges', None)
        instance = super().update(instance, validated_data)
        if charges is not None:
            instance.charges.all().delete()
            for charge in charges:
                InvoiceCharge.objects.create(invoice=instance, **charge)
        return instance


class PublicInvoiceSerializer(serializers.ModelSerializer):
    """What a customer sees through a share link"""
    customer = CustomerSummarySerializer(read_only=True)
    vehicle = VehicleSummarySerializer(read_only=True)
    charges = serializers.SerializerMethodField()
    totals = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = ['invoice_number', 'status', 'payment_status', 'issue_date', 'due_date', 'tax_enabled',
                  'tax_rate', 'customer', 'vehicle', 'charges', 'totals', 'notes', 'wise_payment_link']

    def get_charges(self, obj):
        return [
            {
                'description': charge.description,
                'charge_type': charge.charge_type.name if charge.charge_type else None,
                'amount': str(charge.amount),
            }
            for charge in obj.charges.all()
        ]

    def get_totals(self, obj):
        return {key: str(value) for key, value in invoice_breakdown(obj, obj.charges.all()).items()}


class CostItemSerializer(serializers.ModelSerializer):
    vendor_detail = VendorSummarySerializer(source='vendor', read_only=True)

    class Meta:
        model = CostItem
        fields = ['id', 'description', 'amount', 'category', 'vendor', 'vendor_detail',
                  'payment_deadline', 'payment_date', 'created_at']
        read_only_fields = ['created_at']

    def validate_description(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Description is required")
        return value.strip()

    def validate_amount(self, value):
        if value is None or value < 0:
            raise serializers.ValidationError("Amount cannot be negative")
        return value


class SharedCostSerializer(serializers.ModelSerializer):
    """A vehicle's share of a shared invoice, as seen from its cost invoice"""
    shared_invoice_number = serializers.CharField(source='shared_invoice.invoice_number', read_only=True)
    type = serializers.CharField(source='shared_invoice.type', read_only=True)

    class Meta:
        model = SharedInvoiceVehicle
        fields = ['shared_invoice', 'shared_invoice_number', 'type', 'allocated_amount']


class CostInvoiceSerializer(serializers.ModelSerializer):
    items = CostItemSerializer(many=True, read_only=True)
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True)
    shared_costs = serializers.SerializerMethodField()

    class Meta:
        model = CostInvoice
        fields = ['id', 'invoice', 'invoice_number', 'total_revenue', 'total_cost', 'profit', 'margin',
                  'roi', 'notes', 'items', 'shared_costs', 'created_at', 'updated_at']
        read_only_fields = ['invoice', 'total_revenue', 'total_cost', 'profit', 'margin', 'roi',
                            'created_at', 'updated_at']

    def get_shared_costs(self, obj):
        allocations = SharedInvoiceVehicle.objects.filter(
            vehicle_id=obj.invoice.vehicle_id
        ).select_related('shared_invoice')
        return SharedCostSerializer(allocations, many=True).data


class SharedCostLineSerializer(serializers.Serializer):
    description = serializers.CharField(allow_blank=True, default='')
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class SharedInvoiceVehicleSerializer(serializers.ModelSerializer):
    vehicle = VehicleSummarySerializer(read_only=True)

    class Meta:
        model = SharedInvoiceVehicle
        fields = ['id', 'vehicle', 'allocated_amount']


class SharedInvoiceSerializer(serializers.ModelSerializer):
    """
    Shared vendor invoice. ``vehicle_ids`` is the set of vehicles the total
    is split over; ``cost_items`` is an optional breakdown kept in metadata.
    """
    vendor_detail = VendorSummarySerializer(source='vendor', read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    vehicles = SharedInvoiceVehicleSerializer(source='allocations', many=True, read_only=True)
    vehicle_ids = serializers.PrimaryKeyRelatedField(
        queryset=Vehicle.objects.all(), many=True, write_only=True, required=False
    )
    cost_items = SharedCostLineSerializer(many=True, write_only=True, required=False)

    class Meta:
        model = SharedInvoice
        fields = [
            'id', 'type', 'invoice_number', 'vendor', 'vendor_detail', 'total_amount', 'date',
            'payment_deadline', 'metadata', 'vehicles', 'vehicle_ids', 'cost_items', 'created_by',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['invoice_number', 'metadata', 'created_at', 'updated_at']

    def validate_type(self, value):
        value = (value or '').strip().upper().replace(' ', '_')
        if not value:
            raise serializers.ValidationError("Type is required")
        return value

    def validate_total_amount(self, value):
        if value is None or value <= 0:
            raise serializers.ValidationError("Valid total amount is required")
        return value

    def validate_vehicle_ids(self, value):
        if not value:
            raise serializers.ValidationError("At least one vehicle is required")
        unique = []
        for vehicle in value:
            if vehicle not in unique:
                unique.append(vehicle)
        return unique

    def validate(self, attrs):
        if self.instance is None and not attrs.get('vehicle_ids'):
            raise serializers.ValidationError({'vehicle_ids': "At least one vehicle is required"})
        return attrs

    def _with_cost_items(self, validated_data, metadata):
        cost_items = validated_data.pop('cost_items', None)
        if cost_items is not None:
            metadata = dict(metadata or {})
            metadata['costItems'] = [
                {'description': item.get('description', ''), 'amount': str(item['amount'])}
                for item in cost_items
            ]
        return metadata

    def create(self, validated_data):
        validated_data.pop('vehicle_ids', None)
        validated_data['metadata'] = self._with_cost_items(validated_data, {})
        return SharedInvoice.objects.create(**validated_data)

    def update(self, instance, validated_data):
        """Vehicles are reallocated by the caller"""
        validated_data.pop('vehicle_ids', None)
        validated_data['metadata'] = self._with_cost_items(validated_data, instance.metadata)
        return super().update(instance, validated_data)
