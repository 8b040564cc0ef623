from rest_framework import serializers
from .models import Customer, Vendor


class CustomerSerializer(serializers.ModelSerializer):
    assigned_to_name = serializers.CharField(source='assigned_to.display_name', read_only=True)
    has_share_token = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'email', 'phone', 'country', 'billing_address', 'shipping_address',
            'port_of_destination', 'assigned_to', 'assigned_to_name', 'has_share_token',
            'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_has_share_token(self, obj):
        return bool(obj.share_token)

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Name is required")
        return value.strip()


class CustomerSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'email', 'phone', 'country']


class VendorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = ['id', 'name', 'category', 'email', 'phone', 'address', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class VendorSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = ['id', 'name', 'email', 'category']
