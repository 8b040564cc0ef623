from rest_framework import serializers
from crm.core.serializers import UserSummarySerializer
from .models import Inquiry, KanbanStage, InquiryHistory, InquiryNote


class InquirySerializer(serializers.ModelSerializer):
    assigned_to = UserSummarySerializer(read_only=True)
    source_display = serializers.CharField(source='get_source_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    attempt_count = serializers.IntegerField(read_only=True)
    is_failed_lead = serializers.BooleanField(read_only=True)

    class Meta:
        model = Inquiry
        fields = [
            'id', 'source', 'source_display', 'source_id', 'customer_name', 'email', 'phone',
            'message', 'looking_for', 'status', 'status_display', 'assigned_to', 'assigned_at',
            'customer', 'metadata', 'attempt_count', 'is_failed_lead', 'created_at', 'updated_at'
        ]
        read_only_fields = ['assigned_at', 'created_at', 'updated_at']

    def validate_customer_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Customer name is required")
        return value.strip()


class KanbanInquirySerializer(serializers.ModelSerializer):
    assigned_to = UserSummarySerializer(read_only=True)

    class Meta:
        model = Inquiry
        fields = ['id', 'source', 'customer_name', 'email', 'phone', 'message', 'status',
                  'assigned_to', 'metadata', 'created_at']


class KanbanStageSerializer(serializers.ModelSerializer):
    class Meta:
        model = KanbanStage
        fields = ['id', 'name', 'order', 'color', 'status']


class InquiryHistorySerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = InquiryHistory
        fields = ['id', 'action', 'previous_status', 'new_status', 'notes', 'user', 'created_at']


class InquiryNoteSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = InquiryNote
        fields = ['id', 'content', 'user', 'created_at']
        read_only_fields = ['created_at']

    def validate_content(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Note content is required")
        return value.strip()


class InquiryDetailSerializer(InquirySerializer):
    history = InquiryHistorySerializer(many=True, read_only=True)
    notes = InquiryNoteSerializer(many=True, read_only=True)

    class Meta(InquirySerializer.Meta):
        fields = InquirySerializer.Meta.fields + ['history', 'notes']
