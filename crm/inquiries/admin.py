from django.contrib import admin
from .models import Inquiry, KanbanStage, InquiryHistory, InquiryNote


class InquiryNoteInline(admin.TabularInline):
    model = InquiryNote
    extra = 0
    readonly_fields = ['user', 'created_at']


@admin.register(Inquiry)
class InquiryAdmin(admin.ModelAdmin):
    list_display = ['customer_name', 'source', 'status', 'assigned_to', 'assigned_at', 'created_at']
    list_filter = ['source', 'status', 'assigned_to']
    search_fields = ['customer_name', 'email', 'phone', 'source_id']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [InquiryNoteInline]


@admin.register(KanbanStage)
class KanbanStageAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'order', 'color']
    ordering = ['order']


@admin.register(InquiryHistory)
class InquiryHistoryAdmin(admin.ModelAdmin):
    list_display = ['inquiry', 'action', 'previous_status', 'new_status', 'user', 'created_at']
    list_filter = ['action']
    readonly_fields = ['created_at']
