from django.urls import path
from .views import (
    inquiry_list_create, inquiry_detail, inquiry_assign, inquiry_release, inquiry_convert,
    inquiry_copy, inquiry_to_failed_lead, failed_leads, inquiry_notes, kanban_board, n8n_webhook,
    cron_release_assignments,
)

urlpatterns = [
    # Inquiry endpoints
    path('inquiries/', inquiry_list_create, name='inquiry-list-create'),
    path('inquiries/failed-leads/', failed_leads, name='inquiry-failed-leads'),
    path('inquiries/<int:pk>/', inquiry_detail, name='inquiry-detail'),
    path('inquiries/<int:pk>/assign/', inquiry_assign, name='inquiry-assign'),
    path('inquiries/<int:pk>/release/', inquiry_release, name='inquiry-release'),
    path('inquiries/<int:pk>/convert/', inquiry_convert, name='inquiry-convert'),
    path('inquiries/<int:pk>/copy/', inquiry_copy, name='inquiry-copy'),
    path('inquiries/<int:pk>/to-failed-lead/', inquiry_to_failed_lead, name='inquiry-to-failed-lead'),
    path('inquiries/<int:pk>/notes/', inquiry_notes, name='inquiry-notes'),

    # Kanban board
    path('kanban/', kanban_board, name='kanban-board'),

    # Integrations
    path('webhooks/n8n/', n8n_webhook, name='n8n-webhook'),
    path('cron/release-assignments/', cron_release_assignments, name='cron-release-assignments'),
]
