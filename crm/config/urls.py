"""
URL configuration for the crm project.

Every app exposes its API under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Brokerage CRM Admin Panel"
admin.site.site_title = "Brokerage CRM Admin Portal"
admin.site.index_title = "Vehicle export operations"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('crm.core.urls')),
    path('api/v1/', include('crm.parties.urls')),
    path('api/v1/', include('crm.inquiries.urls')),
    path('api/v1/', include('crm.vehicles.urls')),
    path('api/v1/', include('crm.invoicing.urls')),
    path('api/v1/', include('crm.accounting.urls')),
    path('api/v1/', include('crm.reports.urls')),
]
