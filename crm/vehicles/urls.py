from django.urls import path
from .views import (
    vehicle_list_create, vehicle_detail, vehicle_stages,
    vehicle_cost_list_create, vehicle_cost_detail,
    vehicle_document_list_create, vehicle_document_detail,
    vehicle_payments, shipping_kanban, yard_list_create,
)

urlpatterns = [
    # Vehicle endpoints
    path('vehicles/', vehicle_list_create, name='vehicle-list-create'),
    path('vehicles/<int:pk>/', vehicle_detail, name='vehicle-detail'),
    path('vehicles/<int:pk>/stages/', vehicle_stages, name='vehicle-stages'),
    path('vehicles/<int:pk>/costs/', vehicle_cost_list_create, name='vehicle-cost-list-create'),
    path('vehicles/<int:pk>/costs/<int:cost_id>/', vehicle_cost_detail, name='vehicle-cost-detail'),
    path('vehicles/<int:pk>/documents/', vehicle_document_list_create, name='vehicle-document-list-create'),
    path('vehicles/<int:pk>/documents/<int:document_id>/', vehicle_document_detail, name='vehicle-document-detail'),
    path('vehicles/<int:pk>/payments/', vehicle_payments, name='vehicle-payments'),

    # Shipping board
    path('shipping-kanban/', shipping_kanban, name='shipping-kanban'),

    # Yards
    path('yards/', yard_list_create, name='yard-list-create'),
]
