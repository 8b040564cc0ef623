from django.urls import path
from .views import transaction_list_create, transaction_detail, general_cost_list_create, general_cost_detail

urlpatterns = [
    path('transactions/', transaction_list_create, name='transaction-list-create'),
    path('transactions/<int:pk>/', transaction_detail, name='transaction-detail'),
    path('general-costs/', general_cost_list_create, name='general-cost-list-create'),
    path('general-costs/<int:pk>/', general_cost_detail, name='general-cost-detail'),
]
