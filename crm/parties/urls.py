from django.urls import path
from .views import (
    customer_list_create, customer_detail, customer_share_token, customer_wallet_balance,
    public_customer_portal, vendor_list_create, vendor_detail,
)

urlpatterns = [
    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
    path('customers/<int:pk>/share-token/', customer_share_token, name='customer-share-token'),
    path('customers/<int:pk>/wallet-balance/', customer_wallet_balance, name='customer-wallet-balance'),

    # Customer portal (token based, no login)
    path('public/customers/<str:token>/', public_customer_portal, name='public-customer-portal'),

    # Vendor endpoints
    path('vendors/', vendor_list_create, name='vendor-list-create'),
    path('vendors/<int:pk>/', vendor_detail, name='vendor-detail'),
]
