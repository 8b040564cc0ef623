from django.urls import path
from .views import (
    invoice_list_create, invoice_detail, invoice_submit, invoice_approve, invoice_finalize,
    invoice_unlock, invoice_payment, invoice_apply_wallet,
    invoice_charge_list_create, invoice_charge_detail,
    invoice_cost, invoice_cost_item_create, invoice_cost_item_detail,
    invoice_share, public_invoice, charge_type_list_create, charge_type_detail,
    shared_invoice_list_create, shared_invoice_detail, shared_invoice_vehicles,
)

urlpatterns = [
    # Invoice endpoints
    path('invoices/', invoice_list_create, name='invoice-list-create'),
    path('invoices/<int:pk>/', invoice_detail, name='invoice-detail'),
    path('invoices/<int:pk>/submit/', invoice_submit, name='invoice-submit'),
    path('invoices/<int:pk>/approve/', invoice_approve, name='invoice-approve'),
    path('invoices/<int:pk>/finalize/', invoice_finalize, name='invoice-finalize'),
    path('invoices/<int:pk>/unlock/', invoice_unlock, name='invoice-unlock'),
    path('invoices/<int:pk>/payment/', invoice_payment, name='invoice-payment'),
    path('invoices/<int:pk>/apply-wallet/', invoice_apply_wallet, name='invoice-apply-wallet'),
    path('invoices/<int:pk>/charges/', invoice_charge_list_create, name='invoice-charge-list-create'),
    path('invoices/<int:pk>/charges/<int:charge_id>/', invoice_charge_detail, name='invoice-charge-detail'),
    path('invoices/<int:pk>/cost/', invoice_cost, name='invoice-cost'),
    path('invoices/<int:pk>/cost/items/', invoice_cost_item_create, name='invoice-cost-item-create'),
    path('invoices/<int:pk>/cost/items/<int:item_id>/', invoice_cost_item_detail, name='invoice-cost-item-detail'),
    path('invoices/<int:pk>/share/', invoice_share, name='invoice-share'),

    # Shared vendor invoices
    path('shared-invoices/', shared_invoice_list_create, name='shared-invoice-list-create'),
    path('shared-invoices/<int:pk>/', shared_invoice_detail, name='shared-invoice-detail'),
    path('shared-invoices/<int:pk>/vehicles/', shared_invoice_vehicles, name='shared-invoice-vehicles'),

    # Share links
    path('public/invoices/<str:token>/', public_invoice, name='public-invoice'),

    # Charge types
    path('charge-types/', charge_type_list_create, name='charge-type-list-create'),
    path('charge-types/<int:pk>/', charge_type_detail, name='charge-type-detail'),
]
