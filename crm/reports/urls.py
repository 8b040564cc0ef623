from django.urls import path
from .views import stats_inquiries, stats_transactions

urlpatterns = [
    path('stats/inquiries/', stats_inquiries, name='stats-inquiries'),
    path('stats/transactions/', stats_transactions, name='stats-transactions'),
]
