# apps/transactions/urls.py

from django.urls import path
from .views import TransactionHistoryView

app_name = 'transactions'

urlpatterns = [
    path('<str:wallet_address>/', TransactionHistoryView.as_view(), name='history'),
]
