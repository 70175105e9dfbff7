# apps/accounts/urls.py

from django.urls import path
from .views import (
    MyProfileView,
    WalletProfileView,
    IssueTokenView,
    leaderboard,
)

app_name = 'accounts'

urlpatterns = [
    path('me/', MyProfileView.as_view(), name='my_profile'),
    path('token/', IssueTokenView.as_view(), name='issue_token'),
    path('leaderboard/', leaderboard, name='leaderboard'),
    path('<str:wallet_address>/', WalletProfileView.as_view(), name='wallet_profile'),
]
