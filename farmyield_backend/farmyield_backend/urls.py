from django.contrib import admin
from django.urls import path, include

from apps.transactions.views import ChainWebhookView
from core.views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health'),
    path('api/v1/accounts/', include('apps.accounts.urls')),
    path('api/v1/reports/', include('apps.reports.urls')),
    path('api/v1/transactions/', include('apps.transactions.urls')),

    # Chain indexer callback
    path('api/v1/webhooks/chain/', ChainWebhookView.as_view(), name='chain_webhook'),
]
