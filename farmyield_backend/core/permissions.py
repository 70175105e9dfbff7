from rest_framework import permissions


class HasChainWebhookToken(permissions.BasePermission):
    """
    Permission for chain-indexer webhook deliveries
    (Authorization: Bearer <CHAIN_WEBHOOK_AUTH_TOKEN>)
    """
    message = 'Unauthorized'

    def has_permission(self, request, view):
        from apps.transactions.services import WebhookIngestionService

        return WebhookIngestionService.is_authorized(request.META.get('HTTP_AUTHORIZATION'))
