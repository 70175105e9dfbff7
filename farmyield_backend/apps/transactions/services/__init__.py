# apps/transactions/services/__init__.py

from .transaction_ledger import TransactionLedger
from .webhook_ingestion import WebhookIngestionService

__all__ = ['TransactionLedger', 'WebhookIngestionService']
