# apps/transactions/services/webhook_ingestion.py
# ---------------------------------------------------------------------------
# Inbound chain-indexer webhooks.
#
# Each event is normalised into ChainTransaction fields and upserted by
# signature, so redelivered events are harmless.
#
# Type mapping
# ------------
#   COMPRESSED / BUBBLEGUM / NFT_MINT  → mint_cnft
#   description mentions "badge"       → badge
#   description mentions "vote"        → vote
#   TRANSFER                           → reward
#   anything else                      → unknown
# ---------------------------------------------------------------------------

import hmac
import logging
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..models import ChainTransaction
from .transaction_ledger import TransactionLedger

logger = logging.getLogger(__name__)


class WebhookIngestionService:

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    @staticmethod
    def is_authorized(authorization_header: str | None) -> bool:
        """
        Constant-time check of ``Authorization: Bearer <token>``.
        An unset CHAIN_WEBHOOK_AUTH_TOKEN accepts every caller.
        """
        expected_token = getattr(settings, 'CHAIN_WEBHOOK_AUTH_TOKEN', '')
        if not expected_token:
            return True
        return hmac.compare_digest(
            (authorization_header or '').encode(),
            f"Bearer {expected_token}".encode(),
        )

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------
    @staticmethod
    def ingest(payload) -> int:
        """
        Upsert every event in *payload* (a single event or a list).
        Returns the number of events recorded.

        The batch is one transaction: a malformed event raises ValueError
        and nothing from the delivery is kept.
        """
        events = payload if isinstance(payload, list) else [payload]

        with transaction.atomic():
            processed = WebhookIngestionService._ingest_events(events)

        logger.info(f"Ingested {processed} of {len(events)} webhook event(s)")
        return processed

    @staticmethod
    def _ingest_events(events) -> int:
        processed = 0
        for event in events:
            if not isinstance(event, dict):
                continue
            signature = (
                event.get('signature')
                or event.get('transactionSignature')
                or event.get('txSignature')
            )
            if not signature:
                continue

            fields = WebhookIngestionService.normalise_event(event)
            # Absent values never clobber what settlement already recorded
            fields = {name: value for name, value in fields.items() if value is not None}
            if fields.get('tx_type') == ChainTransaction.TYPE_UNKNOWN:
                fields.pop('tx_type')

            TransactionLedger.record_or_update_transaction(signature, fields)
            processed += 1
        return processed

    @staticmethod
    def normalise_event(event: dict) -> dict:
        from_wallet, to_wallet, amount = WebhookIngestionService._transfer_info(event)
        failed = bool(event.get('transactionError') or event.get('err'))

        return {
            'tx_type': WebhookIngestionService.map_type(
                event.get('type') or event.get('transactionType'),
                event.get('description') or '',
            ),
            'from_wallet': from_wallet,
            'to_wallet': to_wallet,
            'amount': amount,
            'metadata': {
                'description': event.get('description') or event.get('type') or 'Chain webhook',
            },
            'status': ChainTransaction.STATUS_FAILED if failed else ChainTransaction.STATUS_CONFIRMED,
            'block_time': WebhookIngestionService._block_time(event),
            'slot': event.get('slot'),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def map_type(transaction_type: str | None, description: str = '') -> str:
        tx_type = (transaction_type or '').upper()
        desc = (description or '').lower()

        if 'COMPRESSED' in tx_type or 'BUBBLEGUM' in tx_type or 'NFT_MINT' in tx_type:
            return ChainTransaction.TYPE_MINT
        if 'badge' in desc:
            return ChainTransaction.TYPE_BADGE
        if 'vote' in desc:
            return ChainTransaction.TYPE_VOTE
        if 'TRANSFER' in tx_type:
            return ChainTransaction.TYPE_REWARD
        return ChainTransaction.TYPE_UNKNOWN

    @staticmethod
    def _transfer_info(event: dict):
        transfers = event.get('nativeTransfers')
        if isinstance(transfers, list) and transfers:
            transfer = transfers[0]
            raw_amount = transfer.get('amount')
            amount = None
            if raw_amount:
                units = getattr(settings, 'CHAIN_BASE_UNITS_PER_TOKEN', 10 ** 9)
                try:
                    amount = Decimal(str(raw_amount)) / Decimal(units)
                except InvalidOperation:
                    logger.warning(f"Unparseable transfer amount {raw_amount!r}")
            return transfer.get('fromUserAccount'), transfer.get('toUserAccount'), amount
        return None, None, None

    @staticmethod
    def _block_time(event: dict):
        seconds = event.get('timestamp') or event.get('blockTime')
        if seconds:
            try:
                return datetime.fromtimestamp(int(seconds), tz=dt_timezone.utc)
            except (TypeError, ValueError, OverflowError, OSError) as e:
                raise ValueError(f"Invalid event timestamp: {seconds!r}") from e
        return timezone.now()
