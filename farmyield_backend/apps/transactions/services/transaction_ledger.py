# apps/transactions/services/transaction_ledger.py

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from apps.accounts.managers import normalize_wallet
from ..models import ChainTransaction

logger = logging.getLogger(__name__)

_LEDGER_FIELDS = {
    'tx_type', 'from_wallet', 'to_wallet', 'amount', 'report', 'report_id',
    'metadata', 'status', 'block_time', 'slot',
}


class TransactionLedger:
    """
    Idempotent record of chain transactions, keyed by signature.
    """

    @staticmethod
    def record_or_update_transaction(signature: str, fields: dict, update_if=None):
        """
        Insert the transaction or update the existing row for *signature*.

        Used by the settlement worker, the vote path and webhook ingestion;
        any of them may report the same signature first.  ``metadata`` is
        merged into the stored metadata rather than replacing it.

        ``update_if(existing)`` guards updates of an existing row; when it
        returns False the row is left untouched and None is returned.
        """
        if not signature:
            raise ValueError('Transaction signature is required')

        unknown = set(fields) - _LEDGER_FIELDS
        if unknown:
            raise ValueError(f"Unknown transaction fields: {sorted(unknown)}")

        fields = dict(fields)
        metadata = fields.pop('metadata', None)

        for _ in range(2):
            try:
                with transaction.atomic():
                    tx, created = ChainTransaction.objects.select_for_update().get_or_create(
                        tx_signature=signature,
                        defaults={**fields, 'metadata': metadata or {}},
                    )
                    if not created:
                        if update_if is not None and not update_if(tx):
                            logger.warning(
                                f"Kept existing {tx.tx_type} transaction {signature}; "
                                f"conflicting update ignored"
                            )
                            return None
                        for name, value in fields.items():
                            setattr(tx, name, value)
                        if metadata:
                            tx.metadata = {**(tx.metadata or {}), **metadata}
                        tx.save()
                logger.info(f"{'Recorded' if created else 'Updated'} transaction {signature} ({tx.tx_type})")
                return tx
            except IntegrityError:
                # Lost the insert race to another writer; retry as an update
                continue

        raise IntegrityError(f"Could not upsert transaction {signature}")

    @staticmethod
    def record_vote_transaction(signature: str, fields: dict):
        """
        Record a voter-supplied signature as a vote.

        An existing row is only completed when it is an unattributed vote
        or unknown transaction from the same sender; settlement, badge and
        other voters' records are never rewritten.  Returns None when the
        signature already belongs to another record.
        """
        voter = normalize_wallet(fields.get('from_wallet'))

        def unattributed(tx):
            return (
                tx.tx_type in (ChainTransaction.TYPE_VOTE, ChainTransaction.TYPE_UNKNOWN)
                and tx.report_id is None
                and normalize_wallet(tx.from_wallet) in ('', voter)
            )

        return TransactionLedger.record_or_update_transaction(signature, fields, update_if=unattributed)

    @staticmethod
    def get_user_history(wallet_address: str):
        """All transactions sent from or to a wallet, newest first"""
        return ChainTransaction.objects.filter(
            Q(from_wallet__iexact=wallet_address) | Q(to_wallet__iexact=wallet_address)
        ).order_by('-created_at')
