"""
Transactions App Models

On-chain transaction history: rewards, report NFT mints, badge mints and
votes.  Rows are keyed by the chain signature and written through
TransactionLedger.record_or_update_transaction so that the settlement
worker and webhook ingestion can both report the same transaction.
"""

from django.db import models
from django.utils import timezone


class ChainTransaction(models.Model):

    TYPE_MINT = 'mint_cnft'
    TYPE_REWARD = 'reward'
    TYPE_VOTE = 'vote'
    TYPE_BADGE = 'badge'
    TYPE_UNKNOWN = 'unknown'

    TYPE_CHOICES = (
        (TYPE_MINT, 'Report NFT Mint'),
        (TYPE_REWARD, 'Verification Reward'),
        (TYPE_VOTE, 'Vote'),
        (TYPE_BADGE, 'Badge Mint'),
        (TYPE_UNKNOWN, 'Unknown'),
    )

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_FAILED = 'failed'

    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_FAILED, 'Failed'),
    )

    tx_signature = models.CharField(max_length=120, unique=True, db_index=True)
    tx_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_UNKNOWN)
    from_wallet = models.CharField(max_length=100, null=True, blank=True)
    to_wallet = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    amount = models.DecimalField(
        max_digits=20,
        decimal_places=9,
        null=True,
        blank=True,
        help_text='Native-token amount'
    )
    report = models.ForeignKey(
        'reports.Report',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions'
    )
    metadata = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    block_time = models.DateTimeField(null=True, blank=True)
    slot = models.BigIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'chain_transactions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['from_wallet', '-created_at'], name='chain_tx_from_idx'),
            models.Index(fields=['to_wallet', '-created_at'], name='chain_tx_to_idx'),
            models.Index(fields=['tx_type', 'status'], name='chain_tx_type_status_idx'),
        ]

    def __str__(self):
        return f"{self.tx_signature[:12]}… ({self.get_tx_type_display()})"
