# apps/reports/models.py

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from apps.accounts.managers import normalize_wallet


class Report(models.Model):
    """
    Farmer-submitted crop harvest report.

    Lifecycle: pending -> verified | rejected, both terminal.  Tallies,
    voters and status are written only by VerificationStateMachine through
    a version-checked UPDATE; receipt and claim columns only by
    SettlementDispatcher.
    """

    STATUS_PENDING = 'pending'
    STATUS_VERIFIED = 'verified'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_VERIFIED, 'Verified'),
        (STATUS_REJECTED, 'Rejected'),
    )

    report_id = models.CharField(
        max_length=30,
        unique=True,
        db_index=True,
        editable=False
    )
    owner_wallet = models.CharField(max_length=100, db_index=True)

    # Payload
    crop_type = models.CharField(max_length=50, db_index=True)
    quantity_value = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        validators=[MinValueValidator(0)]
    )
    quantity_unit = models.CharField(max_length=20, default='kg')
    latitude = models.FloatField(
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    district = models.CharField(max_length=100, blank=True)
    province = models.CharField(max_length=100, blank=True, db_index=True)
    village = models.CharField(max_length=100, blank=True)
    images = models.JSONField(
        default=list,
        blank=True,
        help_text='[{"ipfs_hash": ..., "url": ..., "uploaded_at": ...}]'
    )

    # Agronomy metadata
    soil_type = models.CharField(max_length=50, blank=True)
    irrigation = models.CharField(max_length=50, blank=True)
    harvest_date = models.DateField(null=True, blank=True)
    market_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Verification state
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )
    approve_votes = models.PositiveIntegerField(default=0)
    reject_votes = models.PositiveIntegerField(default=0)
    voters = models.JSONField(
        default=list,
        blank=True,
        help_text='[{"wallet": ..., "vote": ..., "voted_at": ...}]'
    )
    verified_by = models.CharField(max_length=100, null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=255, blank=True)

    # Settlement receipt
    mint_tx_signature = models.CharField(max_length=120, null=True, blank=True)
    tree_address = models.CharField(max_length=120, null=True, blank=True)
    reward_tx_signature = models.CharField(max_length=120, null=True, blank=True)
    reward_amount = models.DecimalField(max_digits=20, decimal_places=9, null=True, blank=True)

    # Settlement claims
    reputation_applied_at = models.DateTimeField(null=True, blank=True)
    reward_claimed_at = models.DateTimeField(null=True, blank=True)
    mint_claimed_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'crop_reports'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='report_status_created_idx'),
            models.Index(fields=['province', 'district', 'crop_type'], name='report_region_crop_idx'),
        ]

    def __str__(self):
        return f"{self.report_id} - {self.crop_type} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.report_id:
            from .services.report_id_generator import ReportIDGenerator
            self.report_id = ReportIDGenerator.generate()
        super().save(*args, **kwargs)

    @property
    def is_finalized(self):
        return self.status != self.STATUS_PENDING

    @property
    def vote_counts(self):
        return {'approve': self.approve_votes, 'reject': self.reject_votes}

    @property
    def image_urls(self):
        return [img.get('url') for img in (self.images or []) if img.get('url')]

    @property
    def quantity_display(self):
        return f"{self.quantity_value.normalize():f} {self.quantity_unit}"

    @property
    def metadata_uri(self):
        base = getattr(settings, 'PUBLIC_BASE_URL', 'http://localhost:8000').rstrip('/')
        return f"{base}/api/v1/reports/{self.report_id}/metadata/"


class Vote(models.Model):
    """
    Ledger entry: one decision per (report, voter), voters compared
    case-insensitively.

    Append-only.  The unique constraint is the authority on duplicates.
    """

    DECISION_APPROVE = 'approve'
    DECISION_REJECT = 'reject'

    DECISION_CHOICES = (
        (DECISION_APPROVE, 'Approve'),
        (DECISION_REJECT, 'Reject'),
    )

    report = models.ForeignKey(
        Report,
        on_delete=models.CASCADE,
        related_name='votes'
    )
    voter_wallet = models.CharField(max_length=100, db_index=True)
    # normalize_wallet(voter_wallet); the uniqueness key
    voter_key = models.CharField(max_length=100, editable=False)
    vote = models.CharField(max_length=10, choices=DECISION_CHOICES)
    comment = models.TextField(blank=True)
    tx_signature = models.CharField(max_length=120, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'report_votes'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['report', 'voter_key'],
                name='unique_vote_per_voter'
            ),
        ]

    def save(self, *args, **kwargs):
        self.voter_key = normalize_wallet(self.voter_wallet)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.voter_wallet} {self.vote} {self.report_id}"
