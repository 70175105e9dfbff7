# apps/accounts/models.py

from decimal import Decimal
from django.db import models
from django.db.models.functions import Lower
from django.utils import timezone
from .managers import WalletUserManager


BADGE_FIRST_REPORT = 'first_report'
BADGE_VERIFIED_10 = 'verified_10'
BADGE_TOP_CONTRIBUTOR = 'top_contributor'

BADGE_TYPES = (
    (BADGE_FIRST_REPORT, 'First Report'),
    (BADGE_VERIFIED_10, '10 Verified Reports'),
    (BADGE_TOP_CONTRIBUTOR, 'Top Contributor'),
)


class WalletUser(models.Model):
    """
    Farmer / voter identified by a wallet address.

    Created lazily on first interaction and never deleted. Aggregate
    counters are maintained by the ReputationTracker service.
    """

    wallet_address = models.CharField(
        max_length=100,
        unique=True,
        db_index=True
    )
    username = models.CharField(max_length=100, blank=True)

    # Aggregate counters
    total_reports = models.PositiveIntegerField(default=0)
    verified_reports = models.PositiveIntegerField(default=0)
    total_earned = models.DecimalField(
        max_digits=20,
        decimal_places=9,
        default=Decimal('0'),
        help_text='Total native-token rewards earned'
    )
    reputation_score = models.PositiveIntegerField(
        default=0,
        help_text='round(verified_reports / total_reports * 100)'
    )

    # Profile
    district = models.CharField(max_length=100, blank=True)
    province = models.CharField(max_length=100, blank=True)

    # Timestamps
    joined_at = models.DateTimeField(default=timezone.now)
    last_active = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = WalletUserManager()

    class Meta:
        db_table = 'wallet_users'
        ordering = ['-joined_at']
        indexes = [
            models.Index(fields=['-reputation_score'], name='wallet_user_reputation_idx'),
        ]
        constraints = [
            models.UniqueConstraint(Lower('wallet_address'), name='unique_wallet_address_ci'),
        ]

    def __str__(self):
        return f"{self.username} ({self.wallet_address})"

    def save(self, *args, **kwargs):
        if not self.username:
            self.username = f"Farmer_{self.wallet_address[:6]}"
        super().save(*args, **kwargs)

    # DRF treats the resolved wallet as the request user
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    def has_badge(self, badge_type):
        return self.badges.filter(badge_type=badge_type).exists()

    def update_activity(self):
        """Update last activity timestamp"""
        self.last_active = timezone.now()
        self.save(update_fields=['last_active'])


class Badge(models.Model):
    """One-time-per-type achievement on a user's profile"""

    user = models.ForeignKey(
        WalletUser,
        on_delete=models.CASCADE,
        related_name='badges'
    )
    badge_type = models.CharField(max_length=30, choices=BADGE_TYPES)
    earned_at = models.DateTimeField(default=timezone.now)
    mint_reference = models.CharField(
        max_length=120,
        null=True,
        blank=True,
        help_text='Badge NFT mint transaction, empty if minting failed'
    )

    class Meta:
        db_table = 'wallet_badges'
        ordering = ['earned_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'badge_type'],
                name='unique_badge_type_per_user'
            ),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.get_badge_type_display()}"
