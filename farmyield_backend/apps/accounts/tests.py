# apps/accounts/tests.py

from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient, APITestCase
from rest_framework import status

from core.exceptions import ExternalServiceFailure
from apps.transactions.models import ChainTransaction
from .models import WalletUser, Badge, BADGE_FIRST_REPORT, BADGE_VERIFIED_10, BADGE_TOP_CONTRIBUTOR
from .managers import normalize_wallet
from .services import ReputationTracker, WalletAuthService
from . import tasks


OWNER = 'FARMERaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa'


class StubMinter:
    """Badge minter returning deterministic signatures"""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def mint_badge(self, wallet_address, badge_type):
        self.calls.append((wallet_address, badge_type))
        if self.fail:
            raise ExternalServiceFailure('RPC timeout')
        return f"badge-sig-{badge_type}"


class WalletUserModelTestCase(TestCase):
    """Test cases for WalletUser model"""

    def test_default_username_from_wallet(self):
        user, created = WalletUser.objects.get_or_create_for_wallet(OWNER)

        self.assertTrue(created)
        self.assertEqual(user.username, 'Farmer_FARMER')
        self.assertEqual(user.reputation_score, 0)
        self.assertEqual(user.total_earned, Decimal('0'))

    def test_get_or_create_strips_and_reuses(self):
        first, _ = WalletUser.objects.get_or_create_for_wallet(f"  {OWNER}  ")
        second, created = WalletUser.objects.get_or_create_for_wallet(OWNER)

        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.wallet_address, OWNER)

    def test_empty_wallet_rejected(self):
        with self.assertRaises(ValueError):
            WalletUser.objects.get_or_create_for_wallet('   ')

    def test_wallet_lookup_ignores_case(self):
        evm_wallet = '0xAbCdEf0123456789aBcDeF0123456789AbCdEf01'
        first, created = WalletUser.objects.get_or_create_for_wallet(evm_wallet)
        second, created_again = WalletUser.objects.get_or_create_for_wallet(evm_wallet.upper())

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.wallet_address, evm_wallet)
        self.assertEqual(WalletUser.objects.get_by_wallet(evm_wallet.lower()).pk, first.pk)

    def test_normalize_wallet(self):
        self.assertEqual(normalize_wallet('  AbC '), normalize_wallet('abc'))
        self.assertEqual(normalize_wallet(None), '')

    def test_leaderboard_orders_by_reputation(self):
        low, _ = WalletUser.objects.get_or_create_for_wallet('LOW')
        high, _ = WalletUser.objects.get_or_create_for_wallet('HIGH')
        WalletUser.objects.filter(pk=low.pk).update(reputation_score=10)
        WalletUser.objects.filter(pk=high.pk).update(reputation_score=90)

        wallets = [u.wallet_address for u in WalletUser.objects.leaderboard(limit=2)]
        self.assertEqual(wallets, ['HIGH', 'LOW'])


class ReputationTrackerTestCase(TestCase):
    """Test cases for reputation and badge bookkeeping"""

    def test_calculate_reputation(self):
        self.assertEqual(ReputationTracker.calculate_reputation(1, 4), 25)
        self.assertEqual(ReputationTracker.calculate_reputation(0, 0), 0)
        self.assertEqual(ReputationTracker.calculate_reputation(2, 3), 67)
        # Halves round up
        self.assertEqual(ReputationTracker.calculate_reputation(1, 8), 13)

    def test_submission_awards_first_report_once(self):
        ReputationTracker.on_report_submitted(OWNER)
        user = ReputationTracker.on_report_submitted(OWNER)

        self.assertEqual(user.total_reports, 2)
        self.assertEqual(user.badges.filter(badge_type=BADGE_FIRST_REPORT).count(), 1)

    def test_award_badge_is_idempotent(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)

        first = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)
        second = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(Badge.objects.filter(user=user, badge_type=BADGE_FIRST_REPORT).count(), 1)

    def test_verification_recomputes_reputation(self):
        for _ in range(4):
            ReputationTracker.on_report_submitted(OWNER)

        user = ReputationTracker.on_report_verified(OWNER)

        self.assertEqual(user.verified_reports, 1)
        self.assertEqual(user.reputation_score, 25)
        user.refresh_from_db()
        self.assertEqual(user.reputation_score, 25)

    def test_verified_10_badge_at_threshold(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)
        WalletUser.objects.filter(pk=user.pk).update(total_reports=12, verified_reports=9)

        user = ReputationTracker.on_report_verified(OWNER)

        self.assertEqual(user.verified_reports, 10)
        self.assertTrue(user.has_badge(BADGE_VERIFIED_10))
        self.assertFalse(user.has_badge(BADGE_TOP_CONTRIBUTOR))

    def test_top_contributor_badge(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)
        WalletUser.objects.filter(pk=user.pk).update(total_reports=25, verified_reports=3)

        ReputationTracker.on_report_verified(OWNER)
        ReputationTracker.on_report_verified(OWNER)

        self.assertEqual(user.badges.filter(badge_type=BADGE_TOP_CONTRIBUTOR).count(), 1)

    def test_record_earnings(self):
        ReputationTracker.record_earnings(OWNER, Decimal('0.01'))
        ReputationTracker.record_earnings(OWNER, Decimal('0.01'))

        user = WalletUser.objects.get_by_wallet(OWNER)
        self.assertEqual(user.total_earned, Decimal('0.02'))

    def test_badge_mint_queued_on_commit(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)

        with patch.object(tasks.mint_badge, 'delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                badge = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)

        mock_delay.assert_called_once_with(badge.pk)

    def test_badge_mint_success_records_reference(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)
        badge = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)

        result = ReputationTracker.mint_badge(badge.pk, minter=StubMinter())

        badge.refresh_from_db()
        self.assertEqual(result['status'], 'success')
        self.assertEqual(badge.mint_reference, 'badge-sig-first_report')
        tx = ChainTransaction.objects.get(tx_signature='badge-sig-first_report')
        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_BADGE)
        self.assertEqual(tx.to_wallet, OWNER)

    def test_badge_kept_when_mint_fails(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)
        badge = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)

        result = ReputationTracker.mint_badge(badge.pk, minter=StubMinter(fail=True))

        badge.refresh_from_db()
        self.assertEqual(result['status'], 'failed')
        self.assertIsNone(badge.mint_reference)
        self.assertTrue(user.has_badge(BADGE_FIRST_REPORT))

    def test_minted_badge_not_minted_again(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)
        badge = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)
        minter = StubMinter()

        ReputationTracker.mint_badge(badge.pk, minter=minter)
        result = ReputationTracker.mint_badge(badge.pk, minter=minter)

        self.assertEqual(result['status'], 'skipped')
        self.assertEqual(len(minter.calls), 1)

    def test_mint_task_with_disabled_chain(self):
        user, _ = WalletUser.objects.get_or_create_for_wallet(OWNER)
        badge = ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)

        result = tasks.mint_badge(badge.pk)

        self.assertEqual(result['status'], 'failed')
        badge.refresh_from_db()
        self.assertIsNone(badge.mint_reference)


class WalletAuthServiceTestCase(TestCase):
    """Test cases for wallet token issue / resolve"""

    def test_token_round_trip(self):
        tokens = WalletAuthService.issue_token(OWNER)

        self.assertIn('access', tokens)
        self.assertEqual(WalletAuthService.resolve_wallet(tokens['access']), OWNER)

    def test_garbage_token_resolves_to_none(self):
        self.assertIsNone(WalletAuthService.resolve_wallet('not-a-token'))

    def test_token_signed_with_other_key_rejected(self):
        with override_settings(WALLET_TOKEN_SIGNING_KEY='another-key'):
            token = WalletAuthService.issue_token(OWNER)['access']

        self.assertIsNone(WalletAuthService.resolve_wallet(token))


class AccountAPITestCase(APITestCase):
    """Test cases for profile and token endpoints"""

    def setUp(self):
        self.client = APIClient()
        self.me_url = reverse('accounts:my_profile')
        self.token_url = reverse('accounts:issue_token')

    def test_me_requires_wallet(self):
        response = self.client.get(self.me_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_with_wallet_header_creates_user(self):
        response = self.client.get(self.me_url, HTTP_X_WALLET_ADDRESS=OWNER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['wallet_address'], OWNER)
        self.assertTrue(WalletUser.objects.filter(wallet_address=OWNER).exists())

    def test_issued_token_authenticates(self):
        response = self.client.post(self.token_url, HTTP_X_WALLET_ADDRESS=OWNER)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['token']}")
        response = self.client.get(self.me_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['wallet_address'], OWNER)

    def test_invalid_bearer_token_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer forged')
        response = self.client.get(self.me_url, HTTP_X_WALLET_ADDRESS=OWNER)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_profile(self):
        response = self.client.patch(
            self.me_url,
            {'username': 'Amina', 'district': 'Multan', 'province': 'Punjab'},
            format='json',
            HTTP_X_WALLET_ADDRESS=OWNER
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'Amina')

    def test_public_profile_lists_badges(self):
        ReputationTracker.on_report_submitted(OWNER)

        url = reverse('accounts:wallet_profile', kwargs={'wallet_address': OWNER})
        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_reports'], 1)
        self.assertEqual([b['badge_type'] for b in response.data['badges']], [BADGE_FIRST_REPORT])

    def test_unknown_profile_404(self):
        url = reverse('accounts:wallet_profile', kwargs={'wallet_address': 'NOBODY'})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_leaderboard_limit_floor(self):
        WalletUser.objects.get_or_create_for_wallet('LOW')
        WalletUser.objects.get_or_create_for_wallet('HIGH')

        for limit in ('-1', '0'):
            response = self.client.get(reverse('accounts:leaderboard'), {'limit': limit})

            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(len(response.data['users']), 1)
