# apps/transactions/tests.py

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient, APITestCase
from rest_framework import status

from .models import ChainTransaction
from .services import TransactionLedger, WebhookIngestionService


FARMER = 'FarmerWallet111111111111111111111111111111'
TREASURY = 'TreasuryWallet1111111111111111111111111111'


class TransactionLedgerTestCase(TestCase):
    """Test cases for the signature-keyed upsert"""

    def test_upsert_is_idempotent_per_signature(self):
        TransactionLedger.record_or_update_transaction('sig-1', {
            'tx_type': ChainTransaction.TYPE_REWARD,
            'to_wallet': FARMER,
            'metadata': {'description': 'Verification reward'},
        })
        tx = TransactionLedger.record_or_update_transaction('sig-1', {
            'status': ChainTransaction.STATUS_CONFIRMED,
            'metadata': {'slot_seen': True},
        })

        self.assertEqual(ChainTransaction.objects.count(), 1)
        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_REWARD)
        self.assertEqual(tx.status, ChainTransaction.STATUS_CONFIRMED)
        self.assertEqual(tx.metadata, {'description': 'Verification reward', 'slot_seen': True})

    def test_signature_required(self):
        with self.assertRaises(ValueError):
            TransactionLedger.record_or_update_transaction('', {'tx_type': ChainTransaction.TYPE_VOTE})

    def test_unknown_field_rejected(self):
        with self.assertRaises(ValueError):
            TransactionLedger.record_or_update_transaction('sig-1', {'fee': 5})

    def test_user_history_covers_both_directions(self):
        TransactionLedger.record_or_update_transaction('sig-in', {'to_wallet': FARMER})
        TransactionLedger.record_or_update_transaction('sig-out', {'from_wallet': FARMER})
        TransactionLedger.record_or_update_transaction('sig-other', {'to_wallet': TREASURY})

        signatures = set(TransactionLedger.get_user_history(FARMER).values_list('tx_signature', flat=True))
        self.assertEqual(signatures, {'sig-in', 'sig-out'})

    def test_vote_record_never_rewrites_settlement_row(self):
        TransactionLedger.record_or_update_transaction('reward-sig', {
            'tx_type': ChainTransaction.TYPE_REWARD,
            'from_wallet': TREASURY,
            'to_wallet': FARMER,
            'amount': Decimal('0.01'),
        })

        result = TransactionLedger.record_vote_transaction('reward-sig', {
            'tx_type': ChainTransaction.TYPE_VOTE,
            'from_wallet': 'VoterWallet',
            'to_wallet': 'SomeoneElse',
        })

        self.assertIsNone(result)
        tx = ChainTransaction.objects.get(tx_signature='reward-sig')
        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_REWARD)
        self.assertEqual(tx.from_wallet, TREASURY)
        self.assertEqual(tx.to_wallet, FARMER)

    def test_vote_record_completes_webhook_row(self):
        WebhookIngestionService.ingest({'signature': 'vote-sig', 'slot': 7})

        tx = TransactionLedger.record_vote_transaction('vote-sig', {
            'tx_type': ChainTransaction.TYPE_VOTE,
            'from_wallet': FARMER,
            'to_wallet': TREASURY,
        })

        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_VOTE)
        self.assertEqual(tx.from_wallet, FARMER)
        self.assertEqual(tx.slot, 7)


class WebhookIngestionServiceTestCase(TestCase):
    """Test cases for chain webhook normalisation"""

    def test_map_type(self):
        self.assertEqual(WebhookIngestionService.map_type('COMPRESSED_NFT_MINT'), ChainTransaction.TYPE_MINT)
        self.assertEqual(WebhookIngestionService.map_type('UNKNOWN', 'Badge: first_report'), ChainTransaction.TYPE_BADGE)
        self.assertEqual(WebhookIngestionService.map_type('UNKNOWN', 'Vote approve for report'), ChainTransaction.TYPE_VOTE)
        self.assertEqual(WebhookIngestionService.map_type('TRANSFER'), ChainTransaction.TYPE_REWARD)
        self.assertEqual(WebhookIngestionService.map_type(None), ChainTransaction.TYPE_UNKNOWN)

    def test_normalise_transfer_event(self):
        fields = WebhookIngestionService.normalise_event({
            'signature': 'sig-1',
            'type': 'TRANSFER',
            'timestamp': 1700000000,
            'slot': 250,
            'nativeTransfers': [
                {'fromUserAccount': TREASURY, 'toUserAccount': FARMER, 'amount': 10000000},
            ],
        })

        self.assertEqual(fields['tx_type'], ChainTransaction.TYPE_REWARD)
        self.assertEqual(fields['from_wallet'], TREASURY)
        self.assertEqual(fields['to_wallet'], FARMER)
        self.assertEqual(fields['amount'], Decimal('0.01'))
        self.assertEqual(fields['status'], ChainTransaction.STATUS_CONFIRMED)
        self.assertEqual(fields['block_time'], datetime.fromtimestamp(1700000000, tz=dt_timezone.utc))

    def test_failed_event(self):
        fields = WebhookIngestionService.normalise_event({
            'signature': 'sig-1',
            'transactionError': {'InstructionError': [0, 'Custom']},
        })
        self.assertEqual(fields['status'], ChainTransaction.STATUS_FAILED)

    def test_events_without_signature_skipped(self):
        processed = WebhookIngestionService.ingest([
            {'type': 'TRANSFER'},
            {'txSignature': 'sig-2', 'type': 'TRANSFER'},
            'not-an-event',
        ])

        self.assertEqual(processed, 1)
        self.assertEqual(list(ChainTransaction.objects.values_list('tx_signature', flat=True)), ['sig-2'])

    def test_webhook_does_not_erase_settlement_fields(self):
        TransactionLedger.record_or_update_transaction('sig-1', {
            'tx_type': ChainTransaction.TYPE_REWARD,
            'to_wallet': FARMER,
            'amount': Decimal('0.01'),
        })

        WebhookIngestionService.ingest({'signature': 'sig-1', 'slot': 99})

        tx = ChainTransaction.objects.get(tx_signature='sig-1')
        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_REWARD)
        self.assertEqual(tx.to_wallet, FARMER)
        self.assertEqual(tx.slot, 99)

    def test_malformed_event_discards_whole_batch(self):
        with self.assertRaises(ValueError):
            WebhookIngestionService.ingest([
                {'signature': 'sig-1', 'type': 'TRANSFER', 'timestamp': 1700000000},
                {'signature': 'sig-2', 'type': 'TRANSFER', 'timestamp': 'yesterday'},
            ])

        self.assertFalse(ChainTransaction.objects.exists())

    def test_authorization(self):
        self.assertTrue(WebhookIngestionService.is_authorized('Bearer test-webhook-token'))
        self.assertFalse(WebhookIngestionService.is_authorized('Bearer wrong'))
        self.assertFalse(WebhookIngestionService.is_authorized(None))

        with override_settings(CHAIN_WEBHOOK_AUTH_TOKEN=''):
            self.assertTrue(WebhookIngestionService.is_authorized(None))


class ChainWebhookAPITestCase(APITestCase):
    """Test cases for the webhook endpoint"""

    def setUp(self):
        self.client = APIClient()
        self.url = reverse('chain_webhook')
        self.payload = [{
            'signature': 'sig-1',
            'type': 'TRANSFER',
            'nativeTransfers': [
                {'fromUserAccount': TREASURY, 'toUserAccount': FARMER, 'amount': 10000000},
            ],
        }]

    def test_rejects_missing_token(self):
        response = self.client.post(self.url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(ChainTransaction.objects.exists())

    def test_redelivery_is_idempotent(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer test-webhook-token')

        first = self.client.post(self.url, self.payload, format='json')
        second = self.client.post(self.url, self.payload, format='json')

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data, {'success': True, 'processed': 1})
        self.assertEqual(second.data['processed'], 1)
        self.assertEqual(ChainTransaction.objects.count(), 1)

    def test_malformed_batch_rejected_without_partial_writes(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer test-webhook-token')
        payload = self.payload + [{'signature': 'sig-2', 'timestamp': 'yesterday'}]

        response = self.client.post(self.url, payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(ChainTransaction.objects.exists())


class TransactionHistoryAPITestCase(APITestCase):

    def setUp(self):
        self.client = APIClient()
        TransactionLedger.record_or_update_transaction('sig-reward', {
            'tx_type': ChainTransaction.TYPE_REWARD, 'to_wallet': FARMER,
        })
        TransactionLedger.record_or_update_transaction('sig-vote', {
            'tx_type': ChainTransaction.TYPE_VOTE, 'from_wallet': FARMER,
        })

    def test_history(self):
        url = reverse('transactions:history', kwargs={'wallet_address': FARMER})
        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['transactions']), 2)

    def test_history_filtered_by_type(self):
        url = reverse('transactions:history', kwargs={'wallet_address': FARMER})
        response = self.client.get(url, {'tx_type': ChainTransaction.TYPE_VOTE})

        self.assertEqual([t['tx_signature'] for t in response.data['transactions']], ['sig-vote'])
        self.assertIsNone(response.data['transactions'][0]['report_id'])

    def test_history_limit_floor(self):
        url = reverse('transactions:history', kwargs={'wallet_address': FARMER})

        for limit in ('-1', '0'):
            response = self.client.get(url, {'limit': limit})

            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(len(response.data['transactions']), 1)


class HealthCheckAPITestCase(APITestCase):

    def test_health_reports_chain_flags(self):
        response = APIClient().get(reverse('health'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')
        self.assertFalse(response.data['chain']['enabled'])
        self.assertFalse(response.data['chain']['treasury_configured'])
