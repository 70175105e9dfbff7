# apps/reports/tests.py

from decimal import Decimal
from threading import Barrier, Thread
from unittest.mock import patch

from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings, skipUnlessDBFeature
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient, APITestCase
from rest_framework import status

from core.exceptions import (
    AlreadyFinalized,
    AlreadyVoted,
    DuplicateVote,
    ExternalServiceFailure,
    InvalidInput,
    NotFound,
    SelfVote,
    StorageConflict,
)
from apps.accounts.models import WalletUser
from apps.transactions.models import ChainTransaction
from .models import Report, Vote
from .services import (
    ReconciliationService,
    ReportIDGenerator,
    ReportStore,
    ReportSubmissionService,
    SettlementDispatcher,
    VerificationStateMachine,
    VoteLedger,
    VoteOutcome,
    build_metadata_document,
)
from . import tasks


OWNER = 'OwnerWalletAAAAAAAAAAAAAAAAAAAAAAAAAAAAA'
VOTER_B = 'VoterWalletBBBBBBBBBBBBBBBBBBBBBBBBBBBBB'
VOTER_C = 'VoterWalletCCCCCCCCCCCCCCCCCCCCCCCCCCCCC'
VOTER_D = 'VoterWalletDDDDDDDDDDDDDDDDDDDDDDDDDDDDD'
OTHER_OWNER = 'OtherOwnerWalletEEEEEEEEEEEEEEEEEEEEEEEE'
EVM_VOTER = '0xAbCdEf0123456789aBcDeF0123456789AbCdEf01'

REPORT_FIELDS = {
    'crop_type': 'wheat',
    'quantity': '500',
    'unit': 'kg',
    'latitude': 30.1575,
    'longitude': 71.5249,
    'district': 'Multan',
    'province': 'Punjab',
    'village': 'Basti A',
}


# ---------------------------------------------------------------------------
# Chain fakes
# ---------------------------------------------------------------------------

class FakeChain:
    """Payment + mint collaborator recording every call"""

    treasury_address = 'TREASURY'

    def __init__(self, fail_transfer=False, fail_mint=False):
        self.fail_transfer = fail_transfer
        self.fail_mint = fail_mint
        self.transfers = []
        self.mints = []
        self.badge_mints = []
        self.closed = False

    def transfer(self, to_wallet, amount):
        self.transfers.append((to_wallet, amount))
        if self.fail_transfer:
            raise ExternalServiceFailure('Reward transfer failed: timeout')
        return f"reward-sig-{len(self.transfers)}"

    def mint(self, owner_wallet, metadata):
        self.mints.append((owner_wallet, metadata))
        if self.fail_mint:
            raise ExternalServiceFailure('NFT mint failed: reverted')
        return f"mint-sig-{len(self.mints)}", 'TREE-ADDRESS'

    def mint_badge(self, wallet_address, badge_type):
        self.badge_mints.append((wallet_address, badge_type))
        return f"badge-sig-{badge_type}"

    def close(self):
        self.closed = True


class RecordingChain(FakeChain):
    """CHAIN_BACKEND stand-in; remembers the instances the registry built"""

    instances = []

    @classmethod
    def from_settings(cls):
        chain = cls()
        cls.instances.append(chain)
        return chain

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def submit_report(owner=OWNER, **overrides):
    return ReportSubmissionService.submit(owner, **{**REPORT_FIELDS, **overrides})


def mark_verified(report, voter=VOTER_D):
    Report.objects.filter(pk=report.pk).update(
        status=Report.STATUS_VERIFIED,
        approve_votes=3,
        verified_by=voter,
        verified_at=timezone.now(),
    )
    report.refresh_from_db()
    return report


# ---------------------------------------------------------------------------
# Report store
# ---------------------------------------------------------------------------

class ReportStoreTestCase(TestCase):
    """Test cases for report persistence"""

    def test_create_pending_report(self):
        report = ReportStore.create(OWNER, **REPORT_FIELDS)

        self.assertEqual(report.status, Report.STATUS_PENDING)
        self.assertEqual(report.vote_counts, {'approve': 0, 'reject': 0})
        self.assertEqual(report.quantity_value, Decimal('500'))
        self.assertEqual(report.voters, [])
        self.assertTrue(ReportIDGenerator.is_valid(report.report_id))

    def test_create_missing_fields(self):
        with self.assertRaises(InvalidInput) as ctx:
            ReportStore.create(OWNER, crop_type='maize', quantity='10')

        self.assertIn('latitude', ctx.exception.fields)
        self.assertIn('longitude', ctx.exception.fields)

    def test_create_malformed_fields(self):
        fields = {**REPORT_FIELDS, 'quantity': '-4', 'latitude': 120}

        with self.assertRaises(InvalidInput) as ctx:
            ReportStore.create(OWNER, **fields)

        self.assertEqual(set(ctx.exception.fields), {'quantity', 'latitude'})
        self.assertFalse(Report.objects.exists())

    def test_images_from_cids(self):
        report = ReportStore.create(OWNER, images=['bafyCID1'], **REPORT_FIELDS)

        self.assertEqual(report.images[0]['ipfs_hash'], 'bafyCID1')
        self.assertTrue(report.images[0]['url'].endswith('/bafyCID1'))

    def test_get_by_code_and_pk(self):
        report = ReportStore.create(OWNER, **REPORT_FIELDS)

        self.assertEqual(ReportStore.get(report.report_id).pk, report.pk)
        self.assertEqual(ReportStore.get(str(report.pk)).pk, report.pk)

    def test_get_unknown_raises_not_found(self):
        with self.assertRaises(NotFound):
            ReportStore.get('RPT-2024-00000000')

    def test_filter_and_paginate(self):
        for crop in ('wheat', 'rice', 'wheat'):
            ReportStore.create(OWNER, **{**REPORT_FIELDS, 'crop_type': crop})

        reports, pagination = ReportStore.filter(crop_type='WHEAT', limit=1)

        self.assertEqual(len(reports), 1)
        self.assertEqual(pagination, {'total': 2, 'page': 1, 'limit': 1, 'pages': 2})

    def test_filter_caps_limit(self):
        _, pagination = ReportStore.filter(limit=1000)
        self.assertEqual(pagination['limit'], 100)

    def test_aggregate_map_data(self):
        ReportStore.create(OWNER, **REPORT_FIELDS)
        verified = ReportStore.create(OWNER, **{**REPORT_FIELDS, 'quantity': '300'})
        mark_verified(verified)

        rows = ReportStore.aggregate_map_data()

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['report_count'], 2)
        self.assertEqual(rows[0]['verified_count'], 1)
        self.assertEqual(rows[0]['pending_count'], 1)
        self.assertEqual(Decimal(rows[0]['total_quantity']), Decimal('800'))

    def test_update_receipt_rejects_lifecycle_fields(self):
        report = ReportStore.create(OWNER, **REPORT_FIELDS)

        with self.assertRaises(ValueError):
            ReportStore.update_receipt(report.pk, status=Report.STATUS_VERIFIED)

    def test_submission_counts_report_for_owner(self):
        submit_report()

        user = WalletUser.objects.get_by_wallet(OWNER)
        self.assertEqual(user.total_reports, 1)
        self.assertTrue(user.has_badge('first_report'))


# ---------------------------------------------------------------------------
# Vote ledger
# ---------------------------------------------------------------------------

class VoteLedgerTestCase(TestCase):
    """Test cases for the append-only vote ledger"""

    def setUp(self):
        self.report = ReportStore.create(OWNER, **REPORT_FIELDS)

    def test_cast_vote(self):
        vote = VoteLedger.cast_vote(self.report, VOTER_B, 'approve', comment='Looks right')

        self.assertEqual(vote.vote, Vote.DECISION_APPROVE)
        self.assertEqual(VoteLedger.tally(self.report), {'approve': 1, 'reject': 0})

    def test_duplicate_rejected_by_constraint(self):
        VoteLedger.cast_vote(self.report, VOTER_B, 'approve')

        with self.assertRaises(DuplicateVote):
            VoteLedger.cast_vote(self.report, VOTER_B, 'reject')

        self.assertEqual(VoteLedger.votes_for(self.report).count(), 1)

    def test_duplicate_ignores_wallet_case(self):
        vote = VoteLedger.cast_vote(self.report, EVM_VOTER.lower(), 'approve')

        with self.assertRaises(DuplicateVote):
            VoteLedger.cast_vote(self.report, EVM_VOTER, 'approve')

        self.assertEqual(vote.voter_key, EVM_VOTER.lower())
        self.assertEqual(VoteLedger.votes_for(self.report).count(), 1)

    def test_invalid_decision(self):
        with self.assertRaises(InvalidInput):
            VoteLedger.cast_vote(self.report, VOTER_B, 'maybe')


# ---------------------------------------------------------------------------
# Verification state machine
# ---------------------------------------------------------------------------

class VerificationStateMachineTestCase(TestCase):
    """Test cases for vote application and lifecycle transitions"""

    def setUp(self):
        self.report = submit_report()
        self.machine = VerificationStateMachine()

    def test_three_approvals_verify_once(self):
        with patch.object(tasks.settle_report, 'delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                first = self.machine.apply_vote(self.report.report_id, VOTER_B, 'approve')
                second = self.machine.apply_vote(self.report.report_id, VOTER_C, 'approve')
                third = self.machine.apply_vote(self.report.report_id, VOTER_D, 'approve')

        self.assertIsNone(first.transitioned)
        self.assertIsNone(second.transitioned)
        self.assertEqual(third.transitioned, Report.STATUS_VERIFIED)
        mock_delay.assert_called_once_with(self.report.pk)

        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.STATUS_VERIFIED)
        self.assertEqual(self.report.approve_votes, 3)
        self.assertEqual(self.report.verified_by, VOTER_D)
        self.assertEqual([v['wallet'] for v in self.report.voters], [VOTER_B, VOTER_C, VOTER_D])

    def test_votes_after_verification_already_finalized(self):
        with patch.object(tasks.settle_report, 'delay'):
            for voter in (VOTER_B, VOTER_C, VOTER_D):
                self.machine.apply_vote(self.report.report_id, voter, 'approve')

        with self.assertRaises(AlreadyFinalized) as ctx:
            self.machine.apply_vote(self.report.report_id, 'LateVoter', 'approve')

        self.assertEqual(ctx.exception.report.status, Report.STATUS_VERIFIED)
        self.assertEqual(Vote.objects.filter(report=self.report).count(), 3)
        self.report.refresh_from_db()
        self.assertEqual(self.report.approve_votes, 3)

    def test_three_rejections_reject(self):
        with patch.object(tasks.settle_report, 'delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                for voter in (VOTER_B, VOTER_C, VOTER_D):
                    outcome = self.machine.apply_vote(self.report.report_id, voter, 'reject')

        self.assertEqual(outcome.transitioned, Report.STATUS_REJECTED)
        mock_delay.assert_not_called()

        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.STATUS_REJECTED)
        self.assertEqual(self.report.rejection_reason, 'Community rejected')
        self.assertIsNone(self.report.reward_tx_signature)

        with self.assertRaises(AlreadyFinalized):
            self.machine.apply_vote(self.report.report_id, 'LateVoter', 'approve')

    def test_owner_cannot_vote(self):
        with self.assertRaises(SelfVote):
            self.machine.apply_vote(self.report.report_id, f"  {OWNER.lower()} ", 'approve')

        self.assertFalse(Vote.objects.exists())

    def test_same_voter_twice_already_voted(self):
        self.machine.apply_vote(self.report.report_id, VOTER_B, 'approve')

        with self.assertRaises(AlreadyVoted) as ctx:
            self.machine.apply_vote(self.report.report_id, VOTER_B, 'reject')

        self.assertEqual(ctx.exception.report.vote_counts, {'approve': 1, 'reject': 0})
        self.report.refresh_from_db()
        self.assertEqual(self.report.vote_counts, {'approve': 1, 'reject': 0})
        self.assertEqual(len(self.report.voters), 1)

    def test_concurrent_duplicate_resolved_by_constraint(self):
        # Another process inserted B's ledger row but has not bumped the tally yet
        Vote.objects.create(report=self.report, voter_wallet=VOTER_B, vote='approve')

        with self.assertRaises(AlreadyVoted):
            self.machine.apply_vote(self.report.report_id, VOTER_B, 'approve')

        self.assertEqual(Vote.objects.filter(report=self.report, voter_wallet=VOTER_B).count(), 1)

    def test_unknown_report(self):
        with self.assertRaises(NotFound):
            self.machine.apply_vote('RPT-2024-FFFFFFFF', VOTER_B, 'approve')

    def test_invalid_decision(self):
        with self.assertRaises(InvalidInput):
            self.machine.apply_vote(self.report.report_id, VOTER_B, 'abstain')

    def test_version_conflict_retries_against_latest_tally(self):
        stale = Report.objects.get(pk=self.report.pk)
        self.machine.apply_vote(self.report.report_id, VOTER_C, 'approve')

        original_get = ReportStore.get
        reads = iter([stale])

        def get_with_one_stale_read(report_ref):
            return next(reads, None) or original_get(report_ref)

        with patch.object(ReportStore, 'get', side_effect=get_with_one_stale_read):
            outcome = self.machine.apply_vote(self.report.report_id, VOTER_B, 'approve')

        self.assertEqual(outcome.attempts, 2)
        self.report.refresh_from_db()
        self.assertEqual(self.report.approve_votes, 2)
        self.assertEqual(self.report.version, 2)
        self.assertEqual(Vote.objects.filter(report=self.report).count(), 2)

    def test_conflict_surfaces_after_retries(self):
        machine = VerificationStateMachine(max_retries=2)

        def always_stale(report_ref):
            report = Report.objects.get(pk=self.report.pk)
            report.version += 100
            return report

        with patch.object(ReportStore, 'get', side_effect=always_stale) as mock_get:
            with self.assertRaises(StorageConflict):
                machine.apply_vote(self.report.report_id, VOTER_B, 'approve')

        self.assertEqual(mock_get.call_count, 3)
        # Every attempt rolled back its ledger insert
        self.assertFalse(Vote.objects.exists())
        self.report.refresh_from_db()
        self.assertEqual(self.report.approve_votes, 0)

    def test_approve_evaluated_before_reject(self):
        machine = VerificationStateMachine(approve_threshold=1, reject_threshold=1)

        with patch.object(tasks.settle_report, 'delay'):
            outcome = machine.apply_vote(self.report.report_id, VOTER_B, 'approve')

        self.assertEqual(outcome.transitioned, Report.STATUS_VERIFIED)

    def test_vote_signature_recorded_as_transaction(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.machine.apply_vote(self.report.report_id, VOTER_B, 'approve', tx_signature='vote-sig-1')

        tx = ChainTransaction.objects.get(tx_signature='vote-sig-1')
        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_VOTE)
        self.assertEqual(tx.from_wallet, VOTER_B)
        self.assertEqual(tx.to_wallet, OWNER)
        self.assertEqual(tx.report_id, self.report.pk)

    def test_case_variants_of_one_wallet_vote_once(self):
        self.machine.apply_vote(self.report.report_id, EVM_VOTER.lower(), 'approve')

        for variant in (EVM_VOTER, EVM_VOTER.upper(), f"  {EVM_VOTER.title()} "):
            with self.assertRaises(AlreadyVoted):
                self.machine.apply_vote(self.report.report_id, variant, 'approve')

        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.STATUS_PENDING)
        self.assertEqual(self.report.approve_votes, 1)
        self.assertEqual(len(self.report.voters), 1)
        self.assertEqual(Vote.objects.filter(report=self.report).count(), 1)

    def test_vote_signature_cannot_rewrite_reward_record(self):
        chain = FakeChain()
        settled = mark_verified(submit_report(owner=OTHER_OWNER))
        SettlementDispatcher(payment=chain, minter=chain).settle(settled.pk)

        with self.captureOnCommitCallbacks(execute=True):
            outcome = self.machine.apply_vote(
                self.report.report_id, VOTER_B, 'approve', tx_signature='reward-sig-1'
            )

        self.assertEqual(outcome.vote.tx_signature, 'reward-sig-1')
        tx = ChainTransaction.objects.get(tx_signature='reward-sig-1')
        self.assertEqual(tx.tx_type, ChainTransaction.TYPE_REWARD)
        self.assertEqual(tx.from_wallet, 'TREASURY')
        self.assertEqual(tx.to_wallet, OTHER_OWNER)
        self.assertEqual(tx.report_id, settled.pk)
        self.assertEqual(tx.amount, Decimal('0.01'))

    def test_vote_signature_cannot_take_other_voters_record(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.machine.apply_vote(self.report.report_id, VOTER_B, 'approve', tx_signature='vote-sig-1')
            self.machine.apply_vote(self.report.report_id, VOTER_C, 'approve', tx_signature='vote-sig-1')

        tx = ChainTransaction.objects.get(tx_signature='vote-sig-1')
        self.assertEqual(tx.from_wallet, VOTER_B)


@skipUnlessDBFeature('test_db_allows_multiple_connections')
class ConcurrentVoteTestCase(TransactionTestCase):
    """
    Votes racing in separate database connections.

    In-memory SQLite cannot give each thread its own connection to the
    test database, so these run on PostgreSQL only.
    """

    def setUp(self):
        self.report = ReportStore.create(OWNER, **REPORT_FIELDS)
        self.machine = VerificationStateMachine(approve_threshold=10, reject_threshold=10)

    def race(self, *votes):
        barrier = Barrier(len(votes))
        results = [None] * len(votes)

        def cast(index, voter, decision):
            try:
                barrier.wait()
                results[index] = self.machine.apply_vote(self.report.report_id, voter, decision)
            except Exception as e:
                results[index] = e
            finally:
                connection.close()

        threads = [
            Thread(target=cast, args=(index, voter, decision))
            for index, (voter, decision) in enumerate(votes)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_same_voter_racing_leaves_one_ledger_entry(self):
        results = self.race((VOTER_B, 'approve'), (VOTER_B.lower(), 'reject'))

        outcomes = [r for r in results if isinstance(r, VoteOutcome)]
        errors = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(outcomes), 1)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], AlreadyVoted)

        self.report.refresh_from_db()
        self.assertEqual(Vote.objects.filter(report=self.report).count(), 1)
        self.assertEqual(self.report.vote_counts, VoteLedger.tally(self.report))
        self.assertEqual(len(self.report.voters), 1)

    def test_distinct_voters_racing_are_both_counted(self):
        results = self.race((VOTER_B, 'approve'), (VOTER_C, 'approve'))

        self.assertTrue(all(isinstance(r, VoteOutcome) for r in results), results)

        self.report.refresh_from_db()
        self.assertEqual(self.report.vote_counts, {'approve': 2, 'reject': 0})
        self.assertEqual(VoteLedger.tally(self.report), {'approve': 2, 'reject': 0})
        self.assertEqual(self.report.version, 2)
        self.assertEqual(
            sorted(v['wallet'] for v in self.report.voters),
            sorted([VOTER_B, VOTER_C])
        )


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

class SettlementDispatcherTestCase(TestCase):
    """Test cases for reward, mint and reputation settlement"""

    def setUp(self):
        self.report = mark_verified(submit_report())

    def test_settle_pays_and_mints(self):
        chain = FakeChain()

        result = SettlementDispatcher(payment=chain, minter=chain).settle(self.report.pk)

        self.assertEqual((result.reputation, result.reward, result.mint), ('applied', 'sent', 'sent'))
        self.assertEqual(chain.transfers, [(OWNER, Decimal('0.01'))])

        self.report.refresh_from_db()
        self.assertEqual(self.report.reward_tx_signature, 'reward-sig-1')
        self.assertEqual(self.report.reward_amount, Decimal('0.01'))
        self.assertEqual(self.report.mint_tx_signature, 'mint-sig-1')
        self.assertEqual(self.report.tree_address, 'TREE-ADDRESS')

        owner = WalletUser.objects.get_by_wallet(OWNER)
        self.assertEqual(owner.total_earned, Decimal('0.01'))
        self.assertEqual(owner.verified_reports, 1)
        self.assertEqual(owner.reputation_score, 100)

        reward_tx = ChainTransaction.objects.get(tx_signature='reward-sig-1')
        self.assertEqual(reward_tx.tx_type, ChainTransaction.TYPE_REWARD)
        self.assertEqual(reward_tx.from_wallet, 'TREASURY')
        self.assertEqual(reward_tx.amount, Decimal('0.01'))
        self.assertTrue(ChainTransaction.objects.filter(
            tx_signature='mint-sig-1', tx_type=ChainTransaction.TYPE_MINT
        ).exists())

    def test_settle_twice_never_pays_twice(self):
        chain = FakeChain()
        dispatcher = SettlementDispatcher(payment=chain, minter=chain)

        dispatcher.settle(self.report.pk)
        second = dispatcher.settle(self.report.pk)

        self.assertEqual((second.reputation, second.reward, second.mint), ('skipped', 'skipped', 'skipped'))
        self.assertEqual(len(chain.transfers), 1)
        self.assertEqual(len(chain.mints), 1)
        owner = WalletUser.objects.get_by_wallet(OWNER)
        self.assertEqual(owner.total_earned, Decimal('0.01'))
        self.assertEqual(owner.verified_reports, 1)

    def test_in_flight_reward_claim_blocks_transfer(self):
        Report.objects.filter(pk=self.report.pk).update(reward_claimed_at=timezone.now())
        chain = FakeChain()

        result = SettlementDispatcher(payment=chain, minter=chain).settle(self.report.pk)

        self.assertEqual(result.reward, 'skipped')
        self.assertEqual(chain.transfers, [])

    def test_reward_failure_leaves_receipt_empty(self):
        chain = FakeChain(fail_transfer=True)

        result = SettlementDispatcher(payment=chain, minter=chain).settle(self.report.pk)

        self.assertEqual(result.reward, 'failed')
        self.assertEqual(result.mint, 'sent')
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.STATUS_VERIFIED)
        self.assertIsNone(self.report.reward_tx_signature)
        self.assertIsNone(self.report.reward_claimed_at)
        self.assertEqual(WalletUser.objects.get_by_wallet(OWNER).total_earned, Decimal('0'))

    def test_failed_reward_can_be_resettled(self):
        failing = FakeChain(fail_transfer=True, fail_mint=True)
        SettlementDispatcher(payment=failing, minter=failing).settle(self.report.pk)

        self.assertEqual(list(ReconciliationService.unsettled_reports()), [self.report])

        chain = FakeChain()
        results = ReconciliationService.resettle(SettlementDispatcher(payment=chain, minter=chain))

        self.assertEqual(results[0].reward, 'sent')
        self.assertEqual(results[0].reputation, 'skipped')
        self.assertFalse(ReconciliationService.unsettled_reports().exists())

    def test_mint_receives_metadata_uri(self):
        chain = FakeChain()

        SettlementDispatcher(payment=chain, minter=chain).settle(self.report.pk)

        owner, metadata = chain.mints[0]
        self.assertEqual(owner, OWNER)
        self.assertEqual(
            metadata['uri'],
            f"https://api.farmyield.test/api/v1/reports/{self.report.report_id}/metadata/"
        )
        self.assertEqual(metadata['crop_type'], 'wheat')
        self.assertEqual(metadata['quantity'], '500 kg')
        self.assertEqual(metadata['location'], 'Multan, Punjab')

    def test_pending_report_not_settled(self):
        pending = submit_report()
        chain = FakeChain()

        result = SettlementDispatcher(payment=chain, minter=chain).settle(pending.pk)

        self.assertFalse(result.settled)
        self.assertEqual(chain.transfers, [])

    def test_reward_amount_from_settings(self):
        chain = FakeChain()

        with override_settings(VERIFICATION_REWARD_AMOUNT=Decimal('0.05')):
            SettlementDispatcher(payment=chain, minter=chain).settle(self.report.pk)

        self.assertEqual(chain.transfers, [(OWNER, Decimal('0.05'))])

    @override_settings(CHAIN_BACKEND='apps.reports.tests.RecordingChain')
    def test_settle_task_builds_and_closes_backend(self):
        RecordingChain.instances = []

        result = tasks.settle_report(self.report.pk)

        self.assertEqual(result['reward'], 'sent')
        self.assertEqual(len(RecordingChain.instances), 1)
        self.assertTrue(RecordingChain.instances[0].closed)

    def test_disabled_chain_is_non_fatal(self):
        result = tasks.settle_report(self.report.pk)

        self.assertEqual((result['reward'], result['mint']), ('failed', 'failed'))
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.STATUS_VERIFIED)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

class ReconciliationTestCase(TestCase):
    """Test cases for tally drift detection"""

    def setUp(self):
        self.report = submit_report()
        VerificationStateMachine().apply_vote(self.report.report_id, VOTER_B, 'approve')

    def test_consistent_tallies(self):
        self.assertEqual(ReconciliationService.find_tally_drift(), [])

    def test_ledger_entry_without_tally_is_detected_and_fixed(self):
        Vote.objects.create(report=self.report, voter_wallet=VOTER_C, vote='reject')

        drift = ReconciliationService.reconcile_tallies(fix=True)

        self.assertEqual(drift[0]['ledger'], {'approve': 1, 'reject': 1})
        self.assertTrue(drift[0]['fixed'])
        self.report.refresh_from_db()
        self.assertEqual(self.report.vote_counts, {'approve': 1, 'reject': 1})
        self.assertEqual([v['wallet'] for v in self.report.voters], [VOTER_B, VOTER_C])

    def test_reconcile_task_reports_drift(self):
        Vote.objects.create(report=self.report, voter_wallet=VOTER_C, vote='reject')

        self.assertEqual(tasks.reconcile_tallies(), {'drift': 1, 'fixed': 0})


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@override_settings(CHAIN_BACKEND='apps.reports.tests.RecordingChain')
class ReportAPITestCase(APITestCase):
    """End-to-end report submission and voting"""

    def setUp(self):
        self.client = APIClient()
        RecordingChain.instances = []

    def submit(self, owner=OWNER, **overrides):
        return self.client.post(
            reverse('reports:submit'),
            {**REPORT_FIELDS, **overrides},
            format='json',
            HTTP_X_WALLET_ADDRESS=owner
        )

    def vote(self, report_id, voter, decision):
        return self.client.post(
            reverse('reports:vote', kwargs={'report_ref': report_id}),
            {'vote': decision},
            format='json',
            HTTP_X_WALLET_ADDRESS=voter
        )

    def test_submit_report(self):
        response = self.submit()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['report']['status'], 'pending')
        self.assertEqual(Report.objects.get().owner_wallet, OWNER)

    def test_submit_accepts_camel_case(self):
        fields = {k: v for k, v in REPORT_FIELDS.items() if k != 'crop_type'}
        response = self.client.post(
            reverse('reports:submit'),
            {**fields, 'cropType': 'Maize', 'marketPrice': '70'},
            format='json',
            HTTP_X_WALLET_ADDRESS=OWNER
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Report.objects.get().crop_type, 'maize')

    def test_submit_requires_wallet(self):
        response = self.client.post(reverse('reports:submit'), REPORT_FIELDS, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_submit_missing_fields(self):
        response = self.client.post(
            reverse('reports:submit'),
            {'crop_type': 'wheat'},
            format='json',
            HTTP_X_WALLET_ADDRESS=OWNER
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('quantity', response.data)

    def test_approval_scenario_rewards_owner(self):
        report_id = self.submit().data['report']['report_id']

        with self.captureOnCommitCallbacks(execute=True):
            for voter in (VOTER_B, VOTER_C, VOTER_D):
                response = self.vote(report_id, voter, 'approve')
                self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.assertEqual(response.data['report']['status'], 'verified')
        self.assertEqual(response.data['report']['votes'], {'approve': 3, 'reject': 0})

        report = Report.objects.get(report_id=report_id)
        self.assertEqual(report.reward_tx_signature, 'reward-sig-1')
        owner = WalletUser.objects.get_by_wallet(OWNER)
        self.assertEqual(owner.total_earned, Decimal('0.01'))
        self.assertEqual(owner.verified_reports, 1)

        late = self.vote(report_id, 'LateVoter', 'approve')
        self.assertEqual(late.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(late.data['error'], 'already_finalized')
        self.assertEqual(late.data['report']['status'], 'verified')

    def test_rejection_scenario(self):
        report_id = self.submit().data['report']['report_id']

        with self.captureOnCommitCallbacks(execute=True):
            for voter in (VOTER_B, VOTER_C, VOTER_D):
                self.vote(report_id, voter, 'reject')

        report = Report.objects.get(report_id=report_id)
        self.assertEqual(report.status, Report.STATUS_REJECTED)
        self.assertEqual(report.rejection_reason, 'Community rejected')
        self.assertEqual(RecordingChain.instances, [])
        self.assertFalse(ChainTransaction.objects.filter(tx_type=ChainTransaction.TYPE_REWARD).exists())

        late = self.vote(report_id, 'LateVoter', 'approve')
        self.assertEqual(late.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(late.data['report']['votes'], {'approve': 0, 'reject': 3})

    def test_second_vote_returns_current_tallies(self):
        report_id = self.submit().data['report']['report_id']
        self.vote(report_id, VOTER_B, 'approve')

        response = self.vote(report_id, VOTER_B, 'reject')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'already_voted')
        self.assertEqual(response.data['report']['status'], 'pending')
        self.assertEqual(response.data['report']['votes'], {'approve': 1, 'reject': 0})

    def test_owner_vote_forbidden(self):
        report_id = self.submit().data['report']['report_id']

        response = self.vote(report_id, OWNER.upper(), 'approve')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'self_vote')

    def test_vote_on_unknown_report(self):
        response = self.vote('RPT-2024-ABCDEF12', VOTER_B, 'approve')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'not_found')

    def test_vote_requires_wallet(self):
        report_id = self.submit().data['report']['report_id']

        response = self.client.post(
            reverse('reports:vote', kwargs={'report_ref': report_id}),
            {'vote': 'approve'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_filters(self):
        self.submit()
        self.submit(crop_type='rice', province='Sindh')

        response = self.client.get(reverse('reports:report_list'), {'cropType': 'rice'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['reports']), 1)
        self.assertEqual(response.data['reports'][0]['location']['province'], 'Sindh')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_invalid_status_filter(self):
        response = self.client.get(reverse('reports:report_list'), {'status': 'archived'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_input')

    def test_user_reports(self):
        self.submit()
        self.submit(owner=VOTER_B)

        url = reverse('reports:user_reports', kwargs={'wallet_address': OWNER})
        response = self.client.get(url)

        self.assertEqual([r['owner_wallet'] for r in response.data['reports']], [OWNER])

    def test_report_detail(self):
        report_id = self.submit().data['report']['report_id']

        response = self.client.get(reverse('reports:report_detail', kwargs={'report_ref': report_id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['report']['report_id'], report_id)
        self.assertEqual(response.data['report']['votes'], {'approve': 0, 'reject': 0})

    def test_metadata_document(self):
        report_id = self.submit(images=['bafyCID1']).data['report']['report_id']

        response = self.client.get(reverse('reports:metadata', kwargs={'report_ref': report_id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'WHEAT Report')
        self.assertEqual(response.data['description'], 'Crop report from Multan, Punjab')
        self.assertTrue(response.data['image'].endswith('bafyCID1'))
        attributes = {a['trait_type']: a['value'] for a in response.data['attributes']}
        self.assertEqual(attributes['Quantity'], '500 kg')
        self.assertEqual(attributes['Report ID'], report_id)
        self.assertEqual(response.data['properties']['creators'], [{'address': OWNER, 'share': 100}])

    def test_metadata_unknown_report(self):
        response = self.client.get(reverse('reports:metadata', kwargs={'report_ref': 'RPT-2024-00000000'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_map_data(self):
        self.submit()

        response = self.client.get(reverse('reports:map_data'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'][0]['report_count'], 1)


class MetadataBuilderTestCase(TestCase):

    def test_document_without_images(self):
        report = ReportStore.create(OWNER, **REPORT_FIELDS)

        document = build_metadata_document(report)

        self.assertEqual(document['image'], '')
        self.assertEqual(document['properties']['category'], 'agriculture')
