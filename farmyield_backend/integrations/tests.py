# integrations/tests.py

from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from core.exceptions import ExternalServiceFailure
from integrations.celo import CeloBlockchain
from integrations.registry import get_chain_backend


class CeloBlockchainTestCase(SimpleTestCase):
    """Test cases for the chain collaborator's failure contract"""

    def test_disabled_chain_raises_external_failure(self):
        chain = CeloBlockchain(enabled=False)

        with self.assertRaises(ExternalServiceFailure):
            chain.transfer('0x' + '1' * 40, Decimal('0.01'))
        with self.assertRaises(ExternalServiceFailure):
            chain.mint('0x' + '1' * 40, {'uri': 'https://example.test/metadata/'})
        with self.assertRaises(ExternalServiceFailure):
            chain.mint_badge('0x' + '1' * 40, 'first_report')

    def test_mint_requires_uri(self):
        with self.assertRaises(ExternalServiceFailure):
            CeloBlockchain(enabled=False).mint('0x' + '1' * 40, {})

    def test_context_manager_closes(self):
        with CeloBlockchain(enabled=False) as chain:
            self.assertIsNone(chain.treasury_address)
        self.assertIsNone(chain.w3)


class RegistryTestCase(SimpleTestCase):

    @override_settings(CELO_ENABLED=False, SETTLEMENT_TIMEOUT_SECONDS=7)
    def test_builds_configured_backend(self):
        chain = get_chain_backend()

        self.assertIsInstance(chain, CeloBlockchain)
        self.assertFalse(chain.enabled)
        self.assertEqual(chain.timeout, 7)
