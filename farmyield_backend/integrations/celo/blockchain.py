# Celo Blockchain Integration

from decimal import Decimal
from web3 import Web3
from django.conf import settings
import logging

from core.exceptions import ExternalServiceFailure

logger = logging.getLogger(__name__)

# Minimal ERC-721 surface the reward collection contract exposes
NFT_CONTRACT_ABI = [
    {
        'name': 'safeMint',
        'type': 'function',
        'stateMutability': 'nonpayable',
        'inputs': [
            {'name': 'to', 'type': 'address'},
            {'name': 'uri', 'type': 'string'},
        ],
        'outputs': [{'name': '', 'type': 'uint256'}],
    },
]


class CeloBlockchain:
    """
    Payment and mint collaborator for settlement.

    Every call is bounded by ``timeout`` seconds (RPC requests and receipt
    waits) and raises ExternalServiceFailure on any error, including a
    disabled integration.  Instances are built by the composition root
    (``integrations.registry.get_chain_backend``) and closed after use.
    """

    def __init__(self, rpc_url=None, private_key=None, nft_contract=None,
                 chain_id=None, enabled=True, timeout=30, badge_metadata_base_url=''):
        self.enabled = enabled
        self.timeout = timeout
        self.chain_id = chain_id
        self.nft_contract = nft_contract
        self.badge_metadata_base_url = badge_metadata_base_url
        self.w3 = None
        self.account = None

        if self.enabled:
            self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))
            if private_key:
                self.account = self.w3.eth.account.from_key(private_key)

    @classmethod
    def from_settings(cls):
        return cls(
            rpc_url=getattr(settings, 'CELO_RPC_URL', 'https://alfajores-forno.celo-testnet.org'),
            private_key=getattr(settings, 'CELO_PRIVATE_KEY', None),
            nft_contract=getattr(settings, 'CELO_NFT_CONTRACT', None),
            chain_id=getattr(settings, 'CELO_CHAIN_ID', None),
            enabled=getattr(settings, 'CELO_ENABLED', False),
            timeout=getattr(settings, 'SETTLEMENT_TIMEOUT_SECONDS', 30),
            badge_metadata_base_url=getattr(settings, 'BADGE_METADATA_BASE_URL', ''),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self):
        self.w3 = None
        self.account = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def treasury_address(self):
        return self.account.address if self.account else None

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------
    def transfer(self, to_wallet, amount):
        """Send ``amount`` native tokens to ``to_wallet``; returns tx hash"""
        self._require_signer('transfer')
        recipient = self._checksum(to_wallet)

        try:
            value = self.w3.to_wei(Decimal(str(amount)), 'ether')
            balance = self.w3.eth.get_balance(self.account.address)
            if balance < value:
                raise ExternalServiceFailure(
                    f"Insufficient treasury balance: {self.w3.from_wei(balance, 'ether')}"
                )

            tx = {
                'from': self.account.address,
                'to': recipient,
                'value': value,
                'gas': 21000,
                'gasPrice': self.w3.eth.gas_price,
                'nonce': self.w3.eth.get_transaction_count(self.account.address),
            }
            if self.chain_id:
                tx['chainId'] = self.chain_id

            tx_hash = self._send(tx)
            logger.info(f"Reward sent: {amount} to {recipient} ({tx_hash})")
            return tx_hash

        except ExternalServiceFailure:
            raise
        except Exception as e:
            logger.error(f"Reward transfer failed: {e}")
            raise ExternalServiceFailure(f"Reward transfer failed: {e}") from e

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------
    def mint(self, owner_wallet, metadata):
        """
        Mint the report NFT to ``owner_wallet``.

        ``metadata['uri']`` is the dereferenceable metadata document.
        Returns ``(tx_hash, collection_address)``.
        """
        uri = metadata.get('uri')
        if not uri:
            raise ExternalServiceFailure('Mint metadata requires a uri')

        tx_hash = self._safe_mint(owner_wallet, uri)
        logger.info(f"Report NFT minted for {owner_wallet}: {tx_hash}")
        return tx_hash, self.nft_contract

    def mint_badge(self, wallet_address, badge_type):
        """Mint a badge NFT; returns tx hash"""
        uri = f"{self.badge_metadata_base_url}{badge_type}.json"
        tx_hash = self._safe_mint(wallet_address, uri)
        logger.info(f"Badge {badge_type} minted for {wallet_address}: {tx_hash}")
        return tx_hash

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _safe_mint(self, to_wallet, uri):
        self._require_signer('mint')
        if not self.nft_contract:
            raise ExternalServiceFailure('No NFT contract configured')
        recipient = self._checksum(to_wallet)

        try:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(self.nft_contract),
                abi=NFT_CONTRACT_ABI,
            )
            params = {
                'from': self.account.address,
                'nonce': self.w3.eth.get_transaction_count(self.account.address),
                'gasPrice': self.w3.eth.gas_price,
            }
            if self.chain_id:
                params['chainId'] = self.chain_id

            tx = contract.functions.safeMint(recipient, uri).build_transaction(params)
            return self._send(tx)

        except ExternalServiceFailure:
            raise
        except Exception as e:
            logger.error(f"NFT mint failed: {e}")
            raise ExternalServiceFailure(f"NFT mint failed: {e}") from e

    def _send(self, tx):
        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.timeout)
        if receipt['status'] != 1:
            raise ExternalServiceFailure(f"Transaction {Web3.to_hex(tx_hash)} reverted")
        return Web3.to_hex(tx_hash)

    def _require_signer(self, operation):
        if not self.enabled:
            logger.info(f"Blockchain (disabled): skipping {operation}")
            raise ExternalServiceFailure('Chain integration disabled')
        if self.account is None:
            raise ExternalServiceFailure('Treasury wallet not configured')

    def _checksum(self, wallet_address):
        wallet_address = (wallet_address or '').strip()
        if not Web3.is_address(wallet_address):
            raise ExternalServiceFailure(f"Invalid wallet address: {wallet_address}")
        return Web3.to_checksum_address(wallet_address)
