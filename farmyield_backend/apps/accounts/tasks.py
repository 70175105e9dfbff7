"""
Accounts App Celery Tasks

- Minting badge NFTs after a badge is recorded
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='accounts.mint_badge')
def mint_badge(badge_id: int) -> dict:
    """
    Mint the NFT for a recorded badge.

    The badge already exists locally; a failed mint only leaves its
    mint_reference empty.

    Returns:
        {
            'status': 'success' | 'failed' | 'skipped',
            'mint_reference': str (on success)
        }
    """
    from apps.accounts.services import ReputationTracker
    from integrations.registry import get_chain_backend

    with get_chain_backend() as chain:
        return ReputationTracker.mint_badge(badge_id, minter=chain)
