# apps/accounts/services/__init__.py

from .auth_service import WalletAuthService
from .reputation_tracker import ReputationTracker

__all__ = ['WalletAuthService', 'ReputationTracker']
