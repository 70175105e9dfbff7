# integrations/registry.py
# ---------------------------------------------------------------------------
# Composition root for external collaborators.
#
# Callers get a freshly constructed client per unit of work and close it
# when done:
#
#     with get_chain_backend() as chain:
#         chain.transfer(wallet, amount)
#
# The class is chosen by settings.CHAIN_BACKEND (dotted path) and built via
# its ``from_settings`` classmethod, so tests and alternative chains swap
# the backend without touching callers.
# ---------------------------------------------------------------------------

from django.conf import settings
from django.utils.module_loading import import_string

DEFAULT_CHAIN_BACKEND = 'integrations.celo.blockchain.CeloBlockchain'


def get_chain_backend(path=None):
    backend_cls = import_string(path or getattr(settings, 'CHAIN_BACKEND', DEFAULT_CHAIN_BACKEND))
    if hasattr(backend_cls, 'from_settings'):
        return backend_cls.from_settings()
    return backend_cls()
