from .blockchain import CeloBlockchain

__all__ = ['CeloBlockchain']
