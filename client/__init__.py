"""
Client Package
Top-level facade over the blockchain components
"""

from .blockchain_client import BlockchainClient

__all__ = ['BlockchainClient']
