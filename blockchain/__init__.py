"""
Blockchain Interaction Package
Handles accounts and nonces, transaction signing, the record contract and access control
"""

from .account_manager import AccountManager
from .ledger import Ledger, Signer
from .transaction_builder import TransactionBuilder
from .access_control import AccessControl
from .contract_manager import ContractManager, DEFAULT_RECORD_ABI
from .event_fetcher import EventFetcher
from .exceptions import (
    BlockchainClientError,
    ConfigurationError,
    NotFoundError,
    AuthorizationError,
    ValidationError,
    TransportError,
    TransactionError,
)

__all__ = [
    'AccountManager',
    'Ledger',
    'Signer',
    'TransactionBuilder',
    'AccessControl',
    'ContractManager',
    'DEFAULT_RECORD_ABI',
    'EventFetcher',
    'BlockchainClientError',
    'ConfigurationError',
    'NotFoundError',
    'AuthorizationError',
    'ValidationError',
    'TransportError',
    'TransactionError',
]
