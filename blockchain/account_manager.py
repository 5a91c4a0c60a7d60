"""
Account Manager
Derives managed accounts from private keys, rotates signing keys and tracks nonces
"""

import asyncio
from typing import Dict, List
from web3 import Web3
from eth_account import Account
from loguru import logger

from .exceptions import ConfigurationError, TransportError, ValidationError
from .models import ManagedAccount


class AccountManager:
    """
    Holds the accounts behind the configured private keys

    Nonces are reserved locally as soon as a transaction is signed, so a
    second transaction from the same address does not reuse a nonce the
    network has not caught up with yet.
    """

    def __init__(self, w3: Web3, private_keys: List[str]):
        """
        Initialize Account Manager

        Args:
            w3: Web3 instance
            private_keys: Hex private keys, in signing rotation order
        """
        if not private_keys:
            raise ConfigurationError("At least one private key must be configured")

        self.w3 = w3
        self.private_keys = list(private_keys)

        try:
            self.managed_accounts = [
                ManagedAccount(address=Account.from_key(key).address, index=index)
                for index, key in enumerate(self.private_keys)
            ]
        except Exception as e:
            raise ConfigurationError(f"Invalid private key: {e}") from e

        self.accounts = [account.address for account in self.managed_accounts]

        # Local nonce ledger, populated lazily on first reconciliation
        self.nonces: Dict[str, int] = {}
        self._nonce_locks: Dict[str, asyncio.Lock] = {}

        # Round robin cursor into private_keys
        self.current_key_index = 0

        logger.info(f"Account Manager initialized with {len(self.accounts)} accounts")

    def get_accounts(self) -> List[str]:
        """Get managed addresses in the order their keys were supplied"""
        return list(self.accounts)

    def next_private_key(self) -> str:
        """
        Get the next signing key in round robin order

        Returns:
            Private key at the cursor; the cursor then moves on by one
        """
        private_key = self.private_keys[self.current_key_index]
        self.current_key_index = (self.current_key_index + 1) % len(self.private_keys)
        return private_key

    def address_of(self, private_key: str) -> str:
        """Derive the checksummed address for a private key"""
        try:
            return Account.from_key(private_key).address
        except Exception as e:
            raise ValidationError(f"Invalid private key: {e}") from e

    def nonce_lock(self, address: str) -> asyncio.Lock:
        """
        Get the lock serializing nonce reservation for an address

        Args:
            address: Account address

        Returns:
            asyncio.Lock shared by every caller signing for this address
        """
        key = self._key(address)
        lock = self._nonce_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._nonce_locks[key] = lock
        return lock

    async def get_nonce(self, address: str) -> int:
        """
        Reconcile the local nonce with the network transaction count

        Args:
            address: Account address

        Returns:
            The larger of the network count and the local value; also stored
        """
        key = self._key(address)

        try:
            network_nonce = self.w3.eth.get_transaction_count(key)
        except Exception as e:
            logger.error(f"Error fetching nonce for {key}: {e}")
            raise TransportError(f"Failed to fetch nonce: {e}") from e

        local_nonce = self.nonces.get(key, 0)
        nonce = max(network_nonce, local_nonce)
        self.nonces[key] = nonce

        logger.debug(f"Nonce for {key}: network={network_nonce} local={local_nonce} -> {nonce}")
        return nonce

    def increment_nonce(self, address: str):
        """Reserve the next nonce slot for an address"""
        key = self._key(address)
        self.nonces[key] = self.nonces.get(key, 0) + 1
        logger.debug(f"Nonce advanced for {key}: {self.nonces[key]}")

    def reset_nonce(self, address: str):
        """
        Drop the local nonce reservation for an address

        The next reconciliation falls back to the network count.
        """
        key = self._key(address)
        self.nonces[key] = 0
        logger.warning(f"Nonce reset for {key}")

    def get_local_nonce(self, address: str) -> int:
        """Get the locally stored nonce without touching the network"""
        return self.nonces.get(self._key(address), 0)

    async def get_balance(self, address: str) -> int:
        """
        Get native balance of an account

        Args:
            address: Account address

        Returns:
            Balance in wei
        """
        try:
            return self.w3.eth.get_balance(self._key(address))
        except Exception as e:
            logger.error(f"Error fetching balance for {address}: {e}")
            raise TransportError(f"Failed to fetch balance: {e}") from e

    @staticmethod
    def _key(address: str) -> str:
        # Ledger entries are keyed by checksummed address; anything else is left for the node to reject
        if Web3.is_address(address):
            return Web3.to_checksum_address(address)
        return address
