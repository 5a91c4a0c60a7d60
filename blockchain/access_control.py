"""
Access Control
Owner, admin and sender role queries and mutations on the ledger contract
"""

from typing import Any, Awaitable, Callable
from web3 import Web3
from loguru import logger

from .account_manager import AccountManager
from .exceptions import AuthorizationError, TransportError, ValidationError
from .ledger import Signer
from .transaction_builder import TransactionBuilder


class AccessControl:
    """
    Role management for the ledger contract

    Owners manage admins, ownership and the contract code address. Admins
    manage senders. The signing key is checked for its role with a live
    contract read before any transaction is built.
    """

    def __init__(
        self,
        w3: Web3,
        contract: Any,
        account_manager: AccountManager,
        tx_builder: TransactionBuilder,
        signer: Signer
    ):
        """
        Initialize Access Control

        Args:
            w3: Web3 instance
            contract: web3 contract instance exposing the role functions
            account_manager: Derives addresses from private keys
            tx_builder: Builds contract-call payloads
            signer: Signs and broadcasts payloads
        """
        self.w3 = w3
        self.contract = contract
        self.account_manager = account_manager
        self.tx_builder = tx_builder
        self.signer = signer

    async def is_owner(self, address: str) -> bool:
        """Check whether an address is the contract owner"""
        return await self._has_role('isOwner', address)

    async def is_admin(self, address: str) -> bool:
        """Check whether an address holds the admin role"""
        return await self._has_role('isAdmin', address)

    async def is_sender(self, address: str) -> bool:
        """Check whether an address holds the sender role"""
        return await self._has_role('isSender', address)

    async def assign_admin(self, address: str, owner_private_key: str) -> str:
        """
        Grant the admin role

        Args:
            address: Address to make admin
            owner_private_key: Owner key signing the transaction

        Returns:
            Transaction hash
        """
        return await self._send_as(self.is_owner, 'owner', owner_private_key, 'setAdmin', address)

    async def remove_admin(self, address: str, owner_private_key: str) -> str:
        """Revoke the admin role; signed by the owner"""
        return await self._send_as(self.is_owner, 'owner', owner_private_key, 'revokeAdmin', address)

    async def assign_sender(self, address: str, admin_private_key: str) -> str:
        """
        Grant the sender role

        Args:
            address: Address allowed to push records
            admin_private_key: Admin key signing the transaction

        Returns:
            Transaction hash
        """
        return await self._send_as(self.is_admin, 'admin', admin_private_key, 'setSender', address)

    async def remove_sender(self, address: str, admin_private_key: str) -> str:
        """Revoke the sender role; signed by an admin"""
        return await self._send_as(self.is_admin, 'admin', admin_private_key, 'revokeSender', address)

    async def transfer_ownership(self, address: str, owner_private_key: str) -> str:
        """Transfer contract ownership; signed by the current owner"""
        return await self._send_as(
            self.is_owner, 'owner', owner_private_key, 'transferOwnership', address
        )

    async def update_contract_address(self, contract_address: str, owner_private_key: str) -> str:
        """
        Point the contract at new logic code

        Args:
            contract_address: Address of the new contract code
            owner_private_key: Owner key signing the transaction

        Returns:
            Transaction hash
        """
        return await self._send_as(
            self.is_owner, 'owner', owner_private_key, 'updateCode', contract_address
        )

    async def _has_role(self, fn_name: str, address: str) -> bool:
        try:
            return bool(getattr(self.contract.functions, fn_name)(address).call())
        except Exception as e:
            logger.error(f"Error calling {fn_name} for {address}: {e}")
            raise TransportError(f"Failed to check role: {e}") from e

    async def _send_as(
        self,
        role_check: Callable[[str], Awaitable[bool]],
        role: str,
        private_key: str,
        fn_name: str,
        address: str
    ) -> str:
        if not Web3.is_address(address):
            raise ValidationError(f"Invalid address: {address}")

        signer_address = self.account_manager.address_of(private_key)

        if not await role_check(signer_address):
            logger.warning(f"{fn_name} refused: {signer_address} is not {role}")
            raise AuthorizationError(f"Provided private key is not of {role}")

        call = getattr(self.contract.functions, fn_name)(Web3.to_checksum_address(address))
        payload = await self.tx_builder.build_contract_tx(call, signer_address)
        signed = await self.signer.sign_transaction(payload, private_key)
        tx_hash = await self.signer.send_signed_transaction(signed)

        logger.success(f"{fn_name}({address}) sent: {tx_hash}")
        return tx_hash
