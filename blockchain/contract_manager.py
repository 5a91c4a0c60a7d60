"""
Contract Manager
Record store interactions on the access-controlled ledger contract
"""

import re
from typing import Any, Dict, List, Sequence
from web3 import Web3
from web3.exceptions import MismatchedABI, Web3ValidationError
from loguru import logger

from .access_control import AccessControl
from .account_manager import AccountManager
from .exceptions import AuthorizationError, TransportError, ValidationError
from .ledger import Signer
from .transaction_builder import TransactionBuilder

# getRecord returns this for keys that were never written
EMPTY_RECORD = '0x' + '00' * 32

INVALID_KEY_MESSAGE = "Invalid key format, provide key as a 0x-prefixed 32-byte hex digest"

INVALID_RECORD_MESSAGE = (
    "Invalid record format, provide key and value as 0x-prefixed 32-byte hex digests"
)

_DIGEST_PATTERN = re.compile(r'^0x[0-9a-fA-F]{64}$')


class ContractManager:
    """
    Maps record store operations onto contract calls

    Writes are signed with the next key in rotation and require the sender
    role; removals require the admin role. Roles are checked live on every
    call.
    """

    def __init__(
        self,
        w3: Web3,
        contract: Any,
        abi: List[Dict],
        account_manager: AccountManager,
        access_control: AccessControl,
        tx_builder: TransactionBuilder,
        signer: Signer
    ):
        """
        Initialize Contract Manager

        Args:
            w3: Web3 instance
            contract: web3 contract instance for the record store
            abi: ABI the contract was created with
            account_manager: Supplies signing keys in round robin order
            access_control: Live role checks
            tx_builder: Builds contract-call payloads
            signer: Signs and broadcasts payloads
        """
        self.w3 = w3
        self.contract = contract
        self.abi = abi
        self.account_manager = account_manager
        self.access_control = access_control
        self.tx_builder = tx_builder
        self.signer = signer

        logger.info(f"Contract Manager initialized for {contract.address}")

    async def push_record(self, key: str, value: str) -> str:
        """
        Write a record

        Args:
            key: Record key (32-byte hex digest)
            value: Record value

        Returns:
            Transaction hash
        """
        self._validate_keys([key])

        private_key = self.account_manager.next_private_key()
        address = self.account_manager.address_of(private_key)

        if not await self.access_control.is_sender(address):
            logger.warning(f"{address} is not a sender, record not pushed")
            raise AuthorizationError(f"Address {address} does not have the sender role")

        call = self._bind('addRecord', key, value, message=INVALID_RECORD_MESSAGE)
        return await self._transact(call, address, private_key, message=INVALID_RECORD_MESSAGE)

    async def push_bulk_records(self, keys: Sequence[str], values: Sequence[str]) -> str:
        """
        Write several records in one transaction

        Args:
            keys: Record keys
            values: Record values, aligned with keys

        Returns:
            Transaction hash
        """
        if len(keys) != len(values):
            raise ValidationError(
                f"Keys and values must have the same length ({len(keys)} != {len(values)})"
            )
        if not keys:
            raise ValidationError("At least one record is required")
        self._validate_keys(keys)

        private_key = self.account_manager.next_private_key()
        address = self.account_manager.address_of(private_key)

        if not await self.access_control.is_sender(address):
            logger.warning(f"{address} is not a sender, bulk records not pushed")
            raise AuthorizationError(f"Address {address} does not have the sender role")

        call = self._bind(
            'addBulkRecords', list(keys), list(values), message=INVALID_RECORD_MESSAGE
        )
        return await self._transact(call, address, private_key, message=INVALID_RECORD_MESSAGE)

    async def read_record(self, key: str) -> str:
        """
        Read a record

        Args:
            key: Record key

        Returns:
            Stored value, or an empty string if the key was never written
        """
        self._validate_keys([key])

        call = self._bind('getRecord', key)
        try:
            result = call.call()
        except Exception as e:
            logger.error(f"Error reading record {key}: {e}")
            raise TransportError(f"Failed to read record: {e}") from e

        if isinstance(result, (bytes, bytearray)):
            result = Web3.to_hex(result)

        if result == EMPTY_RECORD:
            return ""
        return result

    async def remove_record(self, key: str) -> str:
        """
        Remove a record

        Args:
            key: Record key

        Returns:
            Transaction hash
        """
        self._validate_keys([key])

        private_key = self.account_manager.next_private_key()
        address = self.account_manager.address_of(private_key)

        if not await self.access_control.is_admin(address):
            logger.warning(f"{address} is not an admin, record not removed")
            raise AuthorizationError(f"Address {address} does not have the admin role")

        call = self._bind('removeRecord', key)
        return await self._transact(call, address, private_key)

    async def get_record_count(self) -> str:
        """Get the number of records held by the contract"""
        try:
            result = self.contract.functions.recordCount().call()
        except Exception as e:
            logger.error(f"Error reading record count: {e}")
            raise TransportError(f"Failed to fetch record count: {e}") from e
        return str(result)

    def get_abi(self) -> List[Dict]:
        """Get the ABI the contract was initialized with"""
        return self.abi

    def _bind(self, fn_name: str, *args, message: str = INVALID_KEY_MESSAGE):
        """Bind contract function arguments, remapping ABI encoding errors"""
        try:
            return getattr(self.contract.functions, fn_name)(*args)
        except (Web3ValidationError, MismatchedABI) as e:
            logger.error(f"Invalid arguments for {fn_name}: {e}")
            raise ValidationError(message) from e

    async def _transact(
        self,
        call,
        address: str,
        private_key: str,
        message: str = INVALID_KEY_MESSAGE
    ) -> str:
        try:
            payload = await self.tx_builder.build_contract_tx(call, address)
        except Web3ValidationError as e:
            raise ValidationError(message) from e

        signed = await self.signer.sign_transaction(payload, private_key)
        return await self.signer.send_signed_transaction(signed)

    @staticmethod
    def _validate_keys(keys: Sequence[str]):
        for key in keys:
            if not isinstance(key, str) or not _DIGEST_PATTERN.fullmatch(key):
                raise ValidationError(INVALID_KEY_MESSAGE)


# Minimal record store ABI, used when no compiled artifact is supplied
DEFAULT_RECORD_ABI: List[Dict] = [
    {
        "inputs": [
            {"name": "key", "type": "bytes32"},
            {"name": "value", "type": "bytes32"}
        ],
        "name": "addRecord",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "keys", "type": "bytes32[]"},
            {"name": "values", "type": "bytes32[]"}
        ],
        "name": "addBulkRecords",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "key", "type": "bytes32"}],
        "name": "getRecord",
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "key", "type": "bytes32"}],
        "name": "removeRecord",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "recordCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "isOwner",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "isAdmin",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "isSender",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "setAdmin",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "revokeAdmin",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "setSender",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "revokeSender",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "newOwner", "type": "address"}],
        "name": "transferOwnership",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "newCode", "type": "address"}],
        "name": "updateCode",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "key", "type": "bytes32"},
            {"indexed": False, "name": "value", "type": "bytes32"}
        ],
        "name": "RecordAdded",
        "type": "event"
    },
    {
        "anonymous": False,
        "inputs": [{"indexed": True, "name": "key", "type": "bytes32"}],
        "name": "RecordRemoved",
        "type": "event"
    }
]
