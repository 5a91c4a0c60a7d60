"""
Ledger
Chain queries plus transaction signing and submission with nonce reservation
"""

from typing import TYPE_CHECKING, Any, Optional, Protocol, Union
from web3 import Web3
from web3.exceptions import BlockNotFound, TransactionNotFound, TimeExhausted
from eth_account import Account
from loguru import logger

from .account_manager import AccountManager
from .exceptions import NotFoundError, TransactionError, TransportError
from .models import FeeEstimate, SignedTransaction, TransactionPayload, to_hex_str

if TYPE_CHECKING:
    from utils.gas_calculator import FeeEstimator


class Signer(Protocol):
    """Signing capability the contract facades submit through"""

    async def sign_transaction(
        self,
        payload: TransactionPayload,
        private_key: str
    ) -> SignedTransaction:
        ...

    async def send_signed_transaction(
        self,
        signed: Union[SignedTransaction, str]
    ) -> str:
        ...


class Ledger:
    """
    Transaction lookups, signing and broadcast

    Signing reserves a nonce in the shared AccountManager; a failed sign or
    send releases the reservation for the sender.
    """

    def __init__(
        self,
        w3: Web3,
        account_manager: AccountManager,
        fee_estimator: "FeeEstimator"
    ):
        """
        Initialize Ledger

        Args:
            w3: Web3 instance
            account_manager: Shared account manager holding the nonce ledger
            fee_estimator: Source of gas price and EIP-1559 fees
        """
        self.w3 = w3
        self.account_manager = account_manager
        self.fee_estimator = fee_estimator

        logger.info("Ledger initialized")

    async def fetch_transaction_details(self, transaction_id: str) -> Any:
        """
        Get transaction details for a transaction hash

        Args:
            transaction_id: Transaction hash

        Returns:
            Transaction as returned by the node
        """
        try:
            try:
                transaction = self.w3.eth.get_transaction(transaction_id)
            except TransactionNotFound:
                transaction = None

            if not transaction:
                raise NotFoundError(f"Transaction details for {transaction_id} not found")

            return transaction

        except NotFoundError as e:
            raise NotFoundError(f"Failed to fetch transaction details: {e}") from e
        except Exception as e:
            logger.error(f"Error fetching transaction {transaction_id}: {e}")
            raise TransportError(f"Failed to fetch transaction details: {e}") from e

    async def get_block_by_transaction_hash(self, transaction_hash: str) -> Optional[int]:
        """
        Get the number of the block containing a transaction

        Args:
            transaction_hash: Transaction hash

        Returns:
            Block number, or None while the transaction is pending
        """
        try:
            details = await self.fetch_transaction_details(transaction_hash)
        except NotFoundError as e:
            raise NotFoundError(f"Failed to fetch block number: {e}") from e
        except TransportError as e:
            raise TransportError(f"Failed to fetch block number: {e}") from e

        return details.get('blockNumber')

    async def fetch_transaction_receipt(self, transaction_id: str) -> Any:
        """
        Get the receipt of a mined transaction

        Args:
            transaction_id: Transaction hash

        Returns:
            Receipt as returned by the node
        """
        try:
            try:
                receipt = self.w3.eth.get_transaction_receipt(transaction_id)
            except TransactionNotFound:
                receipt = None

            if not receipt:
                raise NotFoundError(f"Transaction receipt for {transaction_id} not found")

            return receipt

        except NotFoundError as e:
            raise NotFoundError(f"Failed to fetch transaction receipt: {e}") from e
        except Exception as e:
            logger.error(f"Error fetching receipt {transaction_id}: {e}")
            raise TransportError(f"Failed to fetch transaction receipt: {e}") from e

    async def wait_for_receipt(self, transaction_hash: str, timeout: float = 120) -> Any:
        """Block until a transaction is mined and return its receipt"""
        try:
            return self.w3.eth.wait_for_transaction_receipt(transaction_hash, timeout=timeout)
        except TimeExhausted as e:
            raise NotFoundError(f"Failed to fetch transaction receipt: {e}") from e
        except Exception as e:
            raise TransportError(f"Failed to fetch transaction receipt: {e}") from e

    async def get_gas_price(self) -> int:
        """Get current gas price in wei"""
        return await self.fee_estimator.get_gas_price()

    async def estimate_fees(self) -> FeeEstimate:
        """Get EIP-1559 fee parameters for a new transaction"""
        return await self.fee_estimator.estimate_fees()

    async def get_latest_block_number(self) -> int:
        """Get the latest block number"""
        try:
            latest_block = self.w3.eth.get_block('latest')
            return latest_block['number']
        except Exception as e:
            logger.error(f"Error getting latest block: {e}")
            raise TransportError(f"Failed to get latest block number: {e}") from e

    async def get_block_details(self, block_identifier: Union[str, int]) -> Any:
        """
        Get a block by number, hash or tag

        Args:
            block_identifier: Block number, block hash or tag such as 'latest'

        Returns:
            Block as returned by the node
        """
        try:
            try:
                block = self.w3.eth.get_block(block_identifier)
            except BlockNotFound:
                block = None

            if not block:
                raise NotFoundError("Block not found")

            return block

        except NotFoundError as e:
            raise NotFoundError(f"Failed to get block details: {e}") from e
        except Exception as e:
            logger.error(f"Error getting block {block_identifier}: {e}")
            raise TransportError(f"Failed to get block details: {e}") from e

    async def sign_transaction(
        self,
        payload: TransactionPayload,
        private_key: str
    ) -> SignedTransaction:
        """
        Sign a transaction using the next nonce for its sender

        Args:
            payload: Unsigned transaction
            private_key: Key of payload.from_address

        Returns:
            Signed transaction
        """
        sender = payload.from_address

        async with self.account_manager.nonce_lock(sender):
            try:
                nonce = await self.account_manager.get_nonce(sender)
                tx = payload.with_nonce(nonce)
                self.account_manager.increment_nonce(sender)

                if tx.chain_id is None:
                    tx = tx.with_chain_id(self.w3.eth.chain_id)

                signed = Account.sign_transaction(tx.to_dict(), private_key)

            except Exception as e:
                self.account_manager.reset_nonce(sender)
                logger.error(f"Error signing transaction from {sender}: {e}")
                raise TransactionError(f"Failed to create signed transaction: {e}") from e

        logger.debug(f"Signed transaction from {sender} with nonce {nonce}")

        return SignedTransaction(
            raw_transaction=Web3.to_hex(signed.raw_transaction),
            transaction_hash=Web3.to_hex(signed.hash),
            sender=sender,
            nonce=nonce
        )

    async def send_signed_transaction(self, signed: Union[SignedTransaction, str]) -> str:
        """
        Broadcast a signed transaction

        Args:
            signed: SignedTransaction, or raw signed transaction hex

        Returns:
            Transaction hash
        """
        if isinstance(signed, SignedTransaction):
            raw_transaction = signed.raw_transaction
            sender = signed.sender
        else:
            raw_transaction = signed
            sender = None

        try:
            tx_hash = self.w3.eth.send_raw_transaction(raw_transaction)
        except Exception as e:
            sender = sender or self._recover_sender(raw_transaction)
            if sender:
                self.account_manager.reset_nonce(sender)
            logger.error(f"Error sending transaction: {e}")
            raise TransactionError(f"Failed to send signed transaction: {e}") from e

        tx_hash = to_hex_str(tx_hash)
        logger.info(f"Transaction sent: {tx_hash}")
        return tx_hash

    async def submit_transaction(self, payload: TransactionPayload, private_key: str) -> str:
        """Sign and broadcast a transaction, returning its hash"""
        signed = await self.sign_transaction(payload, private_key)
        return await self.send_signed_transaction(signed)

    @staticmethod
    def _recover_sender(raw_transaction: str) -> Optional[str]:
        try:
            return Account.recover_transaction(raw_transaction)
        except Exception:
            return None
