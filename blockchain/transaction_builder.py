"""
Transaction Builder
Constructs EIP-1559 payloads for contract method calls
"""

from typing import TYPE_CHECKING, Any
from web3 import Web3
from web3.exceptions import Web3ValidationError
from loguru import logger

from .exceptions import BlockchainClientError, TransactionError
from .models import TransactionPayload

if TYPE_CHECKING:
    from utils.gas_calculator import FeeEstimator


class TransactionBuilder:
    """
    Builds unsigned contract-call transactions
    """

    def __init__(self, w3: Web3, fee_estimator: "FeeEstimator"):
        """
        Initialize Transaction Builder

        Args:
            w3: Web3 instance
            fee_estimator: Fee estimator for EIP-1559 parameters
        """
        self.w3 = w3
        self.fee_estimator = fee_estimator

    async def build_contract_tx(self, contract_call: Any, from_address: str) -> TransactionPayload:
        """
        Build a transaction for a bound contract function

        Args:
            contract_call: Bound web3 contract function, e.g. contract.functions.addRecord(k, v)
            from_address: Address that will sign the transaction

        Returns:
            Unsigned payload with gas limit and fees filled in
        """
        try:
            gas_limit = contract_call.estimate_gas({'from': from_address})
            fees = await self.fee_estimator.estimate_fees()

            tx = contract_call.build_transaction({
                'from': from_address,
                'gas': gas_limit,
                **fees.as_tx_params()
            })

        except (Web3ValidationError, BlockchainClientError):
            raise
        except Exception as e:
            logger.error(f"Error building contract transaction: {e}")
            raise TransactionError(f"Failed to build contract transaction: {e}") from e

        return TransactionPayload(
            from_address=from_address,
            to=tx['to'],
            value=tx.get('value', 0),
            data=tx['data'],
            gas_limit=gas_limit,
            max_fee_per_gas=fees.max_fee_per_gas,
            max_priority_fee_per_gas=fees.max_priority_fee_per_gas,
            chain_id=tx.get('chainId')
        )
