"""
Gas Calculator
EIP-1559 fee estimation from the node gas price and a priority fee oracle
"""

from typing import Optional
import aiohttp
from web3 import Web3
from loguru import logger

from blockchain.exceptions import TransportError
from blockchain.models import FeeEstimate, to_wei_int


class FeeEstimator:
    """
    Estimates transaction fees

    maxFeePerGas is the current gas price plus the max priority fee. The
    priority fee comes from an external JSON-RPC oracle when one is
    configured, otherwise from the connected node.
    """

    def __init__(
        self,
        w3: Web3,
        fee_oracle_url: Optional[str] = None,
        request_timeout: float = 30
    ):
        """
        Initialize Fee Estimator

        Args:
            w3: Web3 instance
            fee_oracle_url: JSON-RPC endpoint answering eth_maxPriorityFeePerGas
            request_timeout: Oracle request timeout in seconds
        """
        self.w3 = w3
        self.fee_oracle_url = fee_oracle_url
        self.request_timeout = request_timeout

        source = fee_oracle_url if fee_oracle_url else "connected node"
        logger.info(f"Fee Estimator initialized (priority fee source: {source})")

    async def get_gas_price(self) -> int:
        """
        Get current network gas price

        Returns:
            Gas price in wei
        """
        try:
            return int(self.w3.eth.gas_price)
        except Exception as e:
            logger.error(f"Error getting gas price: {e}")
            raise TransportError(f"Failed to get average gas fee: {e}") from e

    async def get_max_priority_fee(self) -> int:
        """
        Get max priority fee per gas

        Returns:
            Priority fee in wei
        """
        try:
            if self.fee_oracle_url:
                return await self._fetch_oracle_priority_fee()
            return int(self.w3.eth.max_priority_fee)
        except TransportError:
            raise
        except Exception as e:
            logger.error(f"Error getting max priority fee: {e}")
            raise TransportError(f"Failed to get max priority fee: {e}") from e

    async def estimate_fees(self) -> FeeEstimate:
        """
        Estimate EIP-1559 fee parameters

        Returns:
            FeeEstimate with gas price, priority fee and max fee in wei
        """
        try:
            gas_price = await self.get_gas_price()
            priority_fee = await self.get_max_priority_fee()
        except TransportError as e:
            raise TransportError(f"Failed to estimate fees: {e}") from e

        estimate = FeeEstimate(
            gas_price=gas_price,
            max_priority_fee_per_gas=priority_fee,
            max_fee_per_gas=gas_price + priority_fee
        )

        logger.debug(
            f"Fee estimate: gasPrice={estimate.gas_price} "
            f"maxPriorityFeePerGas={estimate.max_priority_fee_per_gas} "
            f"maxFeePerGas={estimate.max_fee_per_gas}"
        )
        return estimate

    async def _fetch_oracle_priority_fee(self) -> int:
        """Call eth_maxPriorityFeePerGas on the configured oracle endpoint"""
        request = {
            'jsonrpc': '2.0',
            'id': 1,
            'method': 'eth_maxPriorityFeePerGas',
            'params': []
        }
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.fee_oracle_url, json=request) as response:
                    response.raise_for_status()
                    body = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"Fee oracle request failed: {e}")
            raise TransportError(f"Failed to get max priority fee: {e}") from e

        if 'error' in body:
            message = body['error'].get('message', body['error'])
            raise TransportError(f"Failed to get max priority fee: {message}")

        return to_wei_int(body['result'])
