"""
Blockchain Client
Entry point wiring accounts, ledger, record contract and access control together
"""

from typing import Dict, List, Optional
from web3 import Web3
from loguru import logger

from blockchain.access_control import AccessControl
from blockchain.account_manager import AccountManager
from blockchain.contract_manager import DEFAULT_RECORD_ABI, ContractManager
from blockchain.event_fetcher import EventFetcher
from blockchain.exceptions import ConfigurationError
from blockchain.ledger import Ledger
from blockchain.transaction_builder import TransactionBuilder

from utils.config import ClientConfig
from utils.gas_calculator import FeeEstimator


class BlockchainClient:
    """
    Client for the access-controlled record ledger contract

    Exposes the sub-facades as attributes:
    account, ledger, contract, access_control and events. All of them share
    one AccountManager, so nonces reserved through any facade are seen by
    the others.
    """

    def __init__(
        self,
        provider_url: str,
        private_keys: List[str],
        contract_address: str,
        abi: Optional[List[Dict]] = None,
        fee_oracle_url: Optional[str] = None,
        request_timeout: float = 30,
        w3: Optional[Web3] = None
    ):
        """
        Initialize Blockchain Client

        Args:
            provider_url: HTTP RPC endpoint of the node
            private_keys: Hex private keys; writes rotate through them
            contract_address: Record ledger contract address
            abi: Contract ABI (minimal record store ABI when omitted)
            fee_oracle_url: JSON-RPC endpoint for eth_maxPriorityFeePerGas
            request_timeout: RPC and oracle timeout in seconds
            w3: Preconfigured Web3 instance, used instead of provider_url
        """
        logger.info("Initializing Blockchain Client...")

        if not Web3.is_address(contract_address):
            raise ConfigurationError(f"Invalid contract address: {contract_address}")

        self.abi = abi if abi else DEFAULT_RECORD_ABI
        self.contract_address = Web3.to_checksum_address(contract_address)

        self.w3 = w3 or Web3(Web3.HTTPProvider(
            provider_url,
            request_kwargs={'timeout': request_timeout}
        ))

        self.contract_instance = self.w3.eth.contract(
            address=self.contract_address,
            abi=self.abi
        )

        # Core components
        self.fee_estimator = FeeEstimator(self.w3, fee_oracle_url, request_timeout)
        self.account = AccountManager(self.w3, private_keys)
        self.ledger = Ledger(self.w3, self.account, self.fee_estimator)
        self.tx_builder = TransactionBuilder(self.w3, self.fee_estimator)

        # Contract facades sign through the ledger
        self.access_control = AccessControl(
            self.w3,
            self.contract_instance,
            self.account,
            self.tx_builder,
            self.ledger
        )
        self.contract = ContractManager(
            self.w3,
            self.contract_instance,
            self.abi,
            self.account,
            self.access_control,
            self.tx_builder,
            self.ledger
        )
        self.events = EventFetcher(self.contract_instance, self.abi)

        logger.success(f"Blockchain Client initialized for contract {self.contract_address}")

    @classmethod
    def from_config(cls, config: ClientConfig, w3: Optional[Web3] = None) -> 'BlockchainClient':
        """Build a client from a ClientConfig"""
        return cls(
            provider_url=config.provider_url,
            private_keys=config.private_keys,
            contract_address=config.contract_address,
            abi=config.abi,
            fee_oracle_url=config.fee_oracle_url,
            request_timeout=config.request_timeout,
            w3=w3
        )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'BlockchainClient':
        """Build a client from environment variables (see ClientConfig.from_env)"""
        return cls.from_config(ClientConfig.from_env(env_file))

    def is_connected(self) -> bool:
        """Check whether the RPC node is reachable"""
        try:
            return self.w3.is_connected()
        except Exception:
            return False
