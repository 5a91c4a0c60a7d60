"""
Client Configuration
Loads connection settings, signing keys and the contract ABI from the environment
"""

import os
import json
from dataclasses import dataclass
from typing import Dict, List, Optional
from loguru import logger
from dotenv import load_dotenv

from blockchain.exceptions import ConfigurationError

# Public Sepolia endpoint; only used when a test setup opts into it
DEFAULT_TESTNET_FEE_ORACLE = "https://rpc.sepolia.org"


@dataclass
class ClientConfig:
    """Settings needed to construct a BlockchainClient"""
    provider_url: str
    private_keys: List[str]
    contract_address: str
    abi: Optional[List[Dict]] = None
    fee_oracle_url: Optional[str] = None
    request_timeout: float = 30

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, use_testnet_fee_oracle: bool = False) -> 'ClientConfig':
        """
        Build configuration from environment variables

        Args:
            env_file: Optional .env file to load first
            use_testnet_fee_oracle: Fall back to the public Sepolia oracle when
                FEE_ORACLE_URL is unset

        Returns:
            ClientConfig
        """
        load_dotenv(env_file)

        provider_url = os.getenv('PROVIDER_URL')
        private_keys = os.getenv('DEFAULT_PRIVATE_KEY', '').split()
        contract_address = os.getenv('CONTRACT_ADDRESS')

        missing = []
        if not provider_url:
            missing.append('PROVIDER_URL')
        if not private_keys:
            missing.append('DEFAULT_PRIVATE_KEY')
        if not contract_address:
            missing.append('CONTRACT_ADDRESS')

        if missing:
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

        abi_path = os.getenv('CONTRACT_ABI_PATH')
        abi = load_abi(abi_path) if abi_path else None

        fee_oracle_url = os.getenv('FEE_ORACLE_URL')
        if not fee_oracle_url and use_testnet_fee_oracle:
            fee_oracle_url = DEFAULT_TESTNET_FEE_ORACLE

        try:
            request_timeout = float(os.getenv('REQUEST_TIMEOUT', '30'))
        except ValueError as e:
            raise ConfigurationError(f"Invalid REQUEST_TIMEOUT: {e}") from e

        logger.info(f"Loaded configuration for {len(private_keys)} keys at {provider_url}")

        return cls(
            provider_url=provider_url,
            private_keys=private_keys,
            contract_address=contract_address,
            abi=abi,
            fee_oracle_url=fee_oracle_url,
            request_timeout=request_timeout
        )


def load_abi(abi_path: str) -> List[Dict]:
    """
    Load a contract ABI from a JSON file

    Accepts a bare ABI list or a compiled artifact with an 'abi' key.
    """
    if not os.path.exists(abi_path):
        raise ConfigurationError(f"ABI file not found: {abi_path}")

    try:
        with open(abi_path, 'r') as f:
            contract_json = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read ABI from {abi_path}: {e}") from e

    if isinstance(contract_json, dict):
        contract_json = contract_json.get('abi')

    if not isinstance(contract_json, list):
        raise ConfigurationError(f"No ABI found in {abi_path}")

    return contract_json
