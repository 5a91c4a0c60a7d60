"""
Utilities Package
Fee estimation and client configuration
"""

from .gas_calculator import FeeEstimator
from .config import ClientConfig, DEFAULT_TESTNET_FEE_ORACLE, load_abi

__all__ = [
    'FeeEstimator',
    'ClientConfig',
    'DEFAULT_TESTNET_FEE_ORACLE',
    'load_abi'
]
