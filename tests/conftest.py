"""
Shared fixtures
Well-known development keys and a mocked Web3 transport
"""

from unittest.mock import Mock

import pytest
from eth_account import Account

from blockchain.account_manager import AccountManager
from utils.gas_calculator import FeeEstimator

# Hardhat / Anvil default development accounts
KEY_A = '0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80'
KEY_B = '0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d'
KEY_C = '0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a'

ADDRESS_A = Account.from_key(KEY_A).address
ADDRESS_B = Account.from_key(KEY_B).address
ADDRESS_C = Account.from_key(KEY_C).address

CONTRACT_ADDRESS = '0x5FbDB2315678afecb367f032d93F642f64180aa3'

TX_HASH = '0x' + 'ab' * 32


@pytest.fixture
def w3():
    """Mock Web3 instance answering like a local dev node"""
    w3 = Mock()
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.get_balance.return_value = 10 ** 18
    w3.eth.chain_id = 31337
    w3.eth.gas_price = 1_000_000_000
    w3.eth.max_priority_fee = 2_000_000_000
    w3.eth.send_raw_transaction.return_value = bytes.fromhex('ab' * 32)
    return w3


@pytest.fixture
def account_manager(w3):
    return AccountManager(w3, [KEY_A, KEY_B])


@pytest.fixture
def fee_estimator(w3):
    return FeeEstimator(w3)
