"""
Blockchain Models
Value types passed between the account, ledger and contract facades
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Union

from web3 import Web3

Wei = Union[int, str]


def to_wei_int(value: Optional[Wei]) -> Optional[int]:
    """
    Normalize a wei amount given as int, decimal string or 0x hex string

    Args:
        value: Amount in wei

    Returns:
        Integer amount, or None when value is None
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith('0x'):
        return int(text, 16)
    return int(text)


def to_hex_str(value: Any) -> str:
    """Render bytes-like hashes as 0x hex, passing strings through"""
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


@dataclass(frozen=True)
class ManagedAccount:
    """An address derived from one of the configured private keys"""
    address: str
    index: int


@dataclass(frozen=True)
class TransactionPayload:
    """
    Unsigned transaction assembled per call and discarded after submission
    """
    from_address: str
    to: str
    value: Optional[Wei] = None
    data: Optional[str] = None
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    gas_price: Optional[Wei] = None
    max_fee_per_gas: Optional[Wei] = None
    max_priority_fee_per_gas: Optional[Wei] = None
    chain_id: Optional[int] = None

    def with_nonce(self, nonce: int) -> 'TransactionPayload':
        return replace(self, nonce=nonce)

    def with_chain_id(self, chain_id: int) -> 'TransactionPayload':
        return replace(self, chain_id=chain_id)

    def to_dict(self) -> Dict[str, Any]:
        """
        Render the payload as a web3 transaction dict

        Returns:
            Dict accepted by eth_account's sign_transaction
        """
        tx = {
            'from': Web3.to_checksum_address(self.from_address),
            'to': Web3.to_checksum_address(self.to),
            'value': to_wei_int(self.value) or 0,
            'data': self.data or '0x',
        }

        optional = {
            'nonce': self.nonce,
            'gas': self.gas_limit,
            'gasPrice': to_wei_int(self.gas_price),
            'maxFeePerGas': to_wei_int(self.max_fee_per_gas),
            'maxPriorityFeePerGas': to_wei_int(self.max_priority_fee_per_gas),
            'chainId': self.chain_id,
        }
        tx.update({key: value for key, value in optional.items() if value is not None})

        return tx


@dataclass(frozen=True)
class SignedTransaction:
    """Signed transaction ready for broadcast"""
    raw_transaction: str
    transaction_hash: str
    sender: str
    nonce: int


@dataclass(frozen=True)
class FeeEstimate:
    """EIP-1559 fee parameters in wei"""
    gas_price: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int

    def as_tx_params(self) -> Dict[str, int]:
        return {
            'maxFeePerGas': self.max_fee_per_gas,
            'maxPriorityFeePerGas': self.max_priority_fee_per_gas,
        }


@dataclass(frozen=True)
class EventLog:
    """A decoded contract event"""
    event: str
    address: str
    block_number: int
    transaction_hash: str
    transaction_index: int
    block_hash: str
    log_index: int
    args: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None
