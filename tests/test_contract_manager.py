"""
Unit Tests for Contract Manager
Record writes, reads and removals against an in-memory record store
"""

from unittest.mock import AsyncMock, Mock

import pytest
from web3 import Web3
from web3.exceptions import Web3ValidationError

from blockchain.contract_manager import (
    DEFAULT_RECORD_ABI,
    EMPTY_RECORD,
    INVALID_KEY_MESSAGE,
    INVALID_RECORD_MESSAGE,
    ContractManager,
)
from blockchain.exceptions import AuthorizationError, TransportError, ValidationError
from blockchain.models import SignedTransaction, TransactionPayload

from .conftest import ADDRESS_A, ADDRESS_B, CONTRACT_ADDRESS, TX_HASH

KEY_1 = '0x' + '11' * 32
KEY_2 = '0x' + '22' * 32
VALUE_1 = '0x' + 'a1' * 32
VALUE_2 = '0x' + 'b2' * 32


class FakeCall:
    """Bound contract function; writes apply once their transaction is sent"""

    def __init__(self, apply=None, result=None):
        self.apply = apply
        self.result = result

    def call(self):
        return self.result


class FakeRecordStore:
    """Record store contract whose functions namespace is the store itself"""

    def __init__(self):
        self.address = CONTRACT_ADDRESS
        self.records = {}
        self.functions = self

    def addRecord(self, key, value):
        return FakeCall(apply=lambda: self.records.__setitem__(key, value))

    def addBulkRecords(self, keys, values):
        return FakeCall(apply=lambda: self.records.update(zip(keys, values)))

    def getRecord(self, key):
        return FakeCall(result=self.records.get(key, EMPTY_RECORD))

    def removeRecord(self, key):
        return FakeCall(apply=lambda: self.records.pop(key, None))

    def recordCount(self):
        return FakeCall(result=len(self.records))


class FakeChain:
    """Builds, signs and sends transactions by applying the bound call"""

    def __init__(self):
        self.pending = {}
        self.sent = []

    async def build_contract_tx(self, call, from_address):
        data = '0x%04x' % len(self.pending)
        self.pending[data] = call
        return TransactionPayload(from_address=from_address, to=CONTRACT_ADDRESS, data=data)

    async def sign_transaction(self, payload, private_key):
        return SignedTransaction(
            raw_transaction=payload.data,
            transaction_hash=TX_HASH,
            sender=payload.from_address,
            nonce=len(self.sent)
        )

    async def send_signed_transaction(self, signed):
        call = self.pending.pop(signed.raw_transaction)
        call.apply()
        self.sent.append(signed)
        return signed.transaction_hash


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def access_control():
    access_control = Mock()
    access_control.is_sender = AsyncMock(return_value=True)
    access_control.is_admin = AsyncMock(return_value=True)
    return access_control


@pytest.fixture
def manager(w3, store, account_manager, access_control, chain):
    return ContractManager(
        w3, store, DEFAULT_RECORD_ABI, account_manager, access_control, chain, chain
    )


class TestPushRecord:
    """Single record writes"""

    @pytest.mark.asyncio
    async def test_push_then_read(self, manager, chain):
        tx_hash = await manager.push_record(KEY_1, VALUE_1)

        assert tx_hash == TX_HASH
        assert await manager.read_record(KEY_1) == VALUE_1
        assert len(chain.sent) == 1

    @pytest.mark.asyncio
    async def test_writes_rotate_signing_keys(self, manager, chain, access_control):
        await manager.push_record(KEY_1, VALUE_1)
        await manager.push_record(KEY_2, VALUE_2)
        await manager.push_record(KEY_1, VALUE_2)

        assert [signed.sender for signed in chain.sent] == [ADDRESS_A, ADDRESS_B, ADDRESS_A]
        checked = [call.args[0] for call in access_control.is_sender.await_args_list]
        assert checked == [ADDRESS_A, ADDRESS_B, ADDRESS_A]

    @pytest.mark.asyncio
    async def test_unauthorized_sender(self, manager, chain, store, access_control, account_manager):
        account_manager.nonces[ADDRESS_B] = 4
        access_control.is_sender.return_value = False

        with pytest.raises(AuthorizationError, match="sender"):
            await manager.push_record(KEY_1, VALUE_1)

        assert chain.sent == []
        assert store.records == {}
        assert account_manager.get_local_nonce(ADDRESS_B) == 4

    @pytest.mark.asyncio
    async def test_malformed_key_rejected_before_contract(self, manager, access_control):
        with pytest.raises(ValidationError) as exc_info:
            await manager.push_record('record-1', VALUE_1)

        assert str(exc_info.value) == INVALID_KEY_MESSAGE
        access_control.is_sender.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_abi_encoding_error_is_validation_error(
        self, w3, account_manager, access_control, chain
    ):
        contract = Mock()
        contract.functions.addRecord.side_effect = Web3ValidationError("Could not identify the intended function")
        manager = ContractManager(
            w3, contract, DEFAULT_RECORD_ABI, account_manager, access_control, chain, chain
        )

        with pytest.raises(ValidationError) as exc_info:
            await manager.push_record(KEY_1, 'not-a-digest')

        assert str(exc_info.value) == INVALID_RECORD_MESSAGE

    @pytest.mark.asyncio
    async def test_unencodable_value_reported_as_record_error(
        self, w3, account_manager, access_control, chain
    ):
        contract = Web3(Web3.HTTPProvider('http://127.0.0.1:8545')).eth.contract(
            address=CONTRACT_ADDRESS, abi=DEFAULT_RECORD_ABI
        )
        manager = ContractManager(
            w3, contract, DEFAULT_RECORD_ABI, account_manager, access_control, chain, chain
        )

        with pytest.raises(ValidationError) as exc_info:
            await manager.push_record(KEY_1, 'hello')

        assert str(exc_info.value) == INVALID_RECORD_MESSAGE
        assert chain.sent == []


class TestBulkRecords:
    """Multi record writes"""

    @pytest.mark.asyncio
    async def test_bulk_push(self, manager, chain):
        await manager.push_bulk_records([KEY_1, KEY_2], [VALUE_1, VALUE_2])

        assert await manager.read_record(KEY_1) == VALUE_1
        assert await manager.read_record(KEY_2) == VALUE_2
        assert await manager.get_record_count() == "2"
        assert len(chain.sent) == 1

    @pytest.mark.asyncio
    async def test_length_mismatch(self, manager, chain):
        with pytest.raises(ValidationError, match="same length"):
            await manager.push_bulk_records([KEY_1, KEY_2], [VALUE_1])

        assert chain.sent == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, manager):
        with pytest.raises(ValidationError):
            await manager.push_bulk_records([], [])

    @pytest.mark.asyncio
    async def test_one_bad_key_rejects_batch(self, manager, store):
        with pytest.raises(ValidationError):
            await manager.push_bulk_records([KEY_1, '0x1234'], [VALUE_1, VALUE_2])

        assert store.records == {}


class TestReadAndRemove:
    """Reads, removals and contract metadata"""

    @pytest.mark.asyncio
    async def test_unwritten_key_reads_empty(self, manager):
        assert await manager.read_record(KEY_2) == ""

    @pytest.mark.asyncio
    async def test_bytes_result_rendered_as_hex(self, w3, account_manager, access_control, chain):
        contract = Mock()
        contract.functions.getRecord.return_value.call.return_value = bytes.fromhex('a1' * 32)
        manager = ContractManager(
            w3, contract, DEFAULT_RECORD_ABI, account_manager, access_control, chain, chain
        )

        assert await manager.read_record(KEY_1) == VALUE_1

    @pytest.mark.asyncio
    async def test_zero_bytes_read_empty(self, w3, account_manager, access_control, chain):
        contract = Mock()
        contract.functions.getRecord.return_value.call.return_value = bytes(32)
        manager = ContractManager(
            w3, contract, DEFAULT_RECORD_ABI, account_manager, access_control, chain, chain
        )

        assert await manager.read_record(KEY_1) == ""

    @pytest.mark.asyncio
    async def test_read_failure(self, w3, account_manager, access_control, chain):
        contract = Mock()
        contract.functions.getRecord.return_value.call.side_effect = ConnectionError("node down")
        manager = ContractManager(
            w3, contract, DEFAULT_RECORD_ABI, account_manager, access_control, chain, chain
        )

        with pytest.raises(TransportError, match="Failed to read record"):
            await manager.read_record(KEY_1)

    @pytest.mark.asyncio
    async def test_remove_record(self, manager):
        await manager.push_record(KEY_1, VALUE_1)

        await manager.remove_record(KEY_1)

        assert await manager.read_record(KEY_1) == ""
        assert await manager.get_record_count() == "0"

    @pytest.mark.asyncio
    async def test_remove_requires_admin(self, manager, store, access_control):
        await manager.push_record(KEY_1, VALUE_1)
        access_control.is_admin.return_value = False

        with pytest.raises(AuthorizationError, match="admin"):
            await manager.remove_record(KEY_1)

        assert store.records == {KEY_1: VALUE_1}

    def test_get_abi(self, manager):
        assert manager.get_abi() is DEFAULT_RECORD_ABI
