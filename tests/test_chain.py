"""Web3ChainClient against a stubbed ``w3.eth`` namespace."""

from types import SimpleNamespace

import pytest
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3

from paybot.chain import TxRequest, Web3ChainClient

PRIVATE_KEY = "0x" + "11" * 32
RECIPIENT = "0x2222222222222222222222222222222222222222"


async def _value(value):
    return value


class FakeEth:
    def __init__(self, chain_id: int = 11155111) -> None:
        self._chain_id = chain_id
        self.raw_sent = []
        self.receipt = {"transactionHash": b"\xab" * 32, "blockNumber": 9, "status": 1}
        self.receipt_timeout = None

    @property
    def chain_id(self):
        return _value(self._chain_id)

    @property
    def gas_price(self):
        return _value(1_000_000_000)

    async def get_transaction_count(self, address, block):
        return 4

    async def get_balance(self, address):
        return 5 * 10**18

    async def send_raw_transaction(self, raw):
        self.raw_sent.append(raw)
        return b"\xcd" * 32

    async def wait_for_transaction_receipt(self, tx_hash, timeout):
        self.receipt_timeout = timeout
        return self.receipt


def make_client(chain_id: int = 11155111, timeout: float = 30.0):
    eth = FakeEth(chain_id)
    client = Web3ChainClient(
        "http://unused",
        PRIVATE_KEY,
        confirmation_timeout=timeout,
        w3=SimpleNamespace(eth=eth),
    )
    return client, eth


def test_address_comes_from_key():
    client, _ = make_client()
    assert client.address == Account.from_key(PRIVATE_KEY).address


@pytest.mark.asyncio
async def test_get_network_names_known_chains():
    client, _ = make_client(11155111)
    info = await client.get_network()
    assert (info.name, info.chain_id) == ("sepolia", 11155111)

    client, _ = make_client(999999)
    assert (await client.get_network()).name == "unknown"


@pytest.mark.asyncio
async def test_get_balance():
    client, _ = make_client()
    assert await client.get_balance(RECIPIENT.lower()) == 5 * 10**18


@pytest.mark.asyncio
async def test_native_transfer_is_signed_and_broadcast():
    client, eth = make_client()

    tx_hash = await client.send_transaction(
        TxRequest(to=RECIPIENT, gas=21_000, value=10**15)
    )

    assert tx_hash == "0x" + "cd" * 32
    assert len(eth.raw_sent) == 1
    assert isinstance(eth.raw_sent[0], (bytes, bytearray))


@pytest.mark.asyncio
async def test_wait_for_confirmation_maps_receipt():
    client, eth = make_client(timeout=12.0)
    eth.receipt["status"] = 0

    receipt = await client.wait_for_confirmation("0x" + "ab" * 32)

    assert receipt.tx_hash == "0x" + "ab" * 32
    assert receipt.block_number == 9
    assert not receipt.succeeded
    assert eth.receipt_timeout == 12.0


TOKEN = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"


class ContractEth(FakeEth):
    """FakeEth that builds real ERC-20 contract objects on an offline AsyncWeb3."""

    def __init__(self) -> None:
        super().__init__()
        self.w3 = AsyncWeb3(AsyncHTTPProvider("http://127.0.0.1:1"))
        self.eth_calls = []

        async def fake_call(transaction, *args, **kwargs):
            self.eth_calls.append(transaction)
            return (12345).to_bytes(32, "big")

        self.w3.eth.call = fake_call

    def contract(self, address, abi):
        return self.w3.eth.contract(address=address, abi=abi)


def make_contract_client():
    eth = ContractEth()
    client = Web3ChainClient("http://unused", PRIVATE_KEY, w3=SimpleNamespace(eth=eth))
    return client, eth


def test_prepare_args_checksums_addresses():
    lower = RECIPIENT.lower().replace("2", "a")
    prepared = Web3ChainClient._prepare_args([lower, 5])
    assert prepared == [AsyncWeb3.to_checksum_address(lower), 5]


@pytest.mark.asyncio
async def test_call_reads_contract_function():
    client, eth = make_contract_client()

    value = await client.call(TOKEN.lower(), "balanceOf", [RECIPIENT])

    assert value == 12345
    assert len(eth.eth_calls) == 1
    transaction = eth.eth_calls[0]
    data = transaction["data"]
    if isinstance(data, (bytes, bytearray)):
        data = AsyncWeb3.to_hex(data)
    assert data.lower().startswith("0x70a08231")
    assert transaction["to"] == TOKEN


@pytest.mark.asyncio
async def test_erc20_transfer_is_encoded_signed_and_broadcast():
    client, eth = make_contract_client()
    amount = 5_000_000

    tx_hash = await client.send_transaction(
        TxRequest(to=TOKEN, gas=250_000, method="transfer", args=[RECIPIENT, amount])
    )

    assert tx_hash == "0x" + "cd" * 32
    assert len(eth.raw_sent) == 1
    raw = bytes(eth.raw_sent[0])
    transfer_data = bytes.fromhex(
        "a9059cbb"
        + "00" * 12
        + RECIPIENT[2:].lower()
        + amount.to_bytes(32, "big").hex()
    )
    assert transfer_data in raw
    assert bytes.fromhex(TOKEN[2:]) in raw
    assert Account.recover_transaction(raw) == client.address
