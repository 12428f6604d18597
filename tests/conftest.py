import pytest
import pytest_asyncio

from paybot.chain import NetworkInfo, Receipt
from paybot.contacts import ContactDirectory
from paybot.orchestrator import CommandOrchestrator
from paybot.store.db import Database
from paybot.tokens import DEFAULT_TOKENS, TokenRegistry, load_token_map
from paybot.transfers import TransferExecutor

WALLET = "0x1111111111111111111111111111111111111111"
ALICE = "0x2222222222222222222222222222222222222222"
BOB = "0x3333333333333333333333333333333333333333"
TX_HASH = "0x" + "ab" * 32

USDC_ADDRESS = str(DEFAULT_TOKENS["USDC"]["address"])
MTK_ADDRESS = str(DEFAULT_TOKENS["MTK"]["address"])


class FakeChain:
    """In-memory chain client that records what it was asked to do."""

    address = WALLET

    def __init__(self) -> None:
        self.native_balance = 10 * 10**18
        self.token_balances: dict = {}
        self.token_decimals: dict = {}
        self.failing_contracts: set = set()
        self.fail_native = False
        self.send_error: Exception | None = None
        self.confirm_error: Exception | None = None
        self.receipt_status = 1
        self.calls: list = []
        self.sent: list = []

    async def get_balance(self, address: str) -> int:
        if self.fail_native:
            raise RuntimeError("rpc unavailable")
        return self.native_balance

    async def get_network(self) -> NetworkInfo:
        return NetworkInfo(name="sepolia", chain_id=11155111)

    async def call(self, contract_address: str, method: str, args: list):
        self.calls.append((contract_address, method, list(args)))
        if contract_address in self.failing_contracts:
            raise RuntimeError("execution reverted")
        if method == "balanceOf":
            return self.token_balances.get(contract_address, 0)
        if method == "decimals":
            return self.token_decimals[contract_address]
        raise AssertionError(f"unexpected call {method}")

    async def send_transaction(self, tx) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(tx)
        return TX_HASH

    async def wait_for_confirmation(self, tx_hash: str) -> Receipt:
        if self.confirm_error is not None:
            raise self.confirm_error
        return Receipt(tx_hash=tx_hash, block_number=123, status=self.receipt_status)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def registry(chain) -> TokenRegistry:
    return TokenRegistry(load_token_map(), chain=chain)


@pytest.fixture
def executor(chain, registry) -> TransferExecutor:
    return TransferExecutor(chain, registry)


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'contacts.db'}")
    database.connect()
    await database.init_models()
    yield database
    await database.dispose()


@pytest.fixture
def directory(db) -> ContactDirectory:
    return ContactDirectory(db)


@pytest.fixture
def orchestrator(directory, executor, registry) -> CommandOrchestrator:
    return CommandOrchestrator(directory, executor, registry)
