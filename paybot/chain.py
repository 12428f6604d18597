"""EVM chain access: balances, contract reads, signed transfers and receipts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3

from paybot.utils.logging import get_logger

logger = get_logger(__name__)

ERC20_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]

KNOWN_NETWORKS: Dict[int, str] = {
    1: "mainnet",
    10: "optimism",
    137: "polygon",
    8453: "base",
    17000: "holesky",
    42161: "arbitrum",
    84532: "base-sepolia",
    11155111: "sepolia",
}


@dataclass(frozen=True)
class NetworkInfo:
    name: str
    chain_id: int


@dataclass(frozen=True)
class TxRequest:
    """Unsigned transfer.

    A plain value transfer sets ``value``; a contract invocation names the
    ``method`` and ``args`` to call on the contract at ``to``.
    """

    to: str
    gas: int
    value: int = 0
    method: Optional[str] = None
    args: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    block_number: int
    status: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ChainClient(Protocol):
    """Capabilities the transfer executor relies on."""

    @property
    def address(self) -> str:
        ...

    async def get_balance(self, address: str) -> int:
        ...

    async def get_network(self) -> NetworkInfo:
        ...

    async def call(self, contract_address: str, method: str, args: list) -> Any:
        ...

    async def send_transaction(self, tx: TxRequest) -> str:
        ...

    async def wait_for_confirmation(self, tx_hash: str) -> Receipt:
        ...


class Web3ChainClient:
    """ChainClient over an ``AsyncWeb3`` HTTP provider and one signing key."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        confirmation_timeout: float = 120.0,
        w3: Optional[AsyncWeb3] = None,
    ) -> None:
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._account = Account.from_key(private_key)
        self.confirmation_timeout = confirmation_timeout
        logger.info("chain_client_initialised", wallet=self._account.address)

    @property
    def address(self) -> str:
        return self._account.address

    def _contract(self, contract_address: str):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=ERC20_ABI,
        )

    @staticmethod
    def _prepare_args(args: list) -> list:
        prepared = []
        for arg in args:
            if isinstance(arg, str) and AsyncWeb3.is_address(arg):
                prepared.append(AsyncWeb3.to_checksum_address(arg))
            else:
                prepared.append(arg)
        return prepared

    async def get_balance(self, address: str) -> int:
        return int(await self.w3.eth.get_balance(AsyncWeb3.to_checksum_address(address)))

    async def get_network(self) -> NetworkInfo:
        chain_id = int(await self.w3.eth.chain_id)
        return NetworkInfo(name=KNOWN_NETWORKS.get(chain_id, "unknown"), chain_id=chain_id)

    async def call(self, contract_address: str, method: str, args: list) -> Any:
        contract = self._contract(contract_address)
        function = getattr(contract.functions, method)
        return await function(*self._prepare_args(args)).call()

    async def send_transaction(self, tx: TxRequest) -> str:
        """Sign ``tx`` with the configured key and broadcast it; returns the hash."""
        nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
        params: Dict[str, Any] = {
            "from": self.address,
            "nonce": nonce,
            "gas": tx.gas,
            "gasPrice": await self.w3.eth.gas_price,
            "chainId": await self.w3.eth.chain_id,
        }

        if tx.method:
            contract = self._contract(tx.to)
            function = getattr(contract.functions, tx.method)
            payload = await function(*self._prepare_args(tx.args)).build_transaction(
                {**params, "value": tx.value}
            )
        else:
            payload = {
                **params,
                "to": AsyncWeb3.to_checksum_address(tx.to),
                "value": tx.value,
            }

        signed = self._account.sign_transaction(payload)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        hex_hash = AsyncWeb3.to_hex(tx_hash)
        logger.info("transaction_broadcast", tx_hash=hex_hash, nonce=nonce)
        return hex_hash

    async def wait_for_confirmation(self, tx_hash: str) -> Receipt:
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.confirmation_timeout
        )
        return Receipt(
            tx_hash=AsyncWeb3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            status=int(receipt.get("status", 1)),
        )


__all__ = [
    "ERC20_ABI",
    "ChainClient",
    "NetworkInfo",
    "Receipt",
    "TxRequest",
    "Web3ChainClient",
]
