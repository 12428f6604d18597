"""Token transfers and balance reads for the configured signing wallet."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from paybot.chain import ChainClient, TxRequest
from paybot.errors import (
    InsufficientBalanceError,
    InvalidAddressFormatError,
    InvalidAmountError,
    PaybotError,
    TransferFailedError,
)
from paybot.tokens import TokenDescriptor, TokenRegistry
from paybot.utils.addresses import is_valid_address
from paybot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_GAS_LIMIT = 250_000

# uint256 needs 78 digits; keep Decimal math exact beyond that.
_UNIT_PRECISION = 100


class TransferStage(Enum):
    """Steps a transfer moves through; any failure ends the transfer."""

    VALIDATING = "validating"
    BALANCE_CHECK = "balance_check"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class TransferResult:
    """A transfer that has been included on chain."""

    tx_hash: str
    from_address: str
    to_address: str
    amount: str
    token: str
    block_number: int
    network: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BalanceInfo:
    token: str
    balance: str
    balance_raw: str = "0"
    decimals: Optional[int] = None
    network: str = "testnet"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["error"] is None:
            data.pop("error")
        return data


def to_base_units(amount: str, decimals: int) -> int:
    """Convert a human amount like ``"5.25"`` into the token's smallest unit.

    Raises:
        InvalidAmountError: if ``amount`` is not a positive decimal number or
            carries more fractional digits than ``decimals`` allows.
    """
    text = (amount or "").strip()
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise InvalidAmountError(amount, "not a number") from exc

    if not value.is_finite():
        raise InvalidAmountError(amount, "not a number")
    if value <= 0:
        raise InvalidAmountError(amount, "must be greater than zero")

    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmountError(
                amount, f"more than {decimals} decimal places for this token"
            )
        return int(scaled)


def format_units(raw: int, decimals: int) -> str:
    """Render a smallest-unit integer as a plain decimal string."""
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        text = format(Decimal(int(raw)).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


class TransferExecutor:
    """Validate, submit and confirm transfers; read balances.

    Args:
        chain: Client holding the signing wallet.
        registry: Token metadata (addresses, decimals).
        network: Label reported on results (e.g. ``"testnet"``).
        gas_limit: Gas allowance attached to every transfer.
    """

    def __init__(
        self,
        chain: ChainClient,
        registry: TokenRegistry,
        network: str = "testnet",
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> None:
        self.chain = chain
        self.registry = registry
        self.network = network
        self.gas_limit = gas_limit

    @property
    def wallet_address(self) -> str:
        return self.chain.address

    async def _raw_balance(self, token: TokenDescriptor, address: str) -> int:
        if token.is_native:
            return int(await self.chain.get_balance(address))
        return int(await self.chain.call(token.address, "balanceOf", [address]))

    def _build_request(self, token: TokenDescriptor, to_address: str, units: int) -> TxRequest:
        if token.is_native:
            return TxRequest(to=to_address, value=units, gas=self.gas_limit)
        return TxRequest(
            to=token.address,
            gas=self.gas_limit,
            method="transfer",
            args=[to_address, units],
        )

    async def transfer(
        self, symbol: str, to_address: str, amount: str
    ) -> TransferResult:
        """Send ``amount`` of ``symbol`` to ``to_address`` and wait for inclusion."""
        if not is_valid_address(to_address):
            raise InvalidAddressFormatError(to_address)

        token = self.registry.descriptor(symbol)
        decimals = await self.registry.resolve_decimals(token.symbol)
        units = to_base_units(amount, decimals)
        log = logger.bind(token=token.symbol, to=to_address, amount=amount)
        log.debug("transfer_validated", stage=TransferStage.VALIDATING.value, units=units)

        stage = TransferStage.BALANCE_CHECK
        try:
            available = await self._raw_balance(token, self.wallet_address)
        except Exception as exc:
            log.error("transfer_failed", stage=stage.value, error=str(exc))
            raise TransferFailedError(token.symbol, str(exc), stage.value) from exc

        if available < units:
            log.warning("transfer_insufficient_balance", available=available, units=units)
            raise InsufficientBalanceError(token.symbol, available, units)

        try:
            stage = TransferStage.SUBMITTING
            tx_hash = await self.chain.send_transaction(
                self._build_request(token, to_address, units)
            )
            log.info("transfer_submitted", stage=stage.value, tx_hash=tx_hash)

            stage = TransferStage.CONFIRMING
            receipt = await self.chain.wait_for_confirmation(tx_hash)
        except PaybotError:
            raise
        except Exception as exc:
            log.error("transfer_failed", stage=stage.value, error=str(exc))
            raise TransferFailedError(token.symbol, str(exc), stage.value) from exc

        if not receipt.succeeded:
            log.error("transfer_reverted", tx_hash=receipt.tx_hash)
            raise TransferFailedError(
                token.symbol, f"transaction {receipt.tx_hash} reverted", stage.value
            )

        log.info(
            "transfer_confirmed",
            stage=TransferStage.CONFIRMED.value,
            tx_hash=receipt.tx_hash,
            block=receipt.block_number,
        )
        return TransferResult(
            tx_hash=receipt.tx_hash,
            from_address=self.wallet_address,
            to_address=to_address,
            amount=amount,
            token=token.symbol,
            block_number=receipt.block_number,
            network=self.network,
        )

    async def balance_of(self, symbol: str, address: Optional[str] = None) -> BalanceInfo:
        """Balance of one token; failures come back as a zero balance with ``error``."""
        canonical = self.registry.normalize(symbol)
        target = address or self.wallet_address
        try:
            if not is_valid_address(target):
                raise InvalidAddressFormatError(target)
            token = self.registry.descriptor(canonical)
            raw, decimals = await asyncio.gather(
                self._raw_balance(token, target),
                self.registry.resolve_decimals(token.symbol),
            )
        except Exception as exc:
            logger.warning("balance_query_failed", token=canonical, error=str(exc))
            return BalanceInfo(
                token=canonical, balance="0", network=self.network, error=str(exc)
            )

        return BalanceInfo(
            token=token.symbol,
            balance=format_units(raw, decimals),
            balance_raw=str(raw),
            decimals=decimals,
            network=self.network,
        )

    async def balances_of(
        self, symbols: Sequence[str], address: Optional[str] = None
    ) -> List[BalanceInfo]:
        return list(
            await asyncio.gather(*(self.balance_of(symbol, address) for symbol in symbols))
        )


__all__ = [
    "DEFAULT_GAS_LIMIT",
    "BalanceInfo",
    "TransferExecutor",
    "TransferResult",
    "TransferStage",
    "format_units",
    "to_base_units",
]
