"""Token metadata: symbol aliases, contract addresses and decimals."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from paybot.errors import UnsupportedTokenError
from paybot.utils.logging import get_logger

logger = get_logger(__name__)

NATIVE = "NATIVE"
NATIVE_DECIMALS = 18

# Sepolia deployments used by the default configuration.
DEFAULT_TOKENS: Dict[str, Dict[str, object]] = {
    "ETH": {"address": NATIVE, "decimals": 18},
    "MTK": {"address": "0x0E4Dd0bA5a6f1bc0ffFE421dbB8E252dFF0C66f6", "decimals": 18},
    "USDC": {"address": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238", "decimals": 6},
    "DAI": {"address": "0x68194a729C2450ad26072b3D33ADaCbcef39D574", "decimals": 18},
    "USDT": {"address": "0xaA8E23Fb1079EA71e0a56F48a2aA51851D8433D0", "decimals": 6},
}

# Synonyms accepted wherever a symbol is typed (uppercase keys).
TOKEN_ALIASES: Dict[str, str] = {
    "MYTOKEN": "MTK",
    "MY-TOKEN": "MTK",
    "MY_TOKEN": "MTK",
}


class DecimalsSource(Protocol):
    """Subset of the chain client the registry needs."""

    async def call(self, contract_address: str, method: str, args: list) -> object:
        ...


@dataclass(frozen=True)
class TokenDescriptor:
    """Static metadata describing a known token."""

    symbol: str
    address: str
    decimals: Optional[int] = None

    @property
    def is_native(self) -> bool:
        return self.address == NATIVE


def normalize_symbol(value: str, aliases: Optional[Dict[str, str]] = None) -> str:
    """Uppercase a typed symbol and map registered synonyms to their canonical form."""
    symbol = (value or "").strip().upper()
    table = TOKEN_ALIASES if aliases is None else aliases
    return table.get(symbol, symbol)


def load_token_map(path: Optional[Path] = None) -> Dict[str, TokenDescriptor]:
    """Load tokens from a JSON file or fall back to defaults.

    The file maps symbols to ``{"address": ..., "decimals": ...}``; ``decimals``
    may be omitted, in which case it is read from the contract on first use.
    """
    if path is None:
        raw = DEFAULT_TOKENS
    else:
        if not path.exists():
            raise FileNotFoundError(f"Token configuration not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)

    if not isinstance(raw, dict):
        raise ValueError("Token configuration must be a JSON object")

    tokens: Dict[str, TokenDescriptor] = {}
    for symbol, entry in raw.items():
        canonical = symbol.strip().upper()
        if not isinstance(entry, dict):
            raise ValueError(f"Token {canonical} must map to an object")
        address = str(entry.get("address") or "").strip()
        if not address:
            raise ValueError(f"Token {canonical} has no address")
        decimals = entry.get("decimals")
        tokens[canonical] = TokenDescriptor(
            symbol=canonical,
            address=NATIVE if address.upper() == NATIVE else address,
            decimals=int(decimals) if decimals is not None else None,
        )
    return tokens


class TokenRegistry:
    """Resolve token symbols to chain identities and decimal precision.

    Decimals resolved from chain are memoized on the instance. Concurrent
    lookups of the same symbol may both query the chain; they write the same
    value, so the cache needs no lock.
    """

    def __init__(
        self,
        tokens: Optional[Dict[str, TokenDescriptor]] = None,
        chain: Optional[DecimalsSource] = None,
        aliases: Optional[Dict[str, str]] = None,
    ) -> None:
        self._tokens = dict(tokens if tokens is not None else load_token_map())
        self._aliases = dict(TOKEN_ALIASES if aliases is None else aliases)
        self._chain = chain
        self._decimals_cache: Dict[str, int] = {}

    def normalize(self, value: str) -> str:
        return normalize_symbol(value, self._aliases)

    def symbols(self) -> List[str]:
        return list(self._tokens.keys())

    def is_supported(self, symbol: str) -> bool:
        return self.normalize(symbol) in self._tokens

    def descriptor(self, symbol: str) -> TokenDescriptor:
        canonical = self.normalize(symbol)
        token = self._tokens.get(canonical)
        if token is None:
            raise UnsupportedTokenError(canonical)
        return token

    def resolve_address(self, symbol: str) -> str:
        """Return the contract address, or ``NATIVE`` for the chain's own coin."""
        return self.descriptor(symbol).address

    async def resolve_decimals(self, symbol: str) -> int:
        token = self.descriptor(symbol)

        cached = self._decimals_cache.get(token.symbol)
        if cached is not None:
            return cached

        if token.decimals is not None:
            self._decimals_cache[token.symbol] = token.decimals
            return token.decimals

        if token.is_native:
            self._decimals_cache[token.symbol] = NATIVE_DECIMALS
            return NATIVE_DECIMALS

        if self._chain is None:
            raise UnsupportedTokenError(token.symbol, "decimals unknown")

        try:
            value = int(await self._chain.call(token.address, "decimals", []))
        except Exception as exc:
            logger.warning(
                "decimals_query_failed", token=token.symbol, error=str(exc)
            )
            raise UnsupportedTokenError(
                token.symbol, f"decimals unavailable: {exc}"
            ) from exc

        if value < 0:
            raise UnsupportedTokenError(token.symbol, f"invalid decimals {value}")

        self._decimals_cache[token.symbol] = value
        logger.info("decimals_resolved", token=token.symbol, decimals=value)
        return value


__all__ = [
    "NATIVE",
    "DEFAULT_TOKENS",
    "TOKEN_ALIASES",
    "TokenDescriptor",
    "TokenRegistry",
    "load_token_map",
    "normalize_symbol",
]
