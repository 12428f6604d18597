"""Domain errors raised by the command pipeline."""

from __future__ import annotations

from typing import Optional

USAGE_SUGGESTION = 'Try something like "Send 5 USDC to Alice"'


class PaybotError(Exception):
    """Base class for errors scoped to a single command."""

    suggestion: Optional[str] = None

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if suggestion is not None:
            self.suggestion = suggestion

    def __str__(self) -> str:
        return self.message


class ParseUnrecognizedError(PaybotError):
    suggestion = USAGE_SUGGESTION

    def __init__(self, original_text: str) -> None:
        super().__init__("Invalid command format")
        self.original_text = original_text


class ContactNotFoundError(PaybotError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f'Contact "{name}" not found',
            suggestion=f"Make sure you've added {name} to your contacts first",
        )
        self.name = name


class ContactDuplicateError(PaybotError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f'Contact with name "{name}" already exists',
            suggestion="Pick a different name or update the existing contact",
        )
        self.name = name


class InvalidContactError(PaybotError):
    """Contact fields are missing or empty."""


class InvalidAddressFormatError(PaybotError):
    suggestion = "Addresses look like 0x followed by 40 hex characters"

    def __init__(self, address: str) -> None:
        super().__init__(f"Invalid Ethereum address format: {address!r}")
        self.address = address


class UnsupportedTokenError(PaybotError):
    def __init__(self, symbol: str, reason: Optional[str] = None) -> None:
        message = f"Unsupported token: {symbol}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.symbol = symbol


class InvalidAmountError(PaybotError):
    def __init__(self, amount: str, reason: str) -> None:
        super().__init__(f"Invalid amount {amount!r}: {reason}")
        self.amount = amount


class InsufficientBalanceError(PaybotError):
    def __init__(self, symbol: str, available: int, requested: int) -> None:
        super().__init__(f"Insufficient {symbol} balance")
        self.symbol = symbol
        self.available = available
        self.requested = requested


class TransferFailedError(PaybotError):
    """Submission or confirmation of a transfer failed."""

    def __init__(self, symbol: str, cause: str, stage: Optional[str] = None) -> None:
        super().__init__(f"Failed to send {symbol}: {cause or 'Transaction error'}")
        self.symbol = symbol
        self.stage = stage


class ChainQueryFailedError(PaybotError):
    """A read-only chain query (balance, decimals) failed."""


__all__ = [
    "USAGE_SUGGESTION",
    "PaybotError",
    "ParseUnrecognizedError",
    "ContactNotFoundError",
    "ContactDuplicateError",
    "InvalidContactError",
    "InvalidAddressFormatError",
    "UnsupportedTokenError",
    "InvalidAmountError",
    "InsufficientBalanceError",
    "TransferFailedError",
    "ChainQueryFailedError",
]
