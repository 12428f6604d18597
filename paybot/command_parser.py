"""Pattern-based parsing of text commands into typed intents."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Union

from paybot.errors import USAGE_SUGGESTION
from paybot.tokens import normalize_symbol
from paybot.utils.addresses import ADDRESS_FRAGMENT

ALL_TOKENS = "ALL"

# Symbols are letters, optionally joined by "-" or "_" (e.g. MY-TOKEN).
_SYMBOL = r"[a-zA-Z]+(?:[-_][a-zA-Z]+)*"

SEND_PATTERN = re.compile(
    rf"^send\s+(\d+(?:\.\d+)?)\s+({_SYMBOL})\s+to\s+(.+)$",
    re.IGNORECASE,
)
CHECK_BALANCE_PATTERN = re.compile(
    rf"^(?:(?:check|show|view)\s+)?(?:my\s+)?balance(?:\s+of\s+({_SYMBOL}))?$",
    re.IGNORECASE,
)
ADD_CONTACT_PATTERN = re.compile(
    rf"^add\s+contact\s+([a-zA-Z0-9_]+)\s+(?:(?:with\s+address|as)\s+)?({ADDRESS_FRAGMENT})$",
    re.IGNORECASE,
)
LIST_CONTACTS_PATTERN = re.compile(
    r"^(?:list|show|view)\s+(?:my\s+)?contacts$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SendCommand:
    amount: str
    token: str
    recipient: str


@dataclass(frozen=True)
class CheckBalanceCommand:
    token: str = ALL_TOKENS

    @property
    def all_tokens(self) -> bool:
        return self.token == ALL_TOKENS


@dataclass(frozen=True)
class AddContactCommand:
    name: str
    address: str


@dataclass(frozen=True)
class ListContactsCommand:
    pass


@dataclass(frozen=True)
class UnknownCommand:
    original_text: str


ParsedCommand = Union[
    SendCommand,
    CheckBalanceCommand,
    AddContactCommand,
    ListContactsCommand,
    UnknownCommand,
]


def parse(text: str) -> ParsedCommand:
    """Parse a command string into a typed intent.

    Patterns are tried in a fixed order (send, balance, add contact, list
    contacts) and the first match wins. Input matching none of them yields
    an :class:`UnknownCommand` carrying the trimmed text; this function never
    raises.

    Args:
        text: Raw text as typed by the user.

    Returns:
        One of the ``ParsedCommand`` variants.
    """
    if not text or not isinstance(text, str):
        return UnknownCommand(original_text="")

    command = " ".join(text.split())

    match = SEND_PATTERN.match(command)
    if match:
        return SendCommand(
            amount=match.group(1),
            token=normalize_symbol(match.group(2)),
            recipient=match.group(3).strip(),
        )

    match = CHECK_BALANCE_PATTERN.match(command)
    if match:
        token = normalize_symbol(match.group(1)) if match.group(1) else ALL_TOKENS
        return CheckBalanceCommand(token=token)

    match = ADD_CONTACT_PATTERN.match(command)
    if match:
        return AddContactCommand(name=match.group(1).strip(), address=match.group(2))

    if LIST_CONTACTS_PATTERN.match(command):
        return ListContactsCommand()

    return UnknownCommand(original_text=text.strip())


def describe(command: ParsedCommand) -> str:
    """Human-readable summary of what a command will do (for confirmations)."""
    if isinstance(command, SendCommand):
        return f"Send {command.amount} {command.token} to {command.recipient}"
    if isinstance(command, CheckBalanceCommand):
        if command.all_tokens:
            return "Check balance of all tokens"
        return f"Check balance of {command.token}"
    if isinstance(command, AddContactCommand):
        return f'Add contact "{command.name}" with address {command.address}'
    if isinstance(command, ListContactsCommand):
        return "List all contacts"
    if isinstance(command, UnknownCommand):
        return f'Unknown command: "{command.original_text}"'
    return "Invalid command"


def usage_examples() -> List[str]:
    """Example commands shown by help screens."""
    return [
        "send 5 USDC to alice",
        "check my balance",
        "show balance of MTK",
        "add contact bob 0x0000000000000000000000000000000000000001",
        "list contacts",
    ]


__all__ = [
    "ALL_TOKENS",
    "USAGE_SUGGESTION",
    "SendCommand",
    "CheckBalanceCommand",
    "AddContactCommand",
    "ListContactsCommand",
    "UnknownCommand",
    "ParsedCommand",
    "parse",
    "describe",
    "usage_examples",
]
