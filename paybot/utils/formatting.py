"""Helpers for Telegram-safe Markdown formatting of command responses."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, List, Sequence

from paybot.utils.addresses import shorten_address

if TYPE_CHECKING:  # pragma: no cover
    from paybot.contacts import ContactRecord
    from paybot.orchestrator import CommandResponse
    from paybot.transfers import BalanceInfo, TransferResult

TESTNET_NOTICE = "Test network only. Transfers are irreversible once confirmed"

_ESCAPE_CHARS = r"_*[]()~`>#+-=|{}.!\\"
_ESCAPED = re.compile(r"\\([_*\[\]()~`>#+\-=|{}.!\\])")


def escape_markdown(text: str) -> str:
    """Escape Telegram MarkdownV2 control characters."""
    if text is None:
        text = ""
    if not isinstance(text, str):
        text = str(text)
    return "".join(f"\\{char}" if char in _ESCAPE_CHARS else char for char in text)


def unescape_markdown(text: str) -> str:
    """Drop MarkdownV2 escapes and emphasis markers for plain-text display."""
    if not text:
        return ""
    result = _ESCAPED.sub(lambda m: f"\x00{ord(m.group(1))}\x00", text)
    for marker in ("*", "`", "_"):
        result = result.replace(marker, "")
    return re.sub(r"\x00(\d+)\x00", lambda m: chr(int(m.group(1))), result)


def format_transfer(result: "TransferResult") -> str:
    """Render a confirmed transfer as a compact card."""
    lines = [
        f"*Sent {escape_markdown(result.amount)} {escape_markdown(result.token)}*",
        f"To: `{escape_markdown(result.to_address)}`",
        f"Tx: `{escape_markdown(result.tx_hash)}`",
        f"Block: {escape_markdown(result.block_number)} · "
        f"{escape_markdown(result.network)}",
    ]
    return "\n".join(lines)


def format_balance(entry: "BalanceInfo") -> str:
    line = f"• *{escape_markdown(entry.token)}*: {escape_markdown(entry.balance)}"
    if entry.error:
        line += f" \\(unavailable: {escape_markdown(entry.error)}\\)"
    return line


def format_balances(entries: Sequence["BalanceInfo"]) -> str:
    if not entries:
        return escape_markdown("No balances to show.")
    return "\n".join(format_balance(entry) for entry in entries)


def format_contact(contact: "ContactRecord") -> str:
    return (
        f"• `{escape_markdown(contact.id)}` *{escape_markdown(contact.name)}* "
        f"· `{escape_markdown(shorten_address(contact.address))}`"
    )


def format_contacts(contacts: Sequence["ContactRecord"]) -> str:
    if not contacts:
        return escape_markdown("No contacts saved yet. Try: add contact alice 0x...")
    return "\n".join(format_contact(contact) for contact in contacts)


def format_response(response: "CommandResponse") -> str:
    """Render any orchestrator response as MarkdownV2."""
    if not response.ok:
        parts: List[str] = [f"❌ {escape_markdown(response.error or 'Command failed')}"]
        if response.suggestion:
            parts.append(escape_markdown(response.suggestion))
        return join_messages(parts)

    if response.transaction is not None:
        return join_messages(
            [f"✅ {escape_markdown(response.message)}", format_transfer(response.transaction)]
        )
    if response.balances:
        return join_messages(
            [f"*{escape_markdown(response.message)}*", format_balances(response.balances)]
        )
    if response.contacts:
        return join_messages(
            [f"*{escape_markdown(response.message)}*", format_contacts(response.contacts)]
        )
    if response.contact is not None:
        return join_messages(
            [f"✅ {escape_markdown(response.message)}", format_contact(response.contact)]
        )
    return escape_markdown(response.message)


def join_messages(parts: Sequence[str]) -> str:
    """Join sections with blank lines."""
    return "\n\n".join(part for part in parts if part)


def append_testnet_notice(message: str) -> str:
    """Ensure transfer prompts end with the test-network footer."""
    trimmed = message.strip()
    if not trimmed:
        return escape_markdown(TESTNET_NOTICE)
    return trimmed + f"\n\n_{escape_markdown(TESTNET_NOTICE)}_"
