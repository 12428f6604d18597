"""Run parsed commands against the contact directory and the wallet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from paybot.chain import NetworkInfo
from paybot.command_parser import (
    ALL_TOKENS,
    AddContactCommand,
    CheckBalanceCommand,
    ListContactsCommand,
    ParsedCommand,
    SendCommand,
    UnknownCommand,
    describe,
    parse,
)
from paybot.config import DEFAULT_BALANCE_SYMBOLS
from paybot.contacts import ContactDirectory, ContactRecord
from paybot.errors import (
    ChainQueryFailedError,
    ContactNotFoundError,
    InvalidContactError,
    ParseUnrecognizedError,
    PaybotError,
    UnsupportedTokenError,
)
from paybot.tokens import TokenRegistry
from paybot.transfers import BalanceInfo, TransferExecutor, TransferResult
from paybot.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResponse:
    """Outcome of one command, ready for any surface to render."""

    ok: bool
    message: str = ""
    transaction: Optional[TransferResult] = None
    balances: List[BalanceInfo] = field(default_factory=list)
    contacts: List[ContactRecord] = field(default_factory=list)
    contact: Optional[ContactRecord] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None
    not_found: bool = False

    @classmethod
    def failure(cls, exc: PaybotError) -> "CommandResponse":
        return cls(
            ok=False,
            error=exc.message,
            suggestion=exc.suggestion,
            not_found=isinstance(exc, ContactNotFoundError),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape: ``{message, ...}`` on success, ``{error, suggestion?}`` otherwise."""
        if not self.ok:
            payload: Dict[str, Any] = {"error": self.error}
            if self.suggestion:
                payload["suggestion"] = self.suggestion
            return payload

        payload = {"success": True, "message": self.message}
        if self.transaction is not None:
            payload["transaction"] = self.transaction.to_dict()
        if self.balances:
            payload["balances"] = [b.to_dict() for b in self.balances]
        if self.contacts:
            payload["contacts"] = [c.to_dict() for c in self.contacts]
        if self.contact is not None:
            payload["contact"] = self.contact.to_dict()
        return payload


class CommandOrchestrator:
    """Parse -> resolve recipient -> resolve token -> execute."""

    def __init__(
        self,
        directory: ContactDirectory,
        executor: TransferExecutor,
        registry: TokenRegistry,
        default_symbols: Optional[Sequence[str]] = None,
    ) -> None:
        self.directory = directory
        self.executor = executor
        self.registry = registry
        self.default_symbols = list(default_symbols or DEFAULT_BALANCE_SYMBOLS)

    def preview(self, text: str) -> Tuple[ParsedCommand, str]:
        """Parse without executing; returns the intent and its description."""
        command = parse(text)
        return command, describe(command)

    async def execute(self, text: str) -> CommandResponse:
        return await self.run(parse(text))

    async def run(self, command: ParsedCommand) -> CommandResponse:
        logger.info("command_received", command=type(command).__name__)
        try:
            if isinstance(command, SendCommand):
                return await self._send(command)
            if isinstance(command, CheckBalanceCommand):
                token = None if command.all_tokens else command.token
                return await self.check_balance(token)
            if isinstance(command, AddContactCommand):
                return await self.add_contact(command.name, command.address)
            if isinstance(command, ListContactsCommand):
                return await self.list_contacts()
            if isinstance(command, UnknownCommand):
                raise ParseUnrecognizedError(command.original_text)
            raise TypeError(f"Unhandled command type: {type(command).__name__}")
        except PaybotError as exc:
            logger.info(
                "command_rejected", error=exc.message, kind=type(exc).__name__
            )
            return CommandResponse.failure(exc)

    async def _send(self, command: SendCommand) -> CommandResponse:
        contact = await self.directory.find_by_name(command.recipient)
        if contact is None:
            raise ContactNotFoundError(command.recipient)

        transaction = await self.executor.transfer(
            command.token, contact.address, command.amount
        )
        return CommandResponse(
            ok=True,
            message=(
                f"Successfully sent {command.amount} {transaction.token} "
                f"to {contact.name}"
            ),
            transaction=transaction,
            contact=contact,
        )

    async def check_balance(self, token: Optional[str] = None) -> CommandResponse:
        """One token's balance, or the default set when ``token`` is None or ``ALL``."""
        if token and self.registry.normalize(token) == ALL_TOKENS:
            token = None
        if token and not self.registry.is_supported(token):
            return CommandResponse.failure(
                UnsupportedTokenError(self.registry.normalize(token))
            )
        if token:
            balances = [await self.executor.balance_of(self.registry.normalize(token))]
        else:
            balances = await self.executor.balances_of(self.default_symbols)

        if len(balances) == 1:
            message = f"{balances[0].token} balance"
        else:
            message = "Wallet balances"
        return CommandResponse(ok=True, message=message, balances=balances)

    async def add_contact(self, name: str, address: str) -> CommandResponse:
        try:
            if not name or not address:
                raise InvalidContactError("Name and address are required")
            contact = await self.directory.add(name, address)
        except PaybotError as exc:
            return CommandResponse.failure(exc)
        return CommandResponse(
            ok=True,
            message=f'Added contact "{contact.name}"',
            contact=contact,
        )

    async def list_contacts(self) -> CommandResponse:
        contacts = await self.directory.list_all()
        message = f"{len(contacts)} contact(s)" if contacts else "No contacts saved yet"
        return CommandResponse(ok=True, message=message, contacts=contacts)

    async def update_contact(
        self,
        contact_id: int,
        name: Optional[str] = None,
        address: Optional[str] = None,
    ) -> CommandResponse:
        try:
            contact = await self.directory.update(contact_id, name=name, address=address)
        except PaybotError as exc:
            return CommandResponse.failure(exc)
        if contact is None:
            return CommandResponse(ok=False, error="Contact not found", not_found=True)
        return CommandResponse(
            ok=True, message=f'Updated contact "{contact.name}"', contact=contact
        )

    async def remove_contact(self, contact_id: int) -> CommandResponse:
        if not await self.directory.remove(contact_id):
            return CommandResponse(ok=False, error="Contact not found", not_found=True)
        return CommandResponse(ok=True, message="Contact deleted")

    async def network_info(self) -> NetworkInfo:
        try:
            return await self.executor.chain.get_network()
        except Exception as exc:
            logger.warning("network_query_failed", error=str(exc))
            raise ChainQueryFailedError(f"Could not reach the network: {exc}") from exc


__all__ = ["CommandOrchestrator", "CommandResponse"]
