"""Build the long-lived objects shared by the bot and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from paybot.chain import ChainClient, Web3ChainClient
from paybot.config import Settings
from paybot.contacts import ContactDirectory
from paybot.orchestrator import CommandOrchestrator
from paybot.store.db import Database
from paybot.tokens import TokenRegistry, load_token_map
from paybot.transfers import TransferExecutor


@dataclass
class Services:
    db: Database
    chain: ChainClient
    registry: TokenRegistry
    directory: ContactDirectory
    executor: TransferExecutor
    orchestrator: CommandOrchestrator


async def build_services(
    settings: Settings, chain: Optional[ChainClient] = None
) -> Services:
    """Connect the database and wire one chain client, registry and orchestrator.

    These are created once per process and handed to every handler; nothing
    here is stored in module globals.
    """
    db = Database(settings.database_url)
    db.connect()
    await db.init_models()

    if chain is None:
        chain = Web3ChainClient(
            settings.rpc_url,
            settings.private_key,
            confirmation_timeout=settings.confirmation_timeout_seconds,
        )

    registry = TokenRegistry(load_token_map(settings.tokens_json), chain=chain)
    directory = ContactDirectory(db)
    executor = TransferExecutor(
        chain,
        registry,
        network=settings.network_label,
        gas_limit=settings.gas_limit,
    )
    orchestrator = CommandOrchestrator(
        directory,
        executor,
        registry,
        default_symbols=settings.default_balance_symbols,
    )
    return Services(
        db=db,
        chain=chain,
        registry=registry,
        directory=directory,
        executor=executor,
        orchestrator=orchestrator,
    )
