"""Application entrypoint."""

from __future__ import annotations

import asyncio
import signal

from telegram import BotCommand, BotCommandScopeChat, BotCommandScopeDefault
from telegram.error import BadRequest
from telegram.ext import ApplicationBuilder

from paybot.config import Settings, load_settings
from paybot.handlers.commands import HandlerContext, setup as setup_handlers
from paybot.utils.logging import configure_logging, get_logger
from paybot.utils.rate_limit import RateLimiter
from paybot.wiring import Services, build_services

logger = get_logger(__name__)

BOT_COMMANDS = [
    BotCommand("help", "Show what I can do"),
    BotCommand("balance", "Wallet balances"),
    BotCommand("contacts", "List saved contacts"),
    BotCommand("addcontact", "Save a contact"),
    BotCommand("network", "Show the connected chain"),
    BotCommand("confirm", "Send the pending transfer"),
    BotCommand("cancel", "Drop the pending transfer"),
]


async def run_bot(settings: Settings, services: Services) -> None:
    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required to run the bot")

    application = ApplicationBuilder().token(settings.telegram_bot_token).build()
    await application.initialize()

    await application.bot.set_my_commands(BOT_COMMANDS, scope=BotCommandScopeDefault())
    if settings.telegram_chat_id is not None:
        scope = BotCommandScopeChat(chat_id=settings.telegram_chat_id)
        try:
            await application.bot.set_my_commands(BOT_COMMANDS, scope=scope)
        except BadRequest:
            logger.warning(
                "telegram_command_scope_failed",
                chat_id=settings.telegram_chat_id,
            )

    handler_context = HandlerContext(
        orchestrator=services.orchestrator,
        rate_limiter=RateLimiter(settings.rate_limit_per_user_per_min),
        allowed_chat_id=settings.telegram_chat_id,
    )
    setup_handlers(application, handler_context)

    try:
        await application.start()
        if application.updater:
            await application.updater.start_polling()

        logger.info(
            "bot_started",
            commands=len(BOT_COMMANDS),
            wallet=services.executor.wallet_address,
        )

        stop_event = asyncio.Event()

        def signal_handler(signum, frame):
            logger.info("shutdown_signal_received", signal=signum)
            stop_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        await stop_event.wait()

    finally:
        logger.info("bot_stopping")
        if application.updater:
            await application.updater.stop()
        await application.stop()
        await application.shutdown()


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    services = await build_services(settings)
    try:
        await run_bot(settings, services)
    finally:
        await services.db.dispose()


def bot_main() -> None:
    """Synchronous wrapper for the console script."""
    asyncio.run(main())


if __name__ == "__main__":
    bot_main()
