"""Telegram command handlers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from telegram import Update, constants
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    CallbackContext,
    CommandHandler,
    MessageHandler,
    filters,
)

from paybot.command_parser import (
    ParsedCommand,
    SendCommand,
    describe,
    parse,
    usage_examples,
)
from paybot.errors import PaybotError
from paybot.orchestrator import CommandOrchestrator, CommandResponse
from paybot.utils.formatting import (
    append_testnet_notice,
    escape_markdown,
    format_response,
    unescape_markdown,
)
from paybot.utils.logging import bind_context, clear_context, get_logger
from paybot.utils.rate_limit import RateLimiter

logger = get_logger(__name__)

PENDING_KEY = "pending_command"


@dataclass
class HandlerContext:
    orchestrator: CommandOrchestrator
    rate_limiter: RateLimiter | None
    allowed_chat_id: int | None


def setup(application: Application, handler_context: HandlerContext) -> None:
    """Register handlers on the Telegram application."""
    application.bot_data["ctx"] = handler_context

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("balance", balance_command))
    application.add_handler(CommandHandler("contacts", contacts_command))
    application.add_handler(CommandHandler("addcontact", add_contact_command))
    application.add_handler(CommandHandler("editcontact", edit_contact_command))
    application.add_handler(CommandHandler("delcontact", delete_contact_command))
    application.add_handler(CommandHandler("network", network_command))
    application.add_handler(CommandHandler("confirm", confirm_command))
    application.add_handler(CommandHandler("cancel", cancel_command))

    application.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, natural_language_handler)
    )


def get_ctx(context: CallbackContext) -> HandlerContext:
    return context.application.bot_data["ctx"]


async def ensure_user(update: Update, context: CallbackContext) -> bool:
    """Ensure the chat is the one the wallet owner configured."""
    ctx = get_ctx(context)
    if ctx.allowed_chat_id:
        if not update.effective_chat or update.effective_chat.id != ctx.allowed_chat_id:
            await update.message.reply_text(
                "This bot is restricted to the configured chat.", parse_mode=None
            )
            return False
    return True


def rate_limit(update: Update, context: CallbackContext) -> bool:
    ctx = get_ctx(context)
    user = update.effective_user
    if not user:
        return True
    if not ctx.rate_limiter:
        return True
    allowed = ctx.rate_limiter.allow(user.id)
    if not allowed:
        wait = ctx.rate_limiter.retry_after(user.id)
        asyncio.create_task(
            update.message.reply_text(
                f"Slow down, rate limit hit. Try again in {wait}s.", parse_mode=None
            )
        )
    return allowed


async def reply_markdown(update: Update, text: str) -> None:
    """Send MarkdownV2, falling back to plain text if Telegram rejects it."""
    if not update.message:
        return
    try:
        await update.message.reply_text(
            text,
            parse_mode=constants.ParseMode.MARKDOWN_V2,
            disable_web_page_preview=True,
        )
    except BadRequest as exc:
        logger.warning("telegram_markdown_failed", error=str(exc), text=text)
        await update.message.reply_text(
            unescape_markdown(text),
            parse_mode=None,
            disable_web_page_preview=True,
        )


async def send_response(update: Update, response: CommandResponse) -> None:
    await reply_markdown(update, format_response(response))


def _help_text() -> str:
    lines = [
        "I send test-network tokens to the people in your contact list.",
        "",
        "Type commands like:",
    ]
    lines.extend(f"• {example}" for example in usage_examples())
    lines.extend(
        [
            "",
            "Commands:",
            "/balance [token] - wallet balances",
            "/contacts - list contacts",
            "/addcontact <name> <address>",
            "/editcontact <id> name=<name> address=<address>",
            "/delcontact <id>",
            "/network - connected chain",
            "/confirm or /cancel - answer a pending transfer",
        ]
    )
    return "\n".join(lines)


async def start(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    text = "👋 Welcome! " + _help_text()
    await update.message.reply_text(text, parse_mode=None)


async def help_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    await update.message.reply_text(_help_text(), parse_mode=None)


async def balance_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    ctx = get_ctx(context)
    token = context.args[0] if context.args else None
    response = await ctx.orchestrator.check_balance(token)
    await send_response(update, response)


async def contacts_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    ctx = get_ctx(context)
    await send_response(update, await ctx.orchestrator.list_contacts())


async def add_contact_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    args = context.args or []
    if len(args) != 2:
        await update.message.reply_text(
            "Usage: /addcontact <name> <address>", parse_mode=None
        )
        return
    ctx = get_ctx(context)
    await send_response(update, await ctx.orchestrator.add_contact(args[0], args[1]))


def parse_edit_args(args: List[str]) -> Tuple[Optional[int], Dict[str, str]]:
    """Split ``["3", "name=bob", "address=0x..."]`` into an id and field map."""
    if not args:
        return None, {}
    try:
        contact_id = int(args[0])
    except ValueError:
        return None, {}

    fields: Dict[str, str] = {}
    for item in args[1:]:
        key, sep, value = item.partition("=")
        key = key.strip().lower()
        if sep and key in ("name", "address") and value.strip():
            fields[key] = value.strip()
    return contact_id, fields


async def edit_contact_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    contact_id, fields = parse_edit_args(context.args or [])
    if contact_id is None or not fields:
        await update.message.reply_text(
            "Usage: /editcontact <id> name=<name> address=<address>", parse_mode=None
        )
        return
    ctx = get_ctx(context)
    response = await ctx.orchestrator.update_contact(contact_id, **fields)
    await send_response(update, response)


async def delete_contact_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    args = context.args or []
    if len(args) != 1 or not args[0].isdigit():
        await update.message.reply_text("Usage: /delcontact <id>", parse_mode=None)
        return
    ctx = get_ctx(context)
    await send_response(update, await ctx.orchestrator.remove_contact(int(args[0])))


async def network_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    ctx = get_ctx(context)
    try:
        info = await ctx.orchestrator.network_info()
    except PaybotError as exc:
        await update.message.reply_text(f"❌ {exc}", parse_mode=None)
        return
    await update.message.reply_text(
        f"Connected to {info.name} (chain id {info.chain_id}).\n"
        f"Wallet: {ctx.orchestrator.executor.wallet_address}",
        parse_mode=None,
    )


async def confirm_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    pending: SendCommand | None = context.user_data.pop(PENDING_KEY, None)
    if pending is None:
        await update.message.reply_text("Nothing to confirm.", parse_mode=None)
        return
    await run_command(update, context, pending)


async def cancel_command(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    pending = context.user_data.pop(PENDING_KEY, None)
    text = f"Cancelled: {describe(pending)}" if pending else "Nothing to cancel."
    await update.message.reply_text(text, parse_mode=None)


async def natural_language_handler(update: Update, context: CallbackContext) -> None:
    if not await ensure_user(update, context):
        return
    if not rate_limit(update, context):
        return

    command = parse(update.message.text)
    if isinstance(command, SendCommand):
        context.user_data[PENDING_KEY] = command
        prompt = (
            f"*{escape_markdown(describe(command))}?*\n\n"
            f"{escape_markdown('Reply /confirm to send or /cancel to abort.')}"
        )
        await reply_markdown(update, append_testnet_notice(prompt))
        return

    await run_command(update, context, command)


async def run_command(
    update: Update, context: CallbackContext, command: ParsedCommand
) -> None:
    """Execute a parsed command and reply with the formatted outcome."""
    ctx = get_ctx(context)
    user_id = update.effective_user.id if update.effective_user else None
    bind_context(user_id=user_id)

    if update.effective_chat:
        await context.bot.send_chat_action(
            chat_id=update.effective_chat.id, action=constants.ChatAction.TYPING
        )

    try:
        response = await ctx.orchestrator.run(command)
    except Exception as exc:
        logger.error("command_execution_failed", error=str(exc))
        await update.message.reply_text(f"Command error: {exc}", parse_mode=None)
        return
    finally:
        clear_context()

    await send_response(update, response)
