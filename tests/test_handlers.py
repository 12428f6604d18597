import asyncio
from types import SimpleNamespace

import pytest
from telegram.error import BadRequest

from paybot.chain import NetworkInfo
from paybot.command_parser import ListContactsCommand, SendCommand
from paybot.handlers.commands import (
    PENDING_KEY,
    HandlerContext,
    cancel_command,
    confirm_command,
    edit_contact_command,
    ensure_user,
    natural_language_handler,
    network_command,
    parse_edit_args,
    reply_markdown,
    run_command,
)
from paybot.orchestrator import CommandResponse
from paybot.utils.rate_limit import RateLimiter

from conftest import WALLET


class DummyOrchestrator:
    def __init__(self, response: CommandResponse | None = None) -> None:
        self.response = response or CommandResponse(ok=True, message="done")
        self.commands = []
        self.updates = []
        self.executor = SimpleNamespace(wallet_address=WALLET)

    async def run(self, command):
        self.commands.append(command)
        return self.response

    async def update_contact(self, contact_id, name=None, address=None):
        self.updates.append((contact_id, name, address))
        return self.response

    async def network_info(self) -> NetworkInfo:
        return NetworkInfo(name="sepolia", chain_id=11155111)


class ExplodingOrchestrator(DummyOrchestrator):
    async def run(self, command):
        raise RuntimeError("boom")


class DummyMessage:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.calls = []

    async def reply_text(self, text: str, **kwargs) -> None:
        self.calls.append((text, kwargs))


class FailingMessage(DummyMessage):
    def __init__(self) -> None:
        super().__init__()
        self.failed_once = False

    async def reply_text(self, text: str, **kwargs) -> None:
        parse_mode = kwargs.get("parse_mode")
        if not self.failed_once and parse_mode == "MarkdownV2":
            self.failed_once = True
            raise BadRequest("invalid markdown")
        await super().reply_text(text, **kwargs)


class DummyBot:
    def __init__(self) -> None:
        self.actions = []

    async def send_chat_action(self, chat_id, action) -> None:
        self.actions.append((chat_id, action))


def make_update(message: DummyMessage, chat_id: int = 12345):
    return SimpleNamespace(
        message=message,
        effective_user=SimpleNamespace(id=12345),
        effective_chat=SimpleNamespace(id=chat_id),
    )


def make_context(orchestrator, args=None, allowed_chat_id=None, rate_limiter=None):
    return SimpleNamespace(
        args=args or [],
        bot=DummyBot(),
        user_data={},
        application=SimpleNamespace(
            bot_data={
                "ctx": HandlerContext(
                    orchestrator=orchestrator,
                    rate_limiter=rate_limiter,
                    allowed_chat_id=allowed_chat_id,
                )
            }
        ),
    )


@pytest.mark.asyncio
async def test_send_request_is_held_for_confirmation() -> None:
    orchestrator = DummyOrchestrator()
    message = DummyMessage("send 5 USDC to alice")
    context = make_context(orchestrator)

    await natural_language_handler(make_update(message), context)

    assert orchestrator.commands == []
    assert context.user_data[PENDING_KEY] == SendCommand("5", "USDC", "alice")
    text, kwargs = message.calls[0]
    assert "/confirm" in text
    assert "Test network only" in text
    assert kwargs["parse_mode"] == "MarkdownV2"


@pytest.mark.asyncio
async def test_confirm_runs_pending_transfer() -> None:
    orchestrator = DummyOrchestrator(
        CommandResponse(ok=True, message="Successfully sent 5 USDC to alice")
    )
    message = DummyMessage()
    context = make_context(orchestrator)
    pending = SendCommand("5", "USDC", "alice")
    context.user_data[PENDING_KEY] = pending

    await confirm_command(make_update(message), context)

    assert orchestrator.commands == [pending]
    assert PENDING_KEY not in context.user_data
    assert "Successfully sent 5 USDC to alice" in message.calls[-1][0]
    assert context.bot.actions


@pytest.mark.asyncio
async def test_confirm_without_pending() -> None:
    orchestrator = DummyOrchestrator()
    message = DummyMessage()

    await confirm_command(make_update(message), make_context(orchestrator))

    assert orchestrator.commands == []
    assert message.calls[0][0] == "Nothing to confirm."


@pytest.mark.asyncio
async def test_cancel_drops_pending() -> None:
    orchestrator = DummyOrchestrator()
    message = DummyMessage()
    context = make_context(orchestrator)
    context.user_data[PENDING_KEY] = SendCommand("5", "USDC", "alice")

    await cancel_command(make_update(message), context)

    assert PENDING_KEY not in context.user_data
    assert message.calls[0][0] == "Cancelled: Send 5 USDC to alice"
    assert orchestrator.commands == []


@pytest.mark.asyncio
async def test_other_commands_run_immediately() -> None:
    orchestrator = DummyOrchestrator()
    message = DummyMessage("list contacts")

    await natural_language_handler(make_update(message), make_context(orchestrator))

    assert orchestrator.commands == [ListContactsCommand()]


@pytest.mark.asyncio
async def test_ensure_user_rejects_other_chats() -> None:
    message = DummyMessage()
    context = make_context(DummyOrchestrator(), allowed_chat_id=999)

    allowed = await ensure_user(make_update(message, chat_id=12345), context)

    assert allowed is False
    assert "restricted" in message.calls[0][0]


@pytest.mark.asyncio
async def test_rate_limited_messages_are_not_run() -> None:
    orchestrator = DummyOrchestrator()
    context = make_context(orchestrator, rate_limiter=RateLimiter(limit_per_minute=1))

    blocked = DummyMessage("list contacts")

    await natural_language_handler(make_update(DummyMessage("list contacts")), context)
    await natural_language_handler(make_update(blocked), context)
    await asyncio.sleep(0)

    assert len(orchestrator.commands) == 1
    assert blocked.calls[0][0].startswith("Slow down")


@pytest.mark.asyncio
async def test_markdown_fallback_to_plain_text() -> None:
    message = FailingMessage()

    await reply_markdown(make_update(message), "*Sent 1\\.5 ETH*")

    assert len(message.calls) == 1
    text, kwargs = message.calls[0]
    assert text == "Sent 1.5 ETH"
    assert kwargs["parse_mode"] is None


@pytest.mark.asyncio
async def test_run_command_reports_unexpected_errors() -> None:
    message = DummyMessage()
    context = make_context(ExplodingOrchestrator())

    await run_command(make_update(message), context, ListContactsCommand())

    assert message.calls[0][0] == "Command error: boom"


@pytest.mark.asyncio
async def test_failure_response_is_rendered() -> None:
    orchestrator = DummyOrchestrator(
        CommandResponse(ok=False, error='Contact "zed" not found', not_found=True)
    )
    message = DummyMessage()

    await run_command(make_update(message), make_context(orchestrator), ListContactsCommand())

    assert 'Contact "zed" not found' in message.calls[0][0]


def test_parse_edit_args() -> None:
    assert parse_edit_args(["3", "name=bob", "address=0xabc"]) == (
        3,
        {"name": "bob", "address": "0xabc"},
    )
    assert parse_edit_args(["3", "colour=red", "name="]) == (3, {})
    assert parse_edit_args(["x", "name=bob"]) == (None, {})
    assert parse_edit_args([]) == (None, {})


@pytest.mark.asyncio
async def test_edit_contact_usage_and_dispatch() -> None:
    orchestrator = DummyOrchestrator()
    message = DummyMessage()

    await edit_contact_command(make_update(message), make_context(orchestrator, args=["3"]))
    assert message.calls[0][0].startswith("Usage: /editcontact")

    await edit_contact_command(
        make_update(message), make_context(orchestrator, args=["3", "name=Bob"])
    )
    assert orchestrator.updates == [(3, "Bob", None)]


@pytest.mark.asyncio
async def test_network_command_shows_wallet() -> None:
    message = DummyMessage()

    await network_command(make_update(message), make_context(DummyOrchestrator()))

    assert "sepolia" in message.calls[0][0]
    assert WALLET in message.calls[0][0]
