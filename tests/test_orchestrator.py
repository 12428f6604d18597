"""End-to-end command flows against a fake chain and a real sqlite directory."""

import pytest

from paybot.errors import USAGE_SUGGESTION
from paybot.orchestrator import CommandOrchestrator

from conftest import ALICE, BOB, MTK_ADDRESS, TX_HASH, USDC_ADDRESS, WALLET


@pytest.mark.asyncio
async def test_send_to_contact(orchestrator, directory, chain):
    await directory.add("alice", ALICE)
    chain.token_balances[USDC_ADDRESS] = 10_000_000

    response = await orchestrator.execute("Send 5 USDC to Alice")

    assert response.ok
    assert response.message == "Successfully sent 5 USDC to alice"
    assert chain.sent[0].args == [ALICE, 5_000_000]

    payload = response.to_payload()
    assert payload["success"] is True
    assert payload["transaction"] == {
        "tx_hash": TX_HASH,
        "from_address": WALLET,
        "to_address": ALICE,
        "amount": "5",
        "token": "USDC",
        "block_number": 123,
        "network": "testnet",
    }


@pytest.mark.asyncio
async def test_send_to_unknown_contact(orchestrator, chain):
    response = await orchestrator.execute("send 5 USDC to Zed")

    assert not response.ok
    assert response.not_found
    assert response.error == 'Contact "Zed" not found'
    assert "Zed" in response.suggestion
    assert chain.sent == []
    assert chain.calls == []


@pytest.mark.asyncio
async def test_unrecognized_command(orchestrator):
    response = await orchestrator.execute("make me a sandwich")

    assert response.to_payload() == {
        "error": "Invalid command format",
        "suggestion": USAGE_SUGGESTION,
    }


@pytest.mark.asyncio
async def test_send_failures_become_responses(orchestrator, directory, chain):
    await directory.add("bob", BOB)
    chain.token_balances[USDC_ADDRESS] = 1

    insufficient = await orchestrator.execute("send 5 USDC to bob")
    unsupported = await orchestrator.execute("send 1 FOO to bob")

    assert insufficient.error == "Insufficient USDC balance"
    assert unsupported.error == "Unsupported token: FOO"
    assert chain.sent == []


@pytest.mark.asyncio
async def test_check_all_balances(orchestrator, chain):
    chain.token_balances[USDC_ADDRESS] = 3_000_000
    chain.failing_contracts.add(MTK_ADDRESS)

    response = await orchestrator.execute("check my balance")

    assert response.ok
    assert [b.token for b in response.balances] == ["ETH", "MTK", "USDC", "DAI", "USDT"]
    by_token = {b.token: b for b in response.balances}
    assert by_token["USDC"].balance == "3"
    assert by_token["MTK"].balance == "0"
    assert by_token["MTK"].error

    payload = response.to_payload()
    assert len(payload["balances"]) == 5
    assert "error" in payload["balances"][1]
    assert "error" not in payload["balances"][0]


@pytest.mark.asyncio
async def test_check_single_balance(orchestrator, chain):
    chain.token_balances[USDC_ADDRESS] = 1_500_000

    response = await orchestrator.execute("show balance of usdc")

    assert response.message == "USDC balance"
    assert [(b.token, b.balance) for b in response.balances] == [("USDC", "1.5")]


@pytest.mark.asyncio
async def test_default_symbols_are_configurable(directory, executor, registry):
    orchestrator = CommandOrchestrator(
        directory, executor, registry, default_symbols=["ETH", "DAI"]
    )
    response = await orchestrator.check_balance()
    assert [b.token for b in response.balances] == ["ETH", "DAI"]


@pytest.mark.asyncio
async def test_add_and_list_contacts(orchestrator):
    added = await orchestrator.execute(f"add contact Bob {BOB}")
    duplicate = await orchestrator.execute(f"add contact bob {ALICE}")
    listed = await orchestrator.execute("list contacts")

    assert added.ok
    assert added.contact.name == "bob"
    assert added.to_payload()["contact"]["address"] == BOB
    assert duplicate.error == 'Contact with name "bob" already exists'
    assert [c.name for c in listed.contacts] == ["bob"]


@pytest.mark.asyncio
async def test_list_contacts_empty(orchestrator):
    response = await orchestrator.list_contacts()
    assert response.ok
    assert response.contacts == []
    assert response.message == "No contacts saved yet"


@pytest.mark.asyncio
async def test_add_contact_requires_fields(orchestrator):
    response = await orchestrator.add_contact("", BOB)
    assert not response.ok
    assert response.error == "Name and address are required"


@pytest.mark.asyncio
async def test_update_and_remove_contact(orchestrator, directory):
    contact = await directory.add("alice", ALICE)

    updated = await orchestrator.update_contact(contact.id, address=BOB)
    missing = await orchestrator.update_contact(999, name="zed")
    removed = await orchestrator.remove_contact(contact.id)
    removed_again = await orchestrator.remove_contact(contact.id)

    assert updated.contact.address == BOB
    assert missing.not_found
    assert removed.ok
    assert removed_again.error == "Contact not found"


@pytest.mark.asyncio
async def test_preview_does_not_execute(orchestrator, chain):
    command, description = orchestrator.preview("send 1 eth to alice")

    assert command.token == "ETH"
    assert description == "Send 1 ETH to alice"
    assert chain.sent == []


@pytest.mark.asyncio
async def test_network_info(orchestrator):
    info = await orchestrator.network_info()
    assert info.name == "sepolia"
    assert info.chain_id == 11155111


@pytest.mark.asyncio
async def test_balance_of_unknown_token_is_an_error(orchestrator, chain):
    response = await orchestrator.execute("check balance of foo")

    assert not response.ok
    assert response.error == "Unsupported token: FOO"
    assert chain.calls == []


@pytest.mark.asyncio
async def test_balance_of_all_means_default_set(orchestrator, chain):
    chain.token_balances[USDC_ADDRESS] = 2_000_000

    for token in ("all", "ALL"):
        response = await orchestrator.check_balance(token)

        assert response.ok
        assert [b.token for b in response.balances] == ["ETH", "MTK", "USDC", "DAI", "USDT"]
