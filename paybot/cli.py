"""CLI interface for paybot.

Run wallet commands from the command line without Telegram.

Usage:
    python -m paybot.cli "send 5 USDC to alice"
    python -m paybot.cli --interactive
    python -m paybot.cli --output json "check my balance"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

from paybot.cli_output import CLIOutput, OutputFormat
from paybot.command_parser import SendCommand, usage_examples
from paybot.config import load_settings
from paybot.errors import PaybotError
from paybot.orchestrator import CommandOrchestrator
from paybot.utils.logging import configure_logging, get_logger
from paybot.wiring import build_services

logger = get_logger(__name__)

HELP_COMMANDS = "Commands: /quit, /help, /contacts, /balance [token], /network"


async def run_single_query(
    orchestrator: CommandOrchestrator,
    query: str,
    output: CLIOutput,
    assume_yes: bool = False,
) -> bool:
    """Execute one command; returns True if it succeeded."""
    command, description = orchestrator.preview(query)
    output.debug("parsed", data=repr(command))

    if isinstance(command, SendCommand) and not assume_yes:
        if not output.confirm(description):
            output.info("Cancelled.")
            return False

    if isinstance(command, SendCommand):
        output.status(f"{description} (waiting for confirmation on chain)")

    response = await orchestrator.run(command)
    output.response(response)
    return response.ok


async def run_interactive(
    orchestrator: CommandOrchestrator,
    output: CLIOutput,
    assume_yes: bool = False,
) -> None:
    """Run interactive REPL session."""
    output.info("paybot CLI - Interactive Mode")
    output.info("Type commands, or use /quit to exit, /help for examples")
    output.info("-" * 50)

    while True:
        try:
            query = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            output.info("\nGoodbye!")
            break

        if not query:
            continue

        if query.startswith("/"):
            cmd, _, arg = query.partition(" ")
            cmd = cmd.lower()
            arg = arg.strip()
            if cmd in ("/quit", "/exit", "/q"):
                output.info("Goodbye!")
                break
            elif cmd in ("/help", "/h"):
                output.info(HELP_COMMANDS)
                output.info(f"Tokens: {', '.join(orchestrator.registry.symbols())}")
                for example in usage_examples():
                    output.info(f"  {example}")
                continue
            elif cmd == "/contacts":
                output.response(await orchestrator.list_contacts())
                continue
            elif cmd == "/balance":
                output.response(await orchestrator.check_balance(arg or None))
                continue
            elif cmd == "/network":
                try:
                    info = await orchestrator.network_info()
                except PaybotError as exc:
                    output.error(str(exc))
                    continue
                output.info(f"{info.name} (chain id {info.chain_id})")
                continue
            else:
                output.warning(f"Unknown command: {query}")
                continue

        try:
            await run_single_query(orchestrator, query, output, assume_yes=assume_yes)
        except Exception as exc:
            logger.error("cli_command_failed", error=str(exc))
            output.error(f"Error: {exc}")


async def main() -> int:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="paybot CLI - send test-network tokens to saved contacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m paybot.cli "send 5 USDC to alice"
  python -m paybot.cli "add contact alice 0x..."
  python -m paybot.cli --interactive
  python -m paybot.cli --output json "check my balance"
        """,
    )

    parser.add_argument(
        "query",
        nargs="?",
        help="Command text (e.g., 'send 5 USDC to alice')",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Start interactive REPL mode",
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=["text", "json", "rich"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug information",
    )
    parser.add_argument(
        "--stdin",
        action="store_true",
        help="Read the command from stdin",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Send transfers without asking for confirmation",
    )

    args = parser.parse_args()

    try:
        output_format = OutputFormat(args.output)
    except ValueError:
        output_format = OutputFormat.TEXT

    output = CLIOutput(format=output_format, verbose=args.verbose)

    if not args.interactive and not args.query and not args.stdin:
        parser.print_help()
        return 1

    query: Optional[str] = args.query
    if args.stdin:
        query = sys.stdin.read().strip()
        if not query:
            output.error("No command provided via stdin")
            return 1

    try:
        settings = load_settings()
    except Exception as exc:
        output.error(f"Failed to load settings: {exc}")
        output.info("Ensure .env file exists with RPC_URL and PRIVATE_KEY set")
        return 1

    # Logs stay off the console unless asked for, so output remains parseable.
    log_level = "DEBUG" if args.verbose else settings.log_level
    configure_logging(log_level, console=args.verbose)

    services = await build_services(settings)
    try:
        if args.interactive:
            await run_interactive(services.orchestrator, output, assume_yes=args.yes)
            return 0
        ok = await run_single_query(
            services.orchestrator, query, output, assume_yes=args.yes
        )
        return 0 if ok else 2
    except KeyboardInterrupt:
        output.info("\nInterrupted")
        return 130
    finally:
        await services.db.dispose()


def cli_main() -> None:
    """Synchronous wrapper for CLI entry."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli_main()
