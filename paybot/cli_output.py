"""CLI output formatting for terminal display.

Provides formatters for plain text, JSON, and rich terminal output. Text mode
reuses the Telegram renderer and strips the MarkdownV2 escapes; JSON mode
prints the same payload shape the command entry point returns.
"""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from paybot.orchestrator import CommandResponse
from paybot.utils.formatting import format_response, unescape_markdown


class OutputFormat(Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    RICH = "rich"


class CLIOutput:
    """Unified output handler for CLI."""

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TEXT,
        verbose: bool = False,
        stream: Any = None,
    ) -> None:
        self.format = format
        self.verbose = verbose
        self.stream = stream or sys.stdout
        self._rich_console: Optional[Console] = None
        if format == OutputFormat.RICH:
            self._rich_console = Console(file=self.stream)

    def response(self, response: CommandResponse) -> None:
        """Output an orchestrator response."""
        if self.format == OutputFormat.JSON:
            print(json.dumps(response.to_payload(), indent=2), file=self.stream)
        elif self.format == OutputFormat.RICH:
            self._rich_response(response)
        else:
            print(unescape_markdown(format_response(response)), file=self.stream)

    def _rich_response(self, response: CommandResponse) -> None:
        console = self._rich_console
        if not response.ok:
            body = response.error or "Command failed"
            if response.suggestion:
                body += f"\n{response.suggestion}"
            console.print(Panel(body, title="Error", border_style="red"))
            return

        if response.transaction is not None:
            tx = response.transaction
            table = Table(title=response.message, show_header=False)
            table.add_column("Field", style="cyan")
            table.add_column("Value")
            table.add_row("Amount", f"{tx.amount} {tx.token}")
            table.add_row("To", tx.to_address)
            table.add_row("From", tx.from_address)
            table.add_row("Tx hash", tx.tx_hash)
            table.add_row("Block", str(tx.block_number))
            table.add_row("Network", tx.network)
            console.print(table)
        elif response.balances:
            table = Table(title=response.message)
            table.add_column("Token", style="cyan")
            table.add_column("Balance", justify="right")
            table.add_column("Note", style="red")
            for entry in response.balances:
                table.add_row(entry.token, entry.balance, entry.error or "")
            console.print(table)
        elif response.contacts:
            table = Table(title=response.message)
            table.add_column("ID", style="dim")
            table.add_column("Name", style="cyan")
            table.add_column("Address")
            for contact in response.contacts:
                table.add_row(str(contact.id), contact.name, contact.address)
            console.print(table)
        else:
            console.print(Panel(response.message, border_style="green"))

    def confirm(self, description: str) -> bool:
        """Ask the user to approve a transfer. Returns False on EOF."""
        try:
            answer = input(f"{description}? [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    def status(self, message: str) -> None:
        """Output a status message."""
        if self.format == OutputFormat.JSON:
            return  # Suppress status in JSON mode

        if self._rich_console:
            self._rich_console.print(f"[dim]⏳ {message}[/dim]")
        else:
            print(f"⏳ {message}", file=self.stream)

    def info(self, message: str) -> None:
        """Output an info message."""
        if self.format == OutputFormat.JSON:
            return

        if self._rich_console:
            self._rich_console.print(f"[blue]{message}[/blue]")
        else:
            print(message, file=self.stream)

    def warning(self, message: str) -> None:
        if self.format == OutputFormat.JSON:
            print(json.dumps({"warning": message}), file=sys.stderr)
            return
        print(f"⚠️  {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        if self.format == OutputFormat.JSON:
            print(json.dumps({"error": message}), file=sys.stderr)
            return
        print(f"❌ {message}", file=sys.stderr)

    def debug(self, message: str, data: Any = None) -> None:
        """Output debug information (only in verbose mode)."""
        if not self.verbose:
            return

        if self.format == OutputFormat.JSON:
            output = {"debug": message}
            if data is not None:
                output["data"] = data
            print(json.dumps(output), file=sys.stderr)
            return

        print(f"🔍 {message}", file=sys.stderr)
        if data is not None:
            print(f"   {data}", file=sys.stderr)
