"""
pskeepassxc CLI - Command Line Interface for KeePassXC databases.
"""
from typing import Optional, List
import logging
import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.markup import escape

from ..core.config import Settings
from ..core.models import Entry, ListingResult, ListingStatus
from ..core.session import Session
from ..integrations import IntegrationError

logger = logging.getLogger(__name__)

# Create console for rich output
console = Console()


class KeePassXCCLI:
    """Main CLI application for pskeepassxc."""

    def __init__(self, settings: Optional[Settings] = None, debug: bool = False):
        """Initialize the CLI."""
        self.settings = settings or Settings()
        self.debug = debug
        self.session = Session(settings=self.settings)

        if debug:
            logging.getLogger().setLevel(logging.DEBUG)
            logger.debug("Debug mode enabled")

    def _progress_spinner(self, description: str):
        """Create a progress spinner context manager."""
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True
        )
        progress.add_task(description, total=None)
        return progress

    def _fail(self, action: str, error: Exception) -> click.ClickException:
        if self.debug:
            logger.exception(f"Error while trying to {action}")
        return click.ClickException(f"Failed to {action}: {error}")

    def connect(self, secret: Optional[str] = None, force_new_credential: bool = False) -> None:
        """Connect to the configured database."""
        try:
            self.session.connect(secret=secret, force_new_credential=force_new_credential)
        except IntegrationError as e:
            raise self._fail("connect", e)

    def ensure_connected(self) -> None:
        """Connect with the stored credential unless already connected."""
        if self.session.current is None or not self.session.current.connected:
            self.connect()

    def get_entry(self, name: str) -> Entry:
        """Get a single entry by title or path."""
        self.ensure_connected()
        try:
            with self._progress_spinner(f"Reading {name}..."):
                return self.session.get_entry(name=name)
        except IntegrationError as e:
            raise self._fail(f"get entry '{name}'", e)

    def list_entries(self, search: Optional[str] = None) -> ListingResult:
        """List every entry, optionally filtered by a search term."""
        self.ensure_connected()
        try:
            with self._progress_spinner("Listing entries..."):
                result = self.session.get_entry(list_all=True)
        except IntegrationError as e:
            raise self._fail("list entries", e)

        if search and result.status is ListingStatus.OK:
            search = search.lower()
            result.entries = [
                e for e in result.entries
                if search in e.title.lower() or search in e.group.lower()
            ]
        return result

    def export_entries(self, output_file: str) -> int:
        """Export the listing to a JSON file. Returns the entry count."""
        result = self.list_entries()
        if result.status is ListingStatus.UNPARSED:
            raise click.ClickException("Could not parse keepassxc-cli output; nothing exported")

        output_path = Path(output_file).expanduser().resolve()
        try:
            data = [e.to_dict(include_password=False) for e in result.entries]
            output_path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise self._fail("export entries", e)
        return len(result.entries)


def print_entry(entry: Entry, reveal: bool = False) -> None:
    """Print the fields of a single entry."""
    console.print(f"[bold]Title:[/bold] {escape(entry.title)}")
    console.print(f"[bold]Username:[/bold] {escape(entry.username)}")
    if reveal:
        console.print(f"[bold]Password:[/bold] {escape(entry.password)}")
    else:
        console.print(f"[bold]Password:[/bold] {'*' * 12} (use --reveal or copy-password)")

    if entry.url:
        console.print(f"[bold]URL:[/bold] {escape(entry.url)}")
    if entry.notes:
        console.print("[bold]Notes:[/bold]")
        console.print(entry.notes, markup=False)
    if entry.tags:
        console.print(f"[bold]Tags:[/bold] {escape(entry.tags)}")
    if entry.uuid:
        console.print(f"[dim]Uuid: {escape(entry.uuid)}")


def print_entry_table(entries: List[Entry]) -> None:
    """Print a table of entries."""
    if not entries:
        console.print("[yellow]No entries found.[/]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Uuid", style="dim", width=8)
    table.add_column("Group")
    table.add_column("Title")

    for entry in entries:
        title = f"[blue]{escape(entry.title)}[/]" if entry.is_directory else escape(entry.title)
        table.add_row(escape(entry.uuid[:8]), escape(entry.group), title)

    console.print(table)


def print_listing(result: ListingResult) -> None:
    """Print a listing, falling back to raw lines when nothing parsed."""
    if result.status is ListingStatus.UNPARSED:
        console.print("[yellow]![/] Could not parse keepassxc-cli output, showing it as is:")
        for line in result.raw_lines:
            console.print(line, markup=False, highlight=False)
        return
    if result.status is ListingStatus.EMPTY:
        console.print("[yellow]The database has no entries.[/]")
        return
    print_entry_table(result.entries)
