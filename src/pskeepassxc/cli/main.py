"""
pskeepassxc CLI - Command Line Interface for KeePassXC databases.
"""
import sys
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from . import KeePassXCCLI, print_entry, print_listing
from ..core.config import ENV_PREFIX, InvalidCredentialPolicy, Settings
from ..core.credentials import CredentialStore, default_credential_path
from ..core.executable import find_executable
from ..integrations import ConfigurationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger("pskeepassxc")

# Create console for rich output
console = Console()

_path_type = click.Path(dir_okay=False, path_type=Path)


@click.group(invoke_without_command=True)
@click.option(
    "--database",
    "-d",
    type=_path_type,
    envvar=f"{ENV_PREFIX}DATABASE",
    help="KeePassXC database file (.kdbx)"
)
@click.option(
    "--keyfile",
    "-k",
    type=_path_type,
    envvar=f"{ENV_PREFIX}KEYFILE",
    help="Key file for the database"
)
@click.option(
    "--credential-file",
    type=_path_type,
    envvar=f"{ENV_PREFIX}CREDENTIAL_FILE",
    help="Where the database password is stored (per-OS default if omitted)"
)
@click.option(
    "--executable",
    envvar=f"{ENV_PREFIX}EXECUTABLE",
    help="Path to keepassxc-cli"
)
@click.option(
    "--on-invalid-credential",
    type=click.Choice([p.value for p in InvalidCredentialPolicy], case_sensitive=False),
    envvar=f"{ENV_PREFIX}ON_INVALID_CREDENTIAL",
    default=InvalidCredentialPolicy.ABORT.value,
    help="What to do when the stored password cannot be decrypted",
    show_default=True
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug output",
    show_default=True
)
@click.pass_context
def cli(
    ctx: click.Context,
    database: Optional[Path],
    keyfile: Optional[Path],
    credential_file: Optional[Path],
    executable: Optional[str],
    on_invalid_credential: str,
    debug: bool,
) -> None:
    """pskeepassxc - read KeePassXC databases through keepassxc-cli."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled")

    settings = Settings(
        database_path=database,
        keyfile_path=keyfile,
        credential_path=credential_file,
        executable=executable,
        on_invalid_credential=InvalidCredentialPolicy(on_invalid_credential.lower()),
    )
    ctx.obj = KeePassXCCLI(settings=settings, debug=debug)

    # If no command is provided, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option(
    "--password",
    help="Database password (stored credential or prompt if not provided)",
    default=None
)
@click.option(
    "--force-new-credential",
    is_flag=True,
    default=False,
    help="Ignore the stored password and ask for a new one"
)
@click.pass_obj
def connect(cli: KeePassXCCLI, password: Optional[str], force_new_credential: bool) -> None:
    """Check that the database can be unlocked."""
    try:
        cli.connect(secret=password, force_new_credential=force_new_credential)
        connection = cli.session.current
        console.print(f"[green]✓[/] Connected to [bold]{connection.database_path}[/bold]")
    except click.ClickException as e:
        console.print(f"[red]✗[/] {e.message}")
        sys.exit(1)


@cli.command()
@click.pass_obj
def status(cli: KeePassXCCLI) -> None:
    """Show how the executable, database and credential file resolve."""
    settings = cli.settings
    try:
        exe = find_executable(settings.executable)
    except ConfigurationError as e:
        exe = f"[red]{e}[/]"
    credential_path = settings.credential_path or default_credential_path()
    store = CredentialStore(credential_path)

    console.print(f"[bold]Executable:[/bold] {exe}")
    console.print(f"[bold]Database:[/bold] {settings.database_path or '[yellow]not set[/]'}")
    if settings.keyfile_path:
        console.print(f"[bold]Key file:[/bold] {settings.keyfile_path}")
    stored = "[green]stored[/]" if store.exists() else "[yellow]none[/]"
    console.print(f"[bold]Credential:[/bold] {store.path} ({stored})")


@cli.command()
@click.argument("name")
@click.option("--reveal", is_flag=True, default=False, help="Print the password in clear text")
@click.pass_obj
def show(cli: KeePassXCCLI, name: str, reveal: bool) -> None:
    """Show details for a single entry."""
    try:
        entry = cli.get_entry(name)
        print_entry(entry, reveal=reveal)
    except click.ClickException as e:
        console.print(f"[red]✗[/] {e.message}")
        sys.exit(1)


@cli.command(name="list")
@click.option(
    "--search",
    "-s",
    help="Filter entries by title or group"
)
@click.pass_obj
def list_(cli: KeePassXCCLI, search: Optional[str]) -> None:
    """List all entries in the database."""
    try:
        result = cli.list_entries(search)
        print_listing(result)
    except click.ClickException as e:
        console.print(f"[red]✗[/] {e.message}")
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.pass_obj
def copy_username(cli: KeePassXCCLI, name: str) -> None:
    """Copy an entry's username to the clipboard."""
    try:
        entry = cli.get_entry(name)

        import pyperclip
        pyperclip.copy(entry.username)

        console.print(f"[green]✓[/] Copied username for [bold]{entry.title}[/] to clipboard")

    except (click.ClickException, RuntimeError) as e:
        console.print(f"[red]✗[/] Failed to copy username: {e}")
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.pass_obj
def copy_password(cli: KeePassXCCLI, name: str) -> None:
    """Copy an entry's password to the clipboard."""
    try:
        entry = cli.get_entry(name)

        import pyperclip
        pyperclip.copy(entry.password)

        console.print(f"[green]✓[/] Copied password for [bold]{entry.title}[/] to clipboard")

    except (click.ClickException, RuntimeError) as e:
        console.print(f"[red]✗[/] Failed to copy password: {e}")
        sys.exit(1)


@cli.command()
@click.argument("output_file", type=click.Path())
@click.pass_obj
def export(cli: KeePassXCCLI, output_file: str) -> None:
    """Export the entry listing (without passwords) to a JSON file."""
    try:
        count = cli.export_entries(output_file)
        console.print(f"[green]✓[/] Exported {count} entries to {output_file}")
    except click.ClickException as e:
        console.print(f"[red]✗[/] {e.message}")
        sys.exit(1)


@cli.command()
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation")
@click.pass_obj
def forget(cli: KeePassXCCLI, yes: bool) -> None:
    """Delete the stored database password."""
    store = CredentialStore(cli.settings.credential_path)
    if not store.exists():
        console.print(f"[yellow]No stored credential at {store.path}[/]")
        return
    if yes or click.confirm(f"Delete the stored credential at {store.path}?"):
        store.delete()
        console.print(f"[green]✓[/] Removed {store.path}")


def main() -> None:
    """Entry point for the pskeepassxc console script."""
    cli()


if __name__ == "__main__":
    main()
