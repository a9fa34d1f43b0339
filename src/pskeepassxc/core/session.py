import logging
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import click

from .config import InvalidCredentialHandler, InvalidCredentialPolicy, Settings
from .credentials import CredentialStore
from .executable import find_executable
from .models import Connection, Entry, ListingResult
from ..integrations import ConfigurationError, CredentialError, NotConnectedError
from ..integrations.keepassxc import KeePassXCIntegration

logger = logging.getLogger(__name__)

SecretPrompt = Callable[[str], str]


def prompt_for_secret(database_path: str) -> str:
    """Ask for the database password on the terminal."""
    return click.prompt(f"Password for {database_path}", hide_input=True)


class Session:
    """Holds the connection established by the most recent successful connect.

    A session is created by the caller and passed around explicitly; the CLI
    keeps one on its application object for the lifetime of a command.
    """

    def __init__(self, settings: Optional[Settings] = None, prompt: Optional[SecretPrompt] = None):
        """Initialize the session.

        Args:
            settings: Defaults for paths and the invalid credential policy;
                read from PSKEEPASSXC_* environment variables if omitted
            prompt: Called with the database path when a secret must be typed in
        """
        self.settings = settings or Settings.from_env()
        self.prompt = prompt or prompt_for_secret
        self._current: Optional[Connection] = None

    @property
    def current(self) -> Optional[Connection]:
        """The last established connection, or None."""
        return self._current

    def require_connection(self) -> Connection:
        if self._current is None or not self._current.connected:
            raise NotConnectedError("Not connected to a KeePassXC database. Run connect first.")
        return self._current

    def _should_regenerate(self, error: CredentialError, policy: InvalidCredentialHandler) -> bool:
        if callable(policy) and not isinstance(policy, InvalidCredentialPolicy):
            return bool(policy(error))
        return InvalidCredentialPolicy(policy) is InvalidCredentialPolicy.REGENERATE

    def _resolve_secret(
        self,
        store: CredentialStore,
        database_path: Path,
        force_new_credential: bool,
        on_invalid_credential: InvalidCredentialHandler,
    ) -> Tuple[str, bool]:
        """Return (secret, needs_saving)."""
        if store.exists() and not force_new_credential:
            try:
                return store.load(), False
            except CredentialError as e:
                if not self._should_regenerate(e, on_invalid_credential):
                    raise
                logger.warning(f"Discarding unreadable credential: {e}")
                store.delete()

        secret = self.prompt(str(database_path))
        if not secret:
            raise CredentialError("An empty password cannot unlock the database")
        return secret, True

    def connect(
        self,
        database_path: Optional[Union[str, Path]] = None,
        keyfile_path: Optional[Union[str, Path]] = None,
        credential_path: Optional[Union[str, Path]] = None,
        secret: Optional[str] = None,
        force_new_credential: bool = False,
        executable: Optional[str] = None,
        on_invalid_credential: Optional[InvalidCredentialHandler] = None,
    ) -> Connection:
        """Resolve the secret and executable, then validate them against the database.

        Args:
            database_path: Path to the .kdbx database
            keyfile_path: Optional key file
            credential_path: Credential file location; per-OS default if omitted
            secret: Explicit database password; skips the credential file
            force_new_credential: Ignore a stored credential and prompt for a new one
            executable: Explicit keepassxc-cli location
            on_invalid_credential: Policy when the stored credential is unreadable

        Returns:
            The new connection, also available as ``session.current``

        Raises:
            ConfigurationError: Executable or paths not found
            CredentialError: No usable secret could be obtained
            AuthenticationError: keepassxc-cli rejected the secret
        """
        settings = self.settings
        database_path = database_path or settings.database_path
        if not database_path:
            raise ConfigurationError("No database path given")
        database_path = Path(database_path).expanduser()
        keyfile = keyfile_path or settings.keyfile_path
        keyfile = Path(keyfile).expanduser() if keyfile else None
        policy = on_invalid_credential or settings.on_invalid_credential

        store = CredentialStore(credential_path or settings.credential_path)

        needs_saving = False
        if not secret:
            secret, needs_saving = self._resolve_secret(store, database_path, force_new_credential, policy)

        integration = KeePassXCIntegration(
            executable=find_executable(executable or settings.executable),
            database_path=database_path,
            keyfile_path=keyfile,
        )
        integration.connect(secret=secret)

        if needs_saving:
            store.save(secret)

        connection = Connection(
            executable=integration.executable,
            database_path=database_path,
            keyfile_path=keyfile,
            secret=secret,
            credential_path=store.path,
            connected=True,
        )
        del secret

        if self._current is not None and self._current is not connection:
            self._current.close()
        self._current = connection
        logger.info(f"Connected to {database_path}")
        return connection

    def disconnect(self) -> None:
        """Close and forget the current connection."""
        if self._current is not None:
            self._current.close()
        self._current = None

    def get_entry(
        self,
        name: Optional[str] = None,
        list_all: bool = False,
        connection: Optional[Connection] = None,
        database_path: Optional[Union[str, Path]] = None,
        keyfile_path: Optional[Union[str, Path]] = None,
    ) -> Union[Entry, ListingResult]:
        """Retrieve one entry by name, or every entry with ``list_all``.

        Args:
            name: Entry title or path
            list_all: Return a ListingResult of all entries
            connection: Connection to use; defaults to ``session.current``
            database_path: Override the connection's database
            keyfile_path: Override the connection's key file

        Raises:
            ValueError: Neither or both of name and list_all were given
            NotConnectedError: No connection available
            RetrievalError: keepassxc-cli failed
        """
        if bool(name) == bool(list_all):
            raise ValueError("Specify exactly one of name or list_all")

        if connection is None:
            connection = self.require_connection()
        elif not connection.connected:
            raise NotConnectedError("The given connection is closed")

        integration = KeePassXCIntegration(
            executable=connection.executable,
            database_path=Path(database_path) if database_path else connection.database_path,
            keyfile_path=Path(keyfile_path) if keyfile_path else connection.keyfile_path,
        )

        if list_all:
            return integration.list_entries(connection.secret)
        return integration.show_entry(connection.secret, name)
