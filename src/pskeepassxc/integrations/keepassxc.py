"""KeePassXC integration for pskeepassxc.

All database access goes through the ``keepassxc-cli`` executable. The secret
is written to the tool's standard input; it never appears on the command line.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from ..core.models import Entry, ListingResult
from ..core.parser import find_error_marker, parse_listing_output, parse_show_output, strip_show_fields
from . import AuthenticationError, BaseIntegration, ConfigurationError, RetrievalError

logger = logging.getLogger(__name__)


class KeePassXCIntegration(BaseIntegration):
    """Integration with the KeePassXC command-line tool."""

    def __init__(self, executable: str, database_path: Path, keyfile_path: Optional[Path] = None):
        """Initialize the KeePassXC integration.

        Args:
            executable: Path to keepassxc-cli
            database_path: Path to the KeePassXC database file (.kdbx)
            keyfile_path: Path to the key file (if used)
        """
        super().__init__()
        self.executable = executable
        self.database_path = Path(database_path)
        self.keyfile_path = Path(keyfile_path) if keyfile_path else None

    def validate_paths(self) -> None:
        """Check that the database and key file exist on disk."""
        if not self.database_path.is_file():
            raise ConfigurationError(f"KeePassXC database file not found: {self.database_path}")
        if self.keyfile_path and not self.keyfile_path.is_file():
            raise ConfigurationError(f"Key file not found: {self.keyfile_path}")

    def _build_command(self, operation: str, *args: str, target: Optional[str] = None) -> List[str]:
        cmd = [self.executable, operation, "-q", *args]
        if self.keyfile_path:
            cmd.extend(["-k", str(self.keyfile_path)])
        cmd.append(str(self.database_path))
        if target is not None:
            cmd.append(target)
        return cmd

    def _run_command(self, cmd: List[str], secret: str) -> subprocess.CompletedProcess:
        """Run keepassxc-cli with the secret on stdin."""
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(
                cmd,
                input=secret + "\n",
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(f"keepassxc-cli could not be started: {e}")
        except PermissionError as e:
            raise ConfigurationError(f"keepassxc-cli is not executable: {e}")

    @staticmethod
    def combined_output(result: subprocess.CompletedProcess) -> str:
        """stdout followed by stderr, unmodified."""
        return (result.stdout or "") + (result.stderr or "")

    def connect(self, secret: str = "", **kwargs) -> bool:
        """Confirm that the secret unlocks the database.

        Returns:
            bool: True if keepassxc-cli accepted the secret

        Raises:
            AuthenticationError: If keepassxc-cli exits with a non-zero code
        """
        self.validate_paths()
        result = self._run_command(self._build_command("ls"), secret)
        if result.returncode != 0:
            output = self.combined_output(result)
            logger.error(f"KeePassXC unlock failed: {output.strip()}")
            raise AuthenticationError(
                f"Failed to unlock {self.database_path}: {output.strip()}",
                output=output,
                returncode=result.returncode,
            )
        self.connected = True
        return True

    def show_entry(self, secret: str, name: str) -> Entry:
        """Retrieve a single entry by title or path.

        Raises:
            RetrievalError: If keepassxc-cli fails or reports an error
        """
        result = self._run_command(self._build_command("show", "-s", target=name), secret)
        output = self.combined_output(result)
        if result.returncode != 0:
            raise RetrievalError(
                f"keepassxc-cli show failed for '{name}': {output.strip()}",
                output=output,
                returncode=result.returncode,
            )

        # Field values may quote error text; only unlabelled lines count.
        marker = find_error_marker(result.stderr or "") or find_error_marker(
            strip_show_fields(result.stdout or "")
        )
        if marker:
            raise RetrievalError(
                f"keepassxc-cli reported an error for '{name}': {marker}",
                output=output,
                returncode=result.returncode,
            )

        return parse_show_output(result.stdout or "")

    def list_entries(self, secret: str) -> ListingResult:
        """List every entry in the database, recursively and flattened.

        Raises:
            RetrievalError: If keepassxc-cli exits with a non-zero code
        """
        result = self._run_command(self._build_command("ls", "-R", "-f"), secret)
        if result.returncode != 0:
            output = self.combined_output(result)
            raise RetrievalError(
                f"keepassxc-cli ls failed: {output.strip()}",
                output=output,
                returncode=result.returncode,
            )
        return parse_listing_output(result.stdout or "")
