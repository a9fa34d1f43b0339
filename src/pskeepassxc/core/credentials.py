"""Stored database secret.

The secret is kept in a small JSON document encrypted with Fernet. The key is
derived from the current user, host and machine identifier, so a copied file
cannot be decrypted by another account or on another machine.
"""

from __future__ import annotations

import base64
import getpass
import json
import logging
import os
import platform
import uuid
from pathlib import Path
from typing import Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..integrations import CredentialError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "PSKeePassXC"
CREDENTIAL_FILE_NAME = "credential.json"
CREDENTIAL_VERSION = 1
KDF_ITERATIONS = 390000
SALT_BYTES = 16

_MACHINE_ID_FILES = [
    Path("/etc/machine-id"),
    Path("/var/lib/dbus/machine-id"),
]


def default_credential_path(
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return the per-OS credential file location."""
    system = (system or platform.system()).lower()
    env = os.environ if environ is None else environ
    home = home or Path.home()

    if system == "windows":
        base = Path(env["APPDATA"]) if env.get("APPDATA") else home / "AppData" / "Roaming"
    elif system == "darwin":
        base = home / "Library" / "Application Support"
    else:
        base = Path(env["XDG_CONFIG_HOME"]) if env.get("XDG_CONFIG_HOME") else home / ".config"
    return base / APP_DIR_NAME / CREDENTIAL_FILE_NAME


def _machine_id() -> str:
    for candidate in _MACHINE_ID_FILES:
        try:
            value = candidate.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return format(uuid.getnode(), "x")


def machine_binding() -> bytes:
    """Identity material the credential key is bound to."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = str(os.getuid()) if hasattr(os, "getuid") else ""
    return "|".join([user, platform.node(), _machine_id()]).encode("utf-8")


class CredentialStore:
    """Reads and writes the machine-bound secret at a single path."""

    def __init__(self, path: Optional[Path] = None, binding: Optional[bytes] = None):
        self.path = Path(path).expanduser() if path else default_credential_path()
        self._binding = binding

    def _key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=KDF_ITERATIONS,
        )
        binding = self._binding if self._binding is not None else machine_binding()
        return base64.urlsafe_b64encode(kdf.derive(binding))

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> str:
        """Decrypt and return the stored secret.

        Raises:
            CredentialError: If the file is missing, malformed, bound to a
                different user or machine, or holds an empty secret.
        """
        if not self.exists():
            raise CredentialError(f"Credential file not found: {self.path}")

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            if document.get("version") != CREDENTIAL_VERSION:
                raise CredentialError(
                    f"Unsupported credential file version: {document.get('version')}"
                )
            salt = base64.b64decode(document["salt"])
            token = document["token"].encode("ascii")
        except CredentialError:
            raise
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise CredentialError(f"Credential file is malformed: {self.path}: {e}")

        try:
            secret = Fernet(self._key(salt)).decrypt(token).decode("utf-8")
        except (InvalidToken, UnicodeDecodeError):
            raise CredentialError(
                f"Credential file cannot be decrypted by this user on this machine: {self.path}"
            )

        if not secret:
            raise CredentialError(f"Credential file holds an empty secret: {self.path}")
        return secret

    def save(self, secret: str) -> Path:
        """Encrypt and persist the secret, replacing any existing file."""
        if not secret:
            raise CredentialError("Refusing to store an empty secret")

        salt = os.urandom(SALT_BYTES)
        token = Fernet(self._key(salt)).encrypt(secret.encode("utf-8"))
        document = {
            "version": CREDENTIAL_VERSION,
            "salt": base64.b64encode(salt).decode("ascii"),
            "token": token.decode("ascii"),
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(document), encoding="utf-8")
        if os.name == "posix":
            os.chmod(self.path, 0o600)
        logger.info(f"Stored credential at {self.path}")
        return self.path

    def delete(self) -> bool:
        """Remove the credential file. Returns False if there was none."""
        if not self.exists():
            return False
        self.path.unlink()
        logger.info(f"Removed credential at {self.path}")
        return True


__all__ = [
    "CredentialStore",
    "default_credential_path",
    "machine_binding",
    "APP_DIR_NAME",
    "CREDENTIAL_FILE_NAME",
]
