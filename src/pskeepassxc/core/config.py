"""Runtime configuration for pskeepassxc.

Every setting can come from the environment:
- PSKEEPASSXC_DATABASE
- PSKEEPASSXC_KEYFILE
- PSKEEPASSXC_CREDENTIAL_FILE
- PSKEEPASSXC_EXECUTABLE
- PSKEEPASSXC_ON_INVALID_CREDENTIAL (regenerate | abort)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

ENV_PREFIX = "PSKEEPASSXC_"


class InvalidCredentialPolicy(str, Enum):
    REGENERATE = "regenerate"
    ABORT = "abort"


# A callable receives the CredentialError and returns True to regenerate.
InvalidCredentialHandler = Union[InvalidCredentialPolicy, Callable[[Exception], bool]]


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value).expanduser()


@dataclass
class Settings:
    database_path: Optional[Path] = None
    keyfile_path: Optional[Path] = None
    credential_path: Optional[Path] = None
    executable: Optional[str] = None
    on_invalid_credential: InvalidCredentialHandler = InvalidCredentialPolicy.ABORT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        policy = env.get(f"{ENV_PREFIX}ON_INVALID_CREDENTIAL", InvalidCredentialPolicy.ABORT.value)
        try:
            on_invalid = InvalidCredentialPolicy(policy.strip().lower())
        except ValueError as exc:
            raise ValueError(
                f"{ENV_PREFIX}ON_INVALID_CREDENTIAL must be one of: "
                + ", ".join(p.value for p in InvalidCredentialPolicy)
            ) from exc
        return cls(
            database_path=_optional_path(env.get(f"{ENV_PREFIX}DATABASE")),
            keyfile_path=_optional_path(env.get(f"{ENV_PREFIX}KEYFILE")),
            credential_path=_optional_path(env.get(f"{ENV_PREFIX}CREDENTIAL_FILE")),
            executable=env.get(f"{ENV_PREFIX}EXECUTABLE") or None,
            on_invalid_credential=on_invalid,
        )


__all__ = ["Settings", "InvalidCredentialPolicy", "InvalidCredentialHandler", "ENV_PREFIX"]
