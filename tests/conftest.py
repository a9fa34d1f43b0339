import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from pskeepassxc.core.config import Settings

DATABASE_PASSWORD = "correct horse battery staple"

SHOW_OUTPUT = """Title: MyBank
UserName: alice
Password: s3cret!
URL: https://bank.example
Notes: first line
second line
Uuid: {a1b2c3d4-0000-0000-0000-000000000001}
Tags: finance,important
"""

LISTING_OUTPUT = """Finance/
a1b2c3  Finance/Bank  MyBank
d4e5f6  Personal  Email Account
"""


class FakeKeePassXC:
    """Stands in for subprocess.run when keepassxc-cli would be invoked."""

    def __init__(self, password: str = DATABASE_PASSWORD) -> None:
        self.password = password
        self.calls: List[Tuple[List[str], Optional[str]]] = []
        self.responses: Dict[str, Tuple[int, str, str]] = {
            "ls": (0, "Finance/\nPersonal/\n", ""),
            "ls-R": (0, LISTING_OUTPUT, ""),
            "show": (0, SHOW_OUTPUT, ""),
        }

    def __call__(self, cmd, input=None, capture_output=True, text=True, check=False):  # type: ignore[no-untyped-def]
        self.calls.append((list(cmd), input))
        operation = cmd[1]
        if operation == "ls" and "-R" in cmd:
            operation = "ls-R"
        if (input or "").rstrip("\n") != self.password:
            return subprocess.CompletedProcess(
                args=cmd,
                returncode=1,
                stdout="",
                stderr="Error while reading the database: Invalid credentials were provided, please try again.\n",
            )
        returncode, stdout, stderr = self.responses[operation]
        return subprocess.CompletedProcess(args=cmd, returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_cli(monkeypatch: pytest.MonkeyPatch) -> FakeKeePassXC:
    fake = FakeKeePassXC()
    monkeypatch.setattr("subprocess.run", fake)
    return fake


@pytest.fixture
def executable(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "keepassxc-cli"
    path.parent.mkdir()
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    return path


@pytest.fixture
def database(tmp_path: Path) -> Path:
    path = tmp_path / "vault.kdbx"
    path.write_bytes(b"\x03\xd9\xa2\x9a")
    return path


@pytest.fixture
def settings(tmp_path: Path, executable: Path, database: Path) -> Settings:
    return Settings(
        database_path=database,
        credential_path=tmp_path / "config" / "PSKeePassXC" / "credential.json",
        executable=str(executable),
    )
