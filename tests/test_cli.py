import json
from pathlib import Path
from typing import List

import pytest
from click.testing import CliRunner

from conftest import DATABASE_PASSWORD, FakeKeePassXC
from pskeepassxc.cli.main import cli
from pskeepassxc.core.config import Settings
from pskeepassxc.core.credentials import CredentialStore


def _flat(output: str) -> str:
    return " ".join(output.split())


def _base_args(settings: Settings) -> List[str]:
    return [
        "--database", str(settings.database_path),
        "--credential-file", str(settings.credential_path),
        "--executable", str(settings.executable),
    ]


@pytest.fixture
def stored(settings: Settings) -> Settings:
    CredentialStore(settings.credential_path).save(DATABASE_PASSWORD)
    return settings


def test_no_command_prints_help(settings: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(settings))
    assert result.exit_code == 0
    assert "connect" in result.output


def test_connect_with_password(fake_cli: FakeKeePassXC, settings: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(settings) + ["connect", "--password", DATABASE_PASSWORD])
    assert result.exit_code == 0, result.output
    assert "Connected to" in result.output
    assert not CredentialStore(settings.credential_path).exists()


def test_connect_prompts_and_stores(fake_cli: FakeKeePassXC, settings: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(settings) + ["connect"], input=DATABASE_PASSWORD + "\n")
    assert result.exit_code == 0, result.output
    assert CredentialStore(settings.credential_path).load() == DATABASE_PASSWORD


def test_connect_rejected(fake_cli: FakeKeePassXC, settings: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(settings) + ["connect", "--password", "wrong"])
    assert result.exit_code == 1
    assert "Invalid credentials" in _flat(result.output)


def test_connect_corrupt_credential_aborts(fake_cli: FakeKeePassXC, settings: Settings) -> None:
    settings.credential_path.parent.mkdir(parents=True)
    settings.credential_path.write_text("garbage", encoding="utf-8")

    result = CliRunner().invoke(cli, _base_args(settings) + ["connect"])
    assert result.exit_code == 1
    assert "malformed" in _flat(result.output)


def test_connect_corrupt_credential_regenerates(fake_cli: FakeKeePassXC, settings: Settings) -> None:
    settings.credential_path.parent.mkdir(parents=True)
    settings.credential_path.write_text("garbage", encoding="utf-8")

    result = CliRunner().invoke(
        cli,
        _base_args(settings) + ["--on-invalid-credential", "regenerate", "connect"],
        input=DATABASE_PASSWORD + "\n",
    )
    assert result.exit_code == 0, result.output
    assert CredentialStore(settings.credential_path).load() == DATABASE_PASSWORD


def test_show_masks_password(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(stored) + ["show", "MyBank"])
    assert result.exit_code == 0, result.output
    assert "alice" in result.output
    assert "s3cret!" not in result.output
    assert "************" in result.output


def test_show_reveal(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(stored) + ["show", "MyBank", "--reveal"])
    assert result.exit_code == 0, result.output
    assert "s3cret!" in result.output


def test_show_missing_entry(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    fake_cli.responses["show"] = (1, "", "Could not find entry with path Nope.\n")
    result = CliRunner().invoke(cli, _base_args(stored) + ["show", "Nope"])
    assert result.exit_code == 1
    assert "Could not find entry" in _flat(result.output)


def test_list(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(stored) + ["list"])
    assert result.exit_code == 0, result.output
    assert "MyBank" in result.output
    assert "Email Account" in result.output
    assert "[Directory]" in result.output


def test_list_search(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(stored) + ["list", "--search", "bank"])
    assert result.exit_code == 0, result.output
    assert "MyBank" in result.output
    assert "Email Account" not in result.output


def test_list_unparsed_output(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    fake_cli.responses["ls-R"] = (0, "Enter password to unlock /tmp/vault.kdbx:\n", "")
    result = CliRunner().invoke(cli, _base_args(stored) + ["list"])
    assert result.exit_code == 0, result.output
    assert "Could not parse" in result.output
    assert "Enter password to unlock" in _flat(result.output)


def test_list_empty_database(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    fake_cli.responses["ls-R"] = (0, "", "")
    result = CliRunner().invoke(cli, _base_args(stored) + ["list"])
    assert result.exit_code == 0, result.output
    assert "no entries" in result.output


def test_list_header_only_is_empty(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    fake_cli.responses["ls-R"] = (0, "ID  Group  Title\n-----\n", "")
    result = CliRunner().invoke(cli, _base_args(stored) + ["list"])
    assert result.exit_code == 0, result.output
    assert "no entries" in result.output


def test_export(fake_cli: FakeKeePassXC, stored: Settings, tmp_path: Path) -> None:
    output = tmp_path / "export.json"
    result = CliRunner().invoke(cli, _base_args(stored) + ["export", str(output)])
    assert result.exit_code == 0, result.output

    data = json.loads(output.read_text())
    assert [item["title"] for item in data] == ["[Directory]", "MyBank", "Email Account"]
    assert all("password" not in item for item in data)


def test_copy_password(fake_cli: FakeKeePassXC, stored: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    import pyperclip

    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)
    result = CliRunner().invoke(cli, _base_args(stored) + ["copy-password", "MyBank"])
    assert result.exit_code == 0, result.output
    assert copied == ["s3cret!"]


def test_copy_username(fake_cli: FakeKeePassXC, stored: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    import pyperclip

    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)
    result = CliRunner().invoke(cli, _base_args(stored) + ["copy-username", "MyBank"])
    assert result.exit_code == 0, result.output
    assert copied == ["alice"]


def test_status(stored: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(stored) + ["status"])
    assert result.exit_code == 0, result.output
    assert "stored" in result.output


def test_forget(stored: Settings) -> None:
    result = CliRunner().invoke(cli, _base_args(stored) + ["forget", "--yes"])
    assert result.exit_code == 0, result.output
    assert not CredentialStore(stored.credential_path).exists()


def test_settings_from_environment(fake_cli: FakeKeePassXC, stored: Settings) -> None:
    env = {
        "PSKEEPASSXC_DATABASE": str(stored.database_path),
        "PSKEEPASSXC_CREDENTIAL_FILE": str(stored.credential_path),
        "PSKEEPASSXC_EXECUTABLE": str(stored.executable),
    }
    result = CliRunner().invoke(cli, ["show", "MyBank"], env=env)
    assert result.exit_code == 0, result.output
    assert "alice" in result.output
