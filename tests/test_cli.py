"""Tests for the plaidster command line."""

import pytest

from plaidster import cli
from plaidster.config import ClientConfig
from plaidster.errors import ConfigurationError


def test_check_credentials(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.ClientConfig, "from_environment",
        classmethod(lambda cls: ClientConfig(client_id="my_client", secret="abcdef")),
    )

    assert cli.main(["check-credentials"]) == 0

    out = capsys.readouterr().out
    assert "my_client" in out
    assert "6 characters" in out
    assert "abcdef" not in out


def test_check_credentials_missing(monkeypatch, capsys):
    def missing(cls):
        raise ConfigurationError("PLAID_CLIENT_ID environment variable is required")

    monkeypatch.setattr(cli.ClientConfig, "from_environment", classmethod(missing))

    assert cli.main(["check-credentials"]) == 1
    assert "PLAID_CLIENT_ID" in capsys.readouterr().out


def test_store_secret(monkeypatch):
    stored = []
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt: " s3cret ")
    monkeypatch.setattr(cli, "store_secret", lambda secret: stored.append(secret) or True)

    assert cli.main(["store-secret"]) == 0
    assert stored == ["s3cret"]


def test_store_empty_secret(monkeypatch):
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt: "")
    assert cli.main(["store-secret"]) == 1


def test_unknown_command():
    with pytest.raises(SystemExit):
        cli.main(["frobnicate"])
