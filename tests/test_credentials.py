"""Tests for credential sources and resolution."""

import json

import pytest
from cryptography.fernet import Fernet

from garmin_connect.clients.garmin import GarminConnect
from garmin_connect.credentials import (
    ChainedCredentialSource,
    CredentialResolver,
    Credentials,
    EnvCredentialSource,
    FileCredentialSource,
)
from garmin_connect.exceptions import MissingCredentialsError


class _StaticSource:
    def __init__(self, credentials):
        self.credentials = credentials
        self.calls = 0

    def get_credentials(self):
        self.calls += 1
        return self.credentials


def test_explicit_credentials_win_over_source():
    source = _StaticSource(Credentials("source@example.com", "source-pass"))
    resolver = CredentialResolver("arg@example.com", "arg-pass", source)

    credentials = resolver.resolve()

    assert credentials.username == "arg@example.com"
    assert source.calls == 0


def test_source_used_without_explicit_credentials():
    source = _StaticSource(Credentials("source@example.com", "source-pass"))
    assert CredentialResolver(source=source).resolve().username == "source@example.com"


def test_missing_everything_raises():
    with pytest.raises(MissingCredentialsError):
        CredentialResolver(source=_StaticSource(None)).resolve()
    assert not CredentialResolver().available()


def test_replace_switches_credentials():
    resolver = CredentialResolver("old@example.com", "old")
    resolver.replace("new@example.com", "new")
    assert resolver.resolve() == Credentials("new@example.com", "new")


def test_password_not_in_repr():
    assert "hunter2" not in repr(Credentials("me", "hunter2"))


def test_env_source_plain_password():
    source = EnvCredentialSource({"GARMIN_USERNAME": "me", "GARMIN_PASSWORD": "pw"})
    assert source.get_credentials() == Credentials("me", "pw")


def test_env_source_encrypted_password(monkeypatch):
    key = Fernet.generate_key()
    monkeypatch.setattr("garmin_connect.config.Config.ENCRYPTION_KEY", key.decode())
    encrypted = Fernet(key).encrypt(b"pw").decode()

    source = EnvCredentialSource({"GARMIN_USERNAME": "me", "GARMIN_PASSWORD_ENCRYPTED": encrypted})

    assert source.get_credentials() == Credentials("me", "pw")


def test_env_source_incomplete():
    assert EnvCredentialSource({"GARMIN_USERNAME": "me"}).get_credentials() is None


def test_file_source(tmp_path):
    path = tmp_path / "garmin.config.json"
    path.write_text(json.dumps({"username": "me", "password": "pw"}))
    assert FileCredentialSource(path).get_credentials() == Credentials("me", "pw")


def test_file_source_accepts_email_key(tmp_path):
    path = tmp_path / "garmin.config.json"
    path.write_text(json.dumps({"email": "me", "password": "pw"}))
    assert FileCredentialSource(path).get_credentials().username == "me"


def test_file_source_missing_or_invalid(tmp_path):
    assert FileCredentialSource(tmp_path / "missing.json").get_credentials() is None

    bad = tmp_path / "bad.json"
    bad.write_text("{oops")
    assert FileCredentialSource(bad).get_credentials() is None


def test_chained_source_returns_first_match():
    chained = ChainedCredentialSource(
        _StaticSource(None),
        _StaticSource(Credentials("second", "pw")),
        _StaticSource(Credentials("third", "pw")),
    )
    assert chained.get_credentials().username == "second"


def test_client_construction_requires_credentials():
    with pytest.raises(MissingCredentialsError):
        GarminConnect()


def test_client_construction_from_source():
    client = GarminConnect(credential_source=_StaticSource(Credentials("me", "pw")))
    assert not client.authenticated


def test_client_token_only_construction():
    client = GarminConnect(require_credentials=False)
    assert not client.authenticated
