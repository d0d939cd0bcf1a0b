"""Tests for the token types and the token store."""

import json
import time

import pytest

from garmin_connect.auth.tokens import (
    OAUTH1_FILENAME,
    OAUTH2_FILENAME,
    OAuth2Token,
    TokenStore,
)
from garmin_connect.exceptions import (
    DirectoryNotFoundError,
    TokenNotFoundError,
    TokenParseError,
)

from conftest import make_oauth1, make_oauth2


@pytest.fixture
def store():
    s = TokenStore()
    s.set(make_oauth1(), make_oauth2())
    return s


def test_export_without_session_raises():
    with pytest.raises(TokenNotFoundError):
        TokenStore().export()


def test_export_returns_both_tokens(store):
    exported = store.export()
    assert exported["oauth1"]["oauth_token"] == "oauth1-token"
    assert exported["oauth1"]["oauth_token_secret"] == "oauth1-secret"
    assert exported["oauth2"]["access_token"] == "access-token"


def test_save_load_roundtrip_is_byte_identical(store, tmp_path):
    store.save(tmp_path / "tokens")

    fresh = TokenStore()
    fresh.load(tmp_path / "tokens")

    original = json.dumps(store.export(), sort_keys=True)
    restored = json.dumps(fresh.export(), sort_keys=True)
    assert original == restored


def test_save_creates_missing_directories(store, tmp_path):
    target = tmp_path / "a" / "b" / "tokens"
    store.save(target)
    assert (target / OAUTH1_FILENAME).is_file()
    assert (target / OAUTH2_FILENAME).is_file()


def test_save_fails_when_directory_cannot_be_created(store, tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    with pytest.raises(DirectoryNotFoundError):
        store.save(blocker / "tokens")


def test_save_without_session_raises(tmp_path):
    with pytest.raises(TokenNotFoundError):
        TokenStore().save(tmp_path)


def test_load_missing_directory(tmp_path):
    with pytest.raises(DirectoryNotFoundError):
        TokenStore().load(tmp_path / "missing")


def test_load_missing_file(store, tmp_path):
    store.save(tmp_path)
    (tmp_path / OAUTH2_FILENAME).unlink()
    with pytest.raises(TokenNotFoundError):
        TokenStore().load(tmp_path)


def test_load_corrupt_file_leaves_store_unchanged(store, tmp_path):
    store.save(tmp_path)
    (tmp_path / OAUTH2_FILENAME).write_text("{not json")

    target = TokenStore()
    target.set(make_oauth1("previous"), make_oauth2("previous-access"))
    before = target.export()
    generation = target.generation

    with pytest.raises(TokenParseError):
        target.load(tmp_path)

    assert target.export() == before
    assert target.generation == generation


def test_load_rejects_token_without_required_fields(store, tmp_path):
    store.save(tmp_path)
    (tmp_path / OAUTH1_FILENAME).write_text(json.dumps({"oauth_token": "only"}))
    with pytest.raises(TokenParseError):
        TokenStore().load(tmp_path)


def test_unknown_fields_are_preserved(tmp_path):
    store = TokenStore()
    oauth2 = make_oauth2().to_dict()
    oauth2["customer_id"] = "abc"
    store.set(make_oauth1().to_dict(), oauth2)
    store.save(tmp_path)

    fresh = TokenStore()
    fresh.load(tmp_path)
    assert fresh.export()["oauth2"]["customer_id"] == "abc"


def test_set_accepts_dicts_and_bumps_generation():
    store = TokenStore()
    assert store.generation == 0
    store.set(make_oauth1().to_dict(), make_oauth2().to_dict())
    assert store.generation == 1
    assert store.has_session


def test_clear_drops_session(store):
    store.clear()
    assert not store.has_session
    with pytest.raises(TokenNotFoundError):
        store.export()


def test_from_exchange_stamps_expiry():
    now = 1_700_000_000
    token = OAuth2Token.from_exchange(
        {
            "access_token": "a",
            "refresh_token": "r",
            "token_type": "Bearer",
            "expires_in": 3600,
            "refresh_token_expires_in": 7200,
        },
        now=now,
    )
    assert token.expires_at == now + 3600
    assert token.refresh_token_expires_at == now + 7200
    assert token.authorization == "Bearer a"


def test_expired_property():
    assert make_oauth2(expired=True).expired
    assert not make_oauth2().expired
    assert not OAuth2Token(access_token="a").expired
    assert OAuth2Token(access_token="a", expires_at=int(time.time()) - 1).expired


def test_repr_hides_secrets():
    text = repr(make_oauth1()) + repr(make_oauth2())
    assert "oauth1-secret" not in text
    assert "access-token" not in text
