"""OAuth token types and the token store that holds the current session.

The store keeps the OAuth1 pair (only used to sign token exchanges) and the
OAuth2 bearer token (attached to every API call). Both serialize to their own
JSON file so a session survives process restarts without a password login.
"""

import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from garmin_connect.exceptions import (
    DirectoryNotFoundError,
    TokenNotFoundError,
    TokenParseError,
)

logger = logging.getLogger(__name__)

OAUTH1_FILENAME = "oauth1_token.json"
OAUTH2_FILENAME = "oauth2_token.json"


def _split_known(cls, data: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    names = {f.name for f in fields(cls) if f.name != "extra"}
    known = {k: v for k, v in data.items() if k in names}
    extra = {k: v for k, v in data.items() if k not in names}
    return known, extra


def _to_dict(token) -> Dict[str, Any]:
    data = dict(token.extra)
    for f in fields(token):
        if f.name == "extra":
            continue
        value = getattr(token, f.name)
        if value is not None:
            data[f.name] = value
    return data


@dataclass
class OAuth1Token:
    """Long-lived token/secret pair issued for an SSO ticket."""

    oauth_token: str
    oauth_token_secret: str = field(repr=False)
    mfa_token: Optional[str] = field(default=None, repr=False)
    mfa_expiration_timestamp: Optional[str] = None
    domain: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OAuth1Token":
        if not isinstance(data, dict):
            raise TokenParseError("OAuth1 token must be a JSON object")
        known, extra = _split_known(cls, data)
        if not known.get("oauth_token") or not known.get("oauth_token_secret"):
            raise TokenParseError("OAuth1 token is missing oauth_token/oauth_token_secret")
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


@dataclass
class OAuth2Token:
    """Short-lived bearer token plus the refresh metadata the service returns."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    refresh_token: Optional[str] = field(default=None, repr=False)
    scope: Optional[str] = None
    jti: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    refresh_token_expires_in: Optional[int] = None
    refresh_token_expires_at: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OAuth2Token":
        if not isinstance(data, dict):
            raise TokenParseError("OAuth2 token must be a JSON object")
        known, extra = _split_known(cls, data)
        if not known.get("access_token"):
            raise TokenParseError("OAuth2 token is missing access_token")
        return cls(extra=extra, **known)

    @classmethod
    def from_exchange(cls, data: Dict[str, Any], now: Optional[float] = None) -> "OAuth2Token":
        """Build a token from an exchange response, stamping absolute expiries."""
        now = int(now if now is not None else time.time())
        token = cls.from_dict(data)
        if token.expires_in is not None:
            token.expires_at = now + int(token.expires_in)
        if token.refresh_token_expires_in is not None:
            token.refresh_token_expires_at = now + int(token.refresh_token_expires_in)
        return token

    @property
    def expired(self) -> bool:
        # Without an expiry the service's 401 is the only signal
        if self.expires_at is None:
            return False
        return self.expires_at <= time.time()

    @property
    def authorization(self) -> str:
        return f"{self.token_type.title()} {self.access_token}"

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)


TokenLike = Union[OAuth1Token, OAuth2Token, Dict[str, Any]]


def _coerce(cls, token: TokenLike):
    if isinstance(token, cls):
        return token
    return cls.from_dict(token)


def _dumps(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class TokenStore:
    """Thread-safe holder of the current OAuth1/OAuth2 token pair.

    Every mutation bumps ``generation`` so callers can tell whether the
    session changed since they last looked at it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._oauth1: Optional[OAuth1Token] = None
        self._oauth2: Optional[OAuth2Token] = None
        self._generation = 0

    @property
    def oauth1(self) -> Optional[OAuth1Token]:
        return self._oauth1

    @property
    def oauth2(self) -> Optional[OAuth2Token]:
        return self._oauth2

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_session(self) -> bool:
        return self._oauth1 is not None and self._oauth2 is not None

    def snapshot(self) -> Tuple[Optional[OAuth1Token], Optional[OAuth2Token], int]:
        with self._lock:
            return self._oauth1, self._oauth2, self._generation

    def set(self, oauth1: TokenLike, oauth2: TokenLike) -> None:
        """Replace both tokens at once (e.g. from a database or a fresh login)."""
        oauth1 = _coerce(OAuth1Token, oauth1)
        oauth2 = _coerce(OAuth2Token, oauth2)
        with self._lock:
            self._oauth1 = oauth1
            self._oauth2 = oauth2
            self._generation += 1

    def set_oauth2(self, oauth2: TokenLike) -> None:
        oauth2 = _coerce(OAuth2Token, oauth2)
        with self._lock:
            self._oauth2 = oauth2
            self._generation += 1

    def clear(self) -> None:
        with self._lock:
            self._oauth1 = None
            self._oauth2 = None
            self._generation += 1

    def export(self) -> Dict[str, Dict[str, Any]]:
        oauth1, oauth2, _ = self.snapshot()
        if oauth1 is None or oauth2 is None:
            raise TokenNotFoundError("export: token not found, log in first")
        return {"oauth1": oauth1.to_dict(), "oauth2": oauth2.to_dict()}

    def save(self, directory: Union[str, Path]) -> None:
        """Write both tokens to ``directory``, creating it when missing."""
        directory = Path(directory)
        exported = self.export()

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryNotFoundError(
                f"save: cannot create token directory {directory}: {e}"
            ) from e

        _atomic_write(directory / OAUTH1_FILENAME, _dumps(exported["oauth1"]))
        _atomic_write(directory / OAUTH2_FILENAME, _dumps(exported["oauth2"]))
        logger.info(f"Saved tokens to {directory}")

    def load(self, directory: Union[str, Path]) -> None:
        """Read both tokens from ``directory``; the store is untouched on failure."""
        directory = Path(directory)
        if not directory.is_dir():
            raise DirectoryNotFoundError(f"load: directory not found: {directory}")

        oauth1 = OAuth1Token.from_dict(self._read(directory / OAUTH1_FILENAME))
        oauth2 = OAuth2Token.from_dict(self._read(directory / OAUTH2_FILENAME))
        self.set(oauth1, oauth2)
        logger.info(f"Loaded tokens from {directory}")

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise TokenNotFoundError(f"load: token file not found: {path}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TokenParseError(f"load: invalid token data in {path}: {e}") from e
