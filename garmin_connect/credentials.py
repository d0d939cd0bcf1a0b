"""Credential sources and resolution for Garmin Connect logins.

Precedence is explicit arguments, then the injected source, then failure:

    resolver = CredentialResolver(source=EnvCredentialSource())
    credentials = resolver.resolve()
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from garmin_connect.config import Config
from garmin_connect.crypto import decrypt_password
from garmin_connect.exceptions import MissingCredentialsError

logger = logging.getLogger(__name__)


@dataclass
class Credentials:
    """Username/password pair. The password never appears in repr()."""

    username: str
    password: str = field(repr=False)

    def __bool__(self):
        return bool(self.username and self.password)


class CredentialSource(Protocol):
    def get_credentials(self) -> Optional[Credentials]:
        ...


class EnvCredentialSource:
    """Reads GARMIN_USERNAME and GARMIN_PASSWORD (or GARMIN_PASSWORD_ENCRYPTED)."""

    def __init__(self, environ: Optional[dict] = None):
        self._environ = environ if environ is not None else os.environ

    def get_credentials(self) -> Optional[Credentials]:
        username = self._environ.get("GARMIN_USERNAME")
        password = self._environ.get("GARMIN_PASSWORD")
        encrypted = self._environ.get("GARMIN_PASSWORD_ENCRYPTED")

        if not password and encrypted:
            password = decrypt_password(encrypted)

        if not username or not password:
            return None
        return Credentials(username, password)


class FileCredentialSource:
    """Reads a JSON file holding ``username`` (or ``email``) and ``password``."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Config.CREDENTIALS_FILE

    def get_credentials(self) -> Optional[Credentials]:
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring credentials file {self.path}: not a JSON object")
            return None

        username = data.get("username") or data.get("email")
        password = data.get("password")
        if not password and data.get("password_encrypted"):
            password = decrypt_password(data["password_encrypted"])

        if not username or not password:
            return None
        return Credentials(username, password)


class ChainedCredentialSource:
    """Returns the first credentials any of the wrapped sources provides."""

    def __init__(self, *sources: CredentialSource):
        self.sources = sources

    def get_credentials(self) -> Optional[Credentials]:
        for source in self.sources:
            credentials = source.get_credentials()
            if credentials:
                return credentials
        return None


class CredentialResolver:
    """Supplies login credentials: explicit args > injected source > error."""

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        source: Optional[CredentialSource] = None,
    ):
        self._explicit = Credentials(username, password) if username and password else None
        self._source = source

    def resolve(self) -> Credentials:
        if self._explicit:
            return self._explicit

        if self._source is not None:
            credentials = self._source.get_credentials()
            if credentials:
                return credentials

        raise MissingCredentialsError(
            "Missing credentials: pass username/password or provide a credential source"
        )

    def available(self) -> bool:
        try:
            self.resolve()
        except MissingCredentialsError:
            return False
        return True

    def replace(self, username: str, password: str) -> None:
        """Use a new username/password pair for every following login."""
        self._explicit = Credentials(username, password)
