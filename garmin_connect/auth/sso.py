"""Garmin SSO login: password sign-in, SSO ticket, OAuth1 token, OAuth2 token.

The sign-in pages are HTML meant for an embedded widget, so the CSRF token,
the page title and the ticket are scraped out of the markup. Any marker that
is missing surfaces as AuthNegotiationError, distinct from a rejected
password (InvalidCredentialsError) and from network trouble (TransportError).
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs

import requests
from requests_oauthlib import OAuth1Session

from garmin_connect.auth.tokens import OAuth1Token, OAuth2Token
from garmin_connect.config import Config
from garmin_connect.credentials import Credentials
from garmin_connect.exceptions import (
    AuthenticationError,
    AuthNegotiationError,
    InvalidCredentialsError,
    TransportError,
)
from garmin_connect.urls import GarminUrls

logger = logging.getLogger(__name__)

CSRF_RE = re.compile(r'name="_csrf"\s+value="(.+?)"')
TITLE_RE = re.compile(r"<title>(.+?)</title>", re.S)
TICKET_RE = re.compile(r'embed\?ticket=([^"]+)"')

SSO_HEADERS = {"User-Agent": "GCM-iOS-5.7.2.1"}
OAUTH_HEADERS = {"User-Agent": "com.garmin.android.apps.connectmobile"}


class LoginProtocol(ABC):
    """Turns credentials into a token pair and renews the OAuth2 token."""

    @abstractmethod
    def login(self, credentials: Credentials) -> Tuple[OAuth1Token, OAuth2Token]:
        """Run the full login flow."""
        pass

    @abstractmethod
    def exchange(self, oauth1: OAuth1Token) -> OAuth2Token:
        """Trade an OAuth1 token for a fresh OAuth2 token."""
        pass


class GarminSSOProtocol(LoginProtocol):
    """The Garmin Connect mobile-app login flow."""

    def __init__(
        self,
        urls: Optional[GarminUrls] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        oauth_session_factory: Callable[..., requests.Session] = OAuth1Session,
        timeout: Optional[int] = None,
    ):
        self.urls = urls or GarminUrls(Config.GARMIN_DOMAIN)
        self._session_factory = session_factory
        self._oauth_session_factory = oauth_session_factory
        self.timeout = timeout if timeout is not None else Config.REQUEST_TIMEOUT
        self._consumer: Optional[Dict[str, str]] = None
        self._consumer_lock = threading.Lock()

    # Public API

    def login(self, credentials: Credentials) -> Tuple[OAuth1Token, OAuth2Token]:
        logger.info(f"Logging in to {self.urls.domain} as {credentials.username}")
        session = self._session_factory()
        try:
            csrf = self._get_csrf_token(session)
            ticket = self._submit_credentials(session, credentials, csrf)
        finally:
            session.close()

        oauth1 = self.get_oauth1_token(ticket)
        oauth2 = self.exchange(oauth1)
        logger.info(f"Login succeeded for {credentials.username}")
        return oauth1, oauth2

    def get_oauth1_token(self, ticket: str) -> OAuth1Token:
        consumer = self.consumer()
        session = self._oauth_session_factory(
            consumer["consumer_key"], client_secret=consumer["consumer_secret"]
        )
        params = {
            "ticket": ticket,
            "login-url": self.urls.GARMIN_SSO_EMBED,
            "accepts-mfa-tokens": "true",
        }
        try:
            response = self._send(
                session, "GET", self.urls.OAUTH_PREAUTHORIZED, "OAuth1 token request",
                params=params, headers=OAUTH_HEADERS,
            )
        finally:
            session.close()

        if response.status_code >= 400:
            raise AuthNegotiationError(
                f"login: OAuth1 token request returned HTTP {response.status_code}"
            )

        parsed = {k: v[0] for k, v in parse_qs(response.text).items()}
        if not parsed.get("oauth_token") or not parsed.get("oauth_token_secret"):
            raise AuthNegotiationError("login: OAuth1 token response has no oauth_token")

        parsed["domain"] = self.urls.domain
        return OAuth1Token.from_dict(parsed)

    def exchange(self, oauth1: OAuth1Token) -> OAuth2Token:
        consumer = self.consumer()
        session = self._oauth_session_factory(
            consumer["consumer_key"],
            client_secret=consumer["consumer_secret"],
            resource_owner_key=oauth1.oauth_token,
            resource_owner_secret=oauth1.oauth_token_secret,
        )
        data = {"mfa_token": oauth1.mfa_token} if oauth1.mfa_token else {}
        headers = {**OAUTH_HEADERS, "Content-Type": "application/x-www-form-urlencoded"}
        try:
            response = self._send(
                session, "POST", self.urls.OAUTH_EXCHANGE, "OAuth2 exchange",
                data=data, headers=headers,
            )
        finally:
            session.close()

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"exchange: OAuth1 token rejected (HTTP {response.status_code})"
            )
        if response.status_code >= 400:
            raise AuthNegotiationError(
                f"exchange: OAuth2 exchange returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthNegotiationError("exchange: OAuth2 response is not JSON") from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise AuthNegotiationError("exchange: OAuth2 response has no access_token")

        logger.debug("Exchanged OAuth1 token for a new OAuth2 token")
        return OAuth2Token.from_exchange(payload)

    def consumer(self) -> Dict[str, str]:
        """OAuth consumer key/secret, fetched once per protocol instance."""
        with self._consumer_lock:
            if self._consumer is None:
                self._consumer = self._load_consumer()
            return self._consumer

    # SSO steps

    def _get_csrf_token(self, session: requests.Session) -> str:
        embed_params = {
            "id": "gauth-widget",
            "embedWidget": "true",
            "gauthHost": self.urls.GARMIN_SSO,
        }
        self._send(
            session, "GET", self.urls.GARMIN_SSO_EMBED, "SSO embed page",
            params=embed_params, headers=SSO_HEADERS,
        )

        response = self._send(
            session, "GET", self.urls.SIGNIN_URL, "sign-in page",
            params=self._signin_params(), headers=SSO_HEADERS,
        )
        if response.status_code >= 400:
            raise AuthNegotiationError(
                f"login: sign-in page returned HTTP {response.status_code}"
            )

        match = CSRF_RE.search(response.text)
        if not match:
            raise AuthNegotiationError("login: CSRF token not found on sign-in page")
        return match.group(1)

    def _submit_credentials(
        self, session: requests.Session, credentials: Credentials, csrf: str
    ) -> str:
        data = {
            "username": credentials.username,
            "password": credentials.password,
            "embed": "true",
            "_csrf": csrf,
        }
        headers = {**SSO_HEADERS, "Referer": self.urls.SIGNIN_URL}
        response = self._send(
            session, "POST", self.urls.SIGNIN_URL, "credential submission",
            params=self._signin_params(), data=data, headers=headers,
        )

        if response.status_code in (401, 403):
            raise InvalidCredentialsError(
                f"login: credentials rejected for {credentials.username}"
            )
        if response.status_code >= 400:
            raise AuthNegotiationError(
                f"login: credential submission returned HTTP {response.status_code}"
            )

        title_match = TITLE_RE.search(response.text)
        if not title_match:
            raise AuthNegotiationError("login: sign-in response has no page title")

        title = title_match.group(1).strip()
        if "MFA" in title:
            raise AuthNegotiationError("login: multi-factor authentication is not supported")
        if title != "Success":
            logger.error(f"Login rejected for {credentials.username} (page title: {title})")
            raise InvalidCredentialsError(
                f"login: credentials rejected for {credentials.username}"
            )

        ticket_match = TICKET_RE.search(response.text)
        if not ticket_match:
            raise AuthNegotiationError("login: SSO ticket not found in sign-in response")
        return ticket_match.group(1)

    def _signin_params(self) -> Dict[str, str]:
        embed = self.urls.GARMIN_SSO_EMBED
        return {
            "id": "gauth-widget",
            "embedWidget": "true",
            "gauthHost": embed,
            "service": embed,
            "source": embed,
            "redirectAfterAccountLoginUrl": embed,
            "redirectAfterAccountCreationUrl": embed,
        }

    def _load_consumer(self) -> Dict[str, str]:
        if Config.OAUTH_CONSUMER_KEY and Config.OAUTH_CONSUMER_SECRET:
            return {
                "consumer_key": Config.OAUTH_CONSUMER_KEY,
                "consumer_secret": Config.OAUTH_CONSUMER_SECRET,
            }

        session = self._session_factory()
        try:
            response = self._send(
                session, "GET", Config.OAUTH_CONSUMER_URL, "OAuth consumer download"
            )
        finally:
            session.close()

        if response.status_code >= 400:
            raise AuthNegotiationError(
                f"login: OAuth consumer download returned HTTP {response.status_code}"
            )
        try:
            consumer = response.json()
        except ValueError as e:
            raise AuthNegotiationError("login: OAuth consumer is not JSON") from e
        if not isinstance(consumer, dict) or not (
            consumer.get("consumer_key") and consumer.get("consumer_secret")
        ):
            raise AuthNegotiationError("login: OAuth consumer is missing key/secret")
        return consumer

    def _send(self, session, method: str, url: str, step: str, **kwargs: Any):
        try:
            return session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{step} failed: {e}")
            raise TransportError(f"login: {step} failed: {e}") from e
