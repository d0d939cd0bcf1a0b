"""Authenticated HTTP dispatch for the Garmin Connect API.

Every transport failure is classified here, once, into the package's
exception types:

- 401 after one session recovery -> AuthenticationError
- any other 4xx/5xx              -> ApiError(status_code, body)
- connection errors/timeouts     -> TransportError
"""

import logging
from typing import Any, Dict, Optional, Tuple

import requests

from garmin_connect.auth.session import SessionManager
from garmin_connect.auth.tokens import OAuth2Token
from garmin_connect.config import Config
from garmin_connect.exceptions import (
    ApiError,
    AuthenticationError,
    GarminConnectError,
    TransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "com.garmin.android.apps.connectmobile",
}

RESPONSE_TYPES = ("json", "text", "binary")


class HttpClient:
    """Sends API requests with the current bearer token attached.

    ``transport`` is anything with the ``requests.Session.request`` signature.
    """

    def __init__(
        self,
        session: SessionManager,
        transport: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        self.session = session
        self.transport = transport if transport is not None else requests.Session()
        self.timeout = timeout if timeout is not None else Config.REQUEST_TIMEOUT

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self.request("GET", url, params=params, **kwargs)

    def post(self, url: str, json: Any = None, **kwargs) -> Any:
        return self.request("POST", url, json=json, **kwargs)

    def put(self, url: str, json: Any = None, **kwargs) -> Any:
        return self.request("PUT", url, json=json, **kwargs)

    def delete(self, url: str, **kwargs) -> Any:
        return self.request("DELETE", url, **kwargs)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
        data: Any = None,
        files: Optional[Dict[str, Any]] = None,
        response_type: str = "json",
    ) -> Any:
        """Send one API call, recovering the session at most once on a 401."""
        if response_type not in RESPONSE_TYPES:
            raise ValueError(f"Unsupported response_type: {response_type}")

        operation = f"{method} {url}"
        kwargs = {
            "params": {k: v for k, v in (params or {}).items() if v is not None},
            "json": json,
            "data": data,
            "files": files,
        }

        oauth2, generation, recovered = self._valid_token(operation)
        response = self._send(operation, method, url, oauth2, headers, kwargs)

        if response.status_code == 401:
            # At most one session recovery per call
            if recovered:
                logger.error(f"{operation} unauthorized with a freshly recovered session")
                raise AuthenticationError(
                    f"{operation}: unauthorized with a freshly recovered session"
                )
            logger.info(f"{operation} returned 401, recovering session")
            self._recover(operation, generation)
            oauth2, _, _ = self._valid_token(operation, recover=False)
            _rewind(files)
            response = self._send(operation, method, url, oauth2, headers, kwargs)
            if response.status_code == 401:
                logger.error(f"{operation} still unauthorized after session recovery")
                raise AuthenticationError(
                    f"{operation}: still unauthorized after session recovery"
                )

        return self._parse(operation, response, response_type)

    def _valid_token(self, operation: str, recover: bool = True) -> Tuple[OAuth2Token, int, bool]:
        """Current OAuth2 token and store generation, and whether a recovery ran for them."""
        _, oauth2, generation = self.session.store.snapshot()
        if oauth2 is not None and not oauth2.expired:
            return oauth2, generation, False

        if recover:
            logger.debug(f"{operation}: OAuth2 token missing or expired")
            self._recover(operation, generation)
            _, oauth2, generation = self.session.store.snapshot()

        if oauth2 is None or oauth2.expired:
            raise AuthenticationError(f"{operation}: no valid OAuth2 token after session recovery")
        return oauth2, generation, recover

    def _recover(self, operation: str, generation: int) -> None:
        try:
            self.session.recover(generation)
        except TransportError:
            raise
        except AuthenticationError as e:
            raise AuthenticationError(f"{operation}: {e}") from e
        except GarminConnectError as e:
            raise AuthenticationError(f"{operation}: session recovery failed: {e}") from e

    def _send(
        self,
        operation: str,
        method: str,
        url: str,
        oauth2: OAuth2Token,
        headers: Optional[Dict[str, str]],
        kwargs: Dict[str, Any],
    ) -> requests.Response:
        merged = {**DEFAULT_HEADERS, **(headers or {}), "Authorization": oauth2.authorization}
        try:
            return self.transport.request(
                method, url, headers=merged, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"{operation} failed: {e}")
            raise TransportError(f"{operation}: {e}") from e

    def _parse(self, operation: str, response: requests.Response, response_type: str) -> Any:
        if response.status_code >= 400:
            body = _body(response)
            logger.error(f"{operation} failed with HTTP {response.status_code}")
            raise ApiError(
                f"{operation}: HTTP {response.status_code}", response.status_code, body
            )

        if response_type == "binary":
            return response.content
        if response_type == "text":
            return response.text

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"{operation}: response is not JSON", response.status_code, response.text
            ) from e


def _body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _rewind(files: Optional[Dict[str, Any]]) -> None:
    for value in (files or {}).values():
        stream = value[1] if isinstance(value, tuple) else value
        if hasattr(stream, "seek"):
            stream.seek(0)
