import json
import threading
import time

import pytest

from garmin_connect.auth.sso import LoginProtocol
from garmin_connect.auth.tokens import OAuth1Token, OAuth2Token
from garmin_connect.clients.garmin import GarminConnect


class FakeResponse:
    """Just enough of requests.Response for the client code."""

    def __init__(self, status_code=200, json_data=None, text=None, content=None):
        self.status_code = status_code
        self._json = json_data
        if content is not None:
            self.content = content
        elif json_data is not None:
            self.content = json.dumps(json_data).encode()
        else:
            self.content = (text or "").encode()
        self.text = text if text is not None else self.content.decode("utf-8", "replace")

    def json(self):
        if self._json is None:
            return json.loads(self.text)
        return self._json


class FakeTransport:
    """Records every request and answers with ``handler`` or a queue of responses."""

    def __init__(self, *responses, handler=None):
        self.calls = []
        self._responses = list(responses)
        self._handler = handler
        self._lock = threading.Lock()

    def request(self, method, url, **kwargs):
        with self._lock:
            self.calls.append({"method": method, "url": url, **kwargs})
            if self._handler is not None:
                return self._handler(method, url, **kwargs)
            if len(self._responses) > 1:
                return self._responses.pop(0)
            return self._responses[0] if self._responses else FakeResponse(200, {"ok": True})

    def close(self):
        pass


class FakeProtocol(LoginProtocol):
    """Login protocol counting its runs; optionally slow or failing."""

    def __init__(self, delay=0.0, login_error=None, exchange_error=None):
        self.delay = delay
        self.login_error = login_error
        self.exchange_error = exchange_error
        self.login_calls = 0
        self.exchange_calls = 0
        self._lock = threading.Lock()

    def login(self, credentials):
        with self._lock:
            self.login_calls += 1
            n = self.login_calls
        time.sleep(self.delay)
        if self.login_error is not None:
            raise self.login_error
        return make_oauth1(f"token-{n}"), make_oauth2(f"login-access-{n}")

    def exchange(self, oauth1):
        with self._lock:
            self.exchange_calls += 1
            n = self.exchange_calls
        time.sleep(self.delay)
        if self.exchange_error is not None:
            raise self.exchange_error
        return make_oauth2(f"refreshed-access-{n}")


def make_oauth1(token="oauth1-token"):
    return OAuth1Token(oauth_token=token, oauth_token_secret="oauth1-secret", domain="garmin.com")


def make_oauth2(access_token="access-token", expired=False):
    now = int(time.time())
    expires_at = now - 10 if expired else now + 3600
    return OAuth2Token(
        access_token=access_token,
        refresh_token="refresh-token",
        scope="CONNECT_READ CONNECT_WRITE",
        jti="jti-1",
        expires_in=3600,
        expires_at=expires_at,
        refresh_token_expires_in=7200,
        refresh_token_expires_at=now + 7200,
    )


@pytest.fixture
def protocol():
    return FakeProtocol()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(protocol, transport):
    """Client with a live session, a fake login protocol and a fake transport."""
    gc = GarminConnect("user@example.com", "secret", protocol=protocol, transport=transport)
    gc.load_token(make_oauth1(), make_oauth2())
    return gc
