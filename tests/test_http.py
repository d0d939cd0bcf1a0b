"""Tests for the authenticated dispatcher: token handling, retry and error mapping."""

import threading

import pytest
import requests

from garmin_connect.clients.garmin import GarminConnect
from garmin_connect.exceptions import (
    ApiError,
    AuthenticationError,
    AuthNegotiationError,
    TransportError,
)

from conftest import FakeProtocol, FakeResponse, FakeTransport, make_oauth1, make_oauth2

URL = "https://connectapi.garmin.com/activity-service/activity/1"


def make_client(transport, protocol=None, oauth2=None):
    client = GarminConnect(
        "me@example.com", "pw", protocol=protocol or FakeProtocol(), transport=transport
    )
    if oauth2 is not None:
        client.load_token(make_oauth1(), oauth2)
    return client


def test_attaches_bearer_token(client, transport):
    client.get(URL)

    headers = transport.calls[0]["headers"]
    assert headers["Authorization"] == "Bearer access-token"
    assert "User-Agent" in headers


def test_oauth1_token_never_sent(client, transport):
    client.get(URL)
    assert "oauth1-token" not in repr(transport.calls[0])


def test_repeated_get_needs_no_negotiation(client, transport, protocol):
    assert client.get(URL) == {"ok": True}
    assert client.get(URL) == {"ok": True}

    assert len(transport.calls) == 2
    assert protocol.login_calls == 0
    assert protocol.exchange_calls == 0


def test_params_and_headers_are_merged(client, transport):
    client.get(URL, params={"start": 0, "limit": None}, headers={"nk": "NT"})

    call = transport.calls[0]
    assert call["params"] == {"start": 0}
    assert call["headers"]["nk"] == "NT"
    assert call["headers"]["Authorization"] == "Bearer access-token"


def test_binary_and_text_responses():
    transport = FakeTransport(FakeResponse(200, content=b"PK\x03\x04binary"))
    client = make_client(transport, oauth2=make_oauth2())

    assert client.get(URL, response_type="binary") == b"PK\x03\x04binary"
    assert client.get(URL, response_type="text") == "PK\x03\x04binary"


def test_empty_body_is_none():
    client = make_client(FakeTransport(FakeResponse(204)), oauth2=make_oauth2())
    assert client.delete(URL) is None


def test_expired_token_refreshes_before_request():
    transport = FakeTransport()
    protocol = FakeProtocol()
    client = make_client(transport, protocol, oauth2=make_oauth2(expired=True))

    client.get(URL)

    assert protocol.exchange_calls == 1
    assert protocol.login_calls == 0
    assert len(transport.calls) == 1
    assert transport.calls[0]["headers"]["Authorization"] == "Bearer refreshed-access-1"


def test_missing_session_logs_in_before_request():
    transport = FakeTransport()
    protocol = FakeProtocol()
    client = make_client(transport, protocol)

    client.get(URL)

    assert protocol.login_calls == 1
    assert transport.calls[0]["headers"]["Authorization"] == "Bearer login-access-1"


def test_failed_refresh_sends_nothing():
    transport = FakeTransport()
    protocol = FakeProtocol(exchange_error=AuthNegotiationError("exchange broke"))
    client = make_client(transport, protocol, oauth2=make_oauth2(expired=True))

    with pytest.raises(AuthenticationError) as excinfo:
        client.get(URL)

    assert isinstance(excinfo.value.__cause__, AuthNegotiationError)
    assert protocol.exchange_calls == 1
    assert transport.calls == []


def test_unauthorized_refreshes_and_retries_once():
    transport = FakeTransport(FakeResponse(401, text="expired"), FakeResponse(200, {"id": 1}))
    protocol = FakeProtocol()
    client = make_client(transport, protocol, oauth2=make_oauth2())

    assert client.get(URL) == {"id": 1}

    assert protocol.exchange_calls == 1
    assert len(transport.calls) == 2
    assert transport.calls[1]["headers"]["Authorization"] == "Bearer refreshed-access-1"


def test_second_unauthorized_raises_without_more_retries():
    transport = FakeTransport(FakeResponse(401, text="nope"))
    protocol = FakeProtocol()
    client = make_client(transport, protocol, oauth2=make_oauth2())

    with pytest.raises(AuthenticationError):
        client.get(URL)

    assert protocol.exchange_calls == 1
    assert len(transport.calls) == 2


def test_expired_token_and_unauthorized_recovers_only_once():
    transport = FakeTransport(FakeResponse(401, text="nope"))
    protocol = FakeProtocol()
    client = make_client(transport, protocol, oauth2=make_oauth2(expired=True))

    with pytest.raises(AuthenticationError):
        client.get(URL)

    assert protocol.exchange_calls == 1
    assert protocol.login_calls == 0
    assert len(transport.calls) == 1


def test_api_error_is_not_retried(client, transport, protocol):
    transport._responses = [FakeResponse(500, {"message": "server error"})]

    with pytest.raises(ApiError) as excinfo:
        client.get(URL)

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == {"message": "server error"}
    assert URL in str(excinfo.value)
    assert len(transport.calls) == 1
    assert protocol.exchange_calls == 0


def test_not_found_body_kept_as_text(client, transport):
    transport._responses = [FakeResponse(404, text="Not Found")]

    with pytest.raises(ApiError) as excinfo:
        client.get(URL)

    assert excinfo.value.status_code == 404
    assert excinfo.value.body == "Not Found"


def test_network_failure_is_transport_error():
    def handler(method, url, **kwargs):
        raise requests.Timeout("read timed out")

    transport = FakeTransport(handler=handler)
    client = make_client(transport, oauth2=make_oauth2())

    with pytest.raises(TransportError):
        client.get(URL)
    assert len(transport.calls) == 1


def test_unknown_response_type_rejected(client):
    with pytest.raises(ValueError):
        client.get(URL, response_type="xml")


def _run_concurrently(client, count=5):
    barrier = threading.Barrier(count)
    results, errors = [], []

    def call():
        barrier.wait()
        try:
            results.append(client.get(URL))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=call) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results, errors


def test_concurrent_expired_calls_share_one_refresh():
    transport = FakeTransport()
    protocol = FakeProtocol(delay=0.2)
    client = make_client(transport, protocol, oauth2=make_oauth2(expired=True))

    results, errors = _run_concurrently(client)

    assert errors == []
    assert len(results) == 5
    assert protocol.exchange_calls == 1
    assert len(transport.calls) == 5


def test_concurrent_calls_without_session_share_one_login():
    transport = FakeTransport()
    protocol = FakeProtocol(delay=0.2)
    client = make_client(transport, protocol)

    results, errors = _run_concurrently(client)

    assert errors == []
    assert len(results) == 5
    assert protocol.login_calls == 1


def test_concurrent_callers_share_a_failed_refresh():
    transport = FakeTransport()
    protocol = FakeProtocol(delay=0.2, exchange_error=AuthNegotiationError("down"))
    client = make_client(transport, protocol, oauth2=make_oauth2(expired=True))

    results, errors = _run_concurrently(client)

    assert results == []
    assert len(errors) == 5
    assert all(isinstance(e, AuthenticationError) for e in errors)
    assert transport.calls == []
