"""
Tests for FirstPromoter API client.
Uses responses library to mock HTTP requests to the FirstPromoter API.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests
import responses

from common.config import FirstPromoterCredentials
from common.exceptions import (
    RequestSetupFailed,
    UnknownFailure,
    UpstreamRejected,
    UpstreamUnreachable,
)
from common.firstpromoter_client import (
    FIRSTPROMOTER_API_BASE,
    TRACK_SIGNUP_URL,
    FirstPromoterClient,
    get_firstpromoter_client,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """FirstPromoter client with test credentials."""
    return FirstPromoterClient(api_token="test-token", account_id="acc-1")


@pytest.fixture
def payload():
    return {"tid": "abc123", "email": "a@b.com"}


# ---------------------------------------------------------------------------
# Tests: Initialization
# ---------------------------------------------------------------------------

def test_client_initialization(client):
    assert client.base_url == FIRSTPROMOTER_API_BASE
    assert client.session.headers["Authorization"] == "Bearer test-token"
    assert client.session.headers["Account-ID"] == "acc-1"
    assert client.session.headers["Content-Type"] == "application/json"


def test_client_requires_credentials():
    with pytest.raises(ValueError, match="API token and account id are required"):
        FirstPromoterClient(api_token="", account_id="acc-1")


def test_get_firstpromoter_client():
    """Test the factory function."""
    client = get_firstpromoter_client(FirstPromoterCredentials("env-token", "acc-9"))
    assert client.session.headers["Authorization"] == "Bearer env-token"
    assert client.session.headers["Account-ID"] == "acc-9"


# ---------------------------------------------------------------------------
# Tests: Track Signup
# ---------------------------------------------------------------------------

@responses.activate
def test_track_signup_success(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, json={"id": 1}, status=200)

    result = client.track_signup(payload)

    assert result == {"id": 1}
    assert len(responses.calls) == 1
    request = responses.calls[0].request
    assert request.url == TRACK_SIGNUP_URL
    assert json.loads(request.body) == payload
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Account-ID"] == "acc-1"
    assert request.headers["Content-Type"] == "application/json"


@responses.activate
def test_track_signup_accepts_any_2xx(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, json={"id": 2}, status=201)

    assert client.track_signup(payload) == {"id": 2}


@responses.activate
def test_track_signup_empty_success_body(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, status=204)

    assert client.track_signup(payload) is None


@responses.activate
def test_track_signup_rejected_uses_message(client, payload):
    responses.add(
        responses.POST, TRACK_SIGNUP_URL, json={"message": "dup"}, status=422
    )

    with pytest.raises(UpstreamRejected) as exc_info:
        client.track_signup(payload)

    assert exc_info.value.status_code == 422
    assert str(exc_info.value) == "dup"
    assert exc_info.value.response_body == {"message": "dup"}
    assert len(responses.calls) == 1


@responses.activate
def test_track_signup_rejected_without_message_serialises_body(client, payload):
    body = {"errors": {"tid": ["is invalid"]}}
    responses.add(responses.POST, TRACK_SIGNUP_URL, json=body, status=400)

    with pytest.raises(UpstreamRejected) as exc_info:
        client.track_signup(payload)

    assert exc_info.value.status_code == 400
    assert json.loads(str(exc_info.value)) == body


@responses.activate
def test_track_signup_rejected_plain_text(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, body="Unauthorized", status=401)

    with pytest.raises(UpstreamRejected) as exc_info:
        client.track_signup(payload)

    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "Unauthorized"


@responses.activate
def test_track_signup_rejected_empty_body(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, status=503)

    with pytest.raises(UpstreamRejected) as exc_info:
        client.track_signup(payload)

    assert exc_info.value.status_code == 503
    assert "503" in str(exc_info.value)


@responses.activate
def test_track_signup_connection_error(client, payload):
    responses.add(
        responses.POST,
        TRACK_SIGNUP_URL,
        body=requests.ConnectionError("connection refused"),
    )

    with pytest.raises(UpstreamUnreachable, match="No response from FirstPromoter API."):
        client.track_signup(payload)
    assert len(responses.calls) == 1


@responses.activate
def test_track_signup_timeout(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, body=requests.Timeout("timed out"))

    with pytest.raises(UpstreamUnreachable):
        client.track_signup(payload)


def test_track_signup_request_setup_error(payload):
    client = FirstPromoterClient("test-token", "acc-1", base_url="not-a-url")

    with pytest.raises(RequestSetupFailed, match="Request setup error"):
        client.track_signup(payload)


@responses.activate
def test_track_signup_unknown_error(client, payload):
    responses.add(responses.POST, TRACK_SIGNUP_URL, body=RuntimeError("weird"))

    with pytest.raises(UnknownFailure, match="weird"):
        client.track_signup(payload)


def test_close_closes_session(client):
    client.session = MagicMock()

    client.close()

    client.session.close.assert_called_once_with()
