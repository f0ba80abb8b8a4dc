"""
Unit Tests: ApiClient

Every transport or HTTP failure must surface as ApiError.
"""

from unittest.mock import Mock

import pytest
import requests

from copperx_bot.errors import ApiError
from copperx_bot.services.api_service import ApiClient


def make_response(status=200, payload=None, content=b"{}", reason="OK", invalid_json=False):
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    response.reason = reason
    response.content = content
    if invalid_json:
        response.json.side_effect = ValueError("bad json")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def http():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def client(http):
    return ApiClient(base_url="https://api.test/api/", timeout=5, http=http)


# ============================================================================
# SUCCESS
# ============================================================================

@pytest.mark.asyncio
async def test_get_sends_bearer_token_and_params(client, http):
    http.request.return_value = make_response(payload={"data": [1]})

    result = await client.get("/transfers", token="abc", params={"page": 2})

    assert result == {"data": [1]}
    http.request.assert_called_once_with(
        "GET",
        "https://api.test/api/transfers",
        headers={"Authorization": "Bearer abc"},
        json=None,
        params={"page": 2},
        timeout=5,
    )
    assert http.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_post_without_token(client, http):
    http.request.return_value = make_response(payload={"sid": "s"})

    await client.post("/auth/email-otp/request", data={"email": "a@b.co"})

    _, kwargs = http.request.call_args
    assert kwargs["headers"] == {}
    assert kwargs["json"] == {"email": "a@b.co"}


@pytest.mark.asyncio
async def test_empty_body_returns_empty_dict(client, http):
    http.request.return_value = make_response(status=204, content=b"")

    assert await client.delete("/payees/1", token="abc") == {}


# ============================================================================
# FAILURES
# ============================================================================

@pytest.mark.asyncio
async def test_http_error_prefers_server_message(client, http):
    http.request.return_value = make_response(
        status=400, payload={"message": "Insufficient balance"}, reason="Bad Request",
    )

    with pytest.raises(ApiError) as exc:
        await client.post("/transfers/send", token="abc", data={})

    assert exc.value.status_code == 400
    assert exc.value.message == "Insufficient balance"
    assert str(exc.value) == "API Error (400): Insufficient balance"


@pytest.mark.asyncio
async def test_http_error_joins_message_lists(client, http):
    http.request.return_value = make_response(status=422, payload={"message": ["a is required", "b is invalid"]})

    with pytest.raises(ApiError) as exc:
        await client.post("/payees", token="abc", data={})

    assert exc.value.message == "a is required, b is invalid"


@pytest.mark.asyncio
async def test_http_error_falls_back_to_reason(client, http):
    http.request.return_value = make_response(status=502, reason="Bad Gateway", invalid_json=True)

    with pytest.raises(ApiError) as exc:
        await client.get("/wallets", token="abc")

    assert str(exc.value) == "API Error (502): Bad Gateway"


@pytest.mark.asyncio
async def test_timeout_becomes_408(client, http):
    http.request.side_effect = requests.exceptions.Timeout()

    with pytest.raises(ApiError) as exc:
        await client.get("/wallets", token="abc")

    assert exc.value.status_code == 408


@pytest.mark.asyncio
async def test_connection_error_becomes_status_0(client, http):
    http.request.side_effect = requests.exceptions.ConnectionError("refused")

    with pytest.raises(ApiError) as exc:
        await client.get("/wallets", token="abc")

    assert exc.value.status_code == 0
    assert "refused" in exc.value.message


@pytest.mark.asyncio
async def test_invalid_json_body(client, http):
    http.request.return_value = make_response(content=b"<html>", invalid_json=True)

    with pytest.raises(ApiError) as exc:
        await client.get("/wallets", token="abc")

    assert exc.value.message == "Invalid JSON in API response"
