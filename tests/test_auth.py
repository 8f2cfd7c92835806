import json

import pytest
from starlette.requests import Request

from auth import AccessGuard, is_mcp_client_request, bearer_token


def make_request(headers=None, query=""):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/api/mcp",
        "headers": raw_headers,
        "query_string": query.encode(),
        "client": ("127.0.0.1", 54321),
    })


# ==================== 请求识别 ====================

def test_plain_browser_request_is_not_mcp_client():
    request = make_request({"accept": "text/html,application/xhtml+xml"})
    assert is_mcp_client_request(request) is False


def test_session_header_marks_mcp_client():
    assert is_mcp_client_request(make_request({"mcp-session-id": "abc123"}))


def test_event_stream_accept_marks_mcp_client():
    request = make_request({"accept": "application/json, text/event-stream"})
    assert is_mcp_client_request(request)


def test_empty_session_header_is_ignored():
    assert is_mcp_client_request(make_request({"mcp-session-id": ""})) is False


# ==================== 认证 ====================

@pytest.mark.parametrize("headers,query", [
    ({}, ""),
    ({"authorization": "Bearer whatever"}, ""),
    ({}, "token=anything"),
    ({"authorization": "Basic abc"}, "token="),
])
def test_open_mode_authorizes_everything(headers, query):
    assert AccessGuard(None).authorize(make_request(headers, query))
    assert AccessGuard("   ").authorize(make_request(headers, query))


def test_blank_secret_means_open_mode():
    guard = AccessGuard(" \t ")
    assert guard.enabled is False
    assert guard.authorize(make_request())
    assert AccessGuard("").enabled is False


def test_bearer_header_authorizes():
    guard = AccessGuard("s3cret")
    assert guard.authorize(make_request({"authorization": "Bearer s3cret"}))


def test_query_token_authorizes():
    guard = AccessGuard("s3cret")
    assert guard.authorize(make_request(query="token=s3cret"))


def test_either_credential_is_enough():
    guard = AccessGuard("s3cret")
    request = make_request({"authorization": "Bearer wrong"}, "token=s3cret")
    assert guard.authorize(request)


@pytest.mark.parametrize("headers,query", [
    ({}, ""),
    ({"authorization": "Bearer wrong"}, ""),
    ({"authorization": "s3cret"}, ""),
    ({"authorization": "bearer s3cret"}, ""),
    ({"authorization": "Bearer s3cret "}, ""),
    ({}, "token=s3cre"),
    ({}, "auth=s3cret"),
])
def test_wrong_credentials_are_rejected(headers, query):
    assert AccessGuard("s3cret").authorize(make_request(headers, query)) is False


def test_configured_secret_is_trimmed():
    guard = AccessGuard("  s3cret\n")
    assert guard.authorize(make_request({"authorization": "Bearer s3cret"}))


def test_bearer_token_extraction():
    assert bearer_token(make_request({"authorization": "Bearer abc"})) == "abc"
    assert bearer_token(make_request({"authorization": "Token abc"})) is None
    assert bearer_token(make_request()) is None


def test_unauthorized_response():
    response = AccessGuard.unauthorized_response()
    assert response.status_code == 401
    assert json.loads(response.body) == {"error": "Unauthorized"}
