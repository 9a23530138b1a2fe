"""Tests for extracting request info."""

import pytest
from starlette.requests import Request

from cloud_functions_diagnostics.request_info import (
    extract_request_info,
    get_request_info,
)


def make_request(
    path="/a/b",
    *,
    scheme="http",
    headers=None,
    server=None,
    client=("10.0.0.1", 51234),
    query_string=b"",
    path_params=None,
    method="GET",
    **extra,
) -> Request:
    """Build a request from an ASGI scope."""
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": query_string,
        "headers": [
            (key.lower().encode(), value.encode())
            for key, value in (
                headers if headers is not None else {"host": "example.com"}
            ).items()
        ],
        "server": server,
        "client": client,
        **extra,
    }
    if scheme is not None:
        scope["scheme"] = scheme
    if path_params is not None:
        scope["path_params"] = path_params
    return Request(scope)


def test_url_without_port():
    """Test the URL is rebuilt from protocol, host and path."""
    info = extract_request_info(make_request())

    assert info["url"] == "http://example.com/a/b"
    assert info["path"] == "/a/b"
    assert info["httpMethod"] == "GET"
    assert info["httpVersion"] == "1.1"
    assert info["headers"] == {"host": "example.com"}


@pytest.mark.parametrize(
    "server, expected",
    [
        (("example.com", 80), "http://example.com/a/b"),
        (("example.com", 443), "http://example.com/a/b"),
        (("10.0.0.2", 8080), "http://example.com:8080/a/b"),
    ],
)
def test_url_port(server, expected):
    """Test default ports are left out of the URL."""
    assert extract_request_info(make_request(server=server))["url"] == expected


def test_host_header_port_is_stripped():
    """Test a port in the Host header is not repeated."""
    request = make_request(headers={"host": "example.com:8080"}, server=("::1", 8080))
    info = extract_request_info(request)

    assert info["url"] == "http://example.com:8080/a/b"
    assert info["connection"]["IPVersion"] == "IPv6"


def test_host_falls_back_to_server():
    """Test the server address is used without a Host header."""
    request = make_request(headers={}, server=("127.0.0.1", 8000))

    assert extract_request_info(request)["url"] == "http://127.0.0.1:8000/a/b"


def test_protocol_from_tls():
    """Test the protocol comes from the TLS extension without a scheme."""
    request = make_request(scheme=None, extensions={"tls": {}})

    assert extract_request_info(request)["url"] == "https://example.com/a/b"


def test_query_is_kept_in_url():
    """Test the query string is part of the URL and parsed into query."""
    info = extract_request_info(make_request(query_string=b"q=1&r=two"))

    assert info["url"] == "http://example.com/a/b?q=1&r=two"
    assert info["query"] == {"q": "1", "r": "two"}


def test_absolute_target_is_used_as_is():
    """Test an absolute request target is not rebuilt."""
    info = extract_request_info(make_request("http://proxy.example.com/x"))

    assert info["url"] == "http://proxy.example.com/x"


def test_empty_collections_are_omitted():
    """Test params, query and body are left out when empty."""
    info = extract_request_info(make_request(path_params={}))

    assert "params" not in info
    assert "query" not in info
    assert "body" not in info


def test_json_body():
    """Test a JSON object body is included."""
    request = make_request(method="POST", headers={"content-type": "application/json"})
    info = extract_request_info(request, b'{"a": 1}')

    assert info["body"] == {"a": 1}
    assert info["connection"]["bytesRead"] == 8


def test_form_body():
    """Test a form encoded body is included."""
    request = make_request(
        method="POST",
        headers={"content-type": "application/x-www-form-urlencoded"},
    )

    assert extract_request_info(request, b"a=1&b=2")["body"] == {"a": "1", "b": "2"}


@pytest.mark.parametrize("body", [b"[1, 2]", b"{}", b"not json", b"\xff"])
def test_unusable_body_is_omitted(body):
    """Test bodies that aren't a non-empty object are left out."""
    assert "body" not in extract_request_info(make_request(), body)


def test_client_and_referer():
    """Test client address, referer and connection details."""
    request = make_request(
        headers={"host": "example.com", "referrer": "https://ref.example.com"},
        server=("10.0.0.2", 8080),
    )
    info = extract_request_info(request)

    assert info["clientIp"] == "10.0.0.1"
    assert info["referer"] == "https://ref.example.com"
    assert info["connection"] == {
        "remoteAddress": "10.0.0.1",
        "remotePort": 51234,
        "bytesRead": 0,
        "bytesWritten": 0,
        "localPort": 8080,
        "localAddress": "10.0.0.2",
        "IPVersion": "IPv4",
    }


def test_no_connection_without_client():
    """Test connection details are absent without a client address."""
    info = extract_request_info(make_request(client=None))

    assert "clientIp" not in info
    assert "connection" not in info


@pytest.mark.parametrize("placeholder", [0, "0"])
def test_placeholder_params_are_dropped(placeholder):
    """Test params holding only the placeholder are removed."""
    info = get_request_info(make_request(path_params={placeholder: None}))

    assert "params" not in info


def test_placeholder_param_is_stripped():
    """Test the placeholder is removed but real params are kept."""
    info = get_request_info(make_request(path_params={"0": None, "id": "42"}))

    assert info["params"] == {"id": "42"}
