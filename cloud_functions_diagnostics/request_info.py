"""Describe an incoming HTTP request for diagnostics metadata."""

import ipaddress
import json
import re
from typing import Any, Optional
from urllib.parse import parse_qsl

from starlette.requests import Request

DEFAULT_PORTS = (80, 443)

# Positional placeholder some routers put into path params
PLACEHOLDER_PARAMS = (0, "0")


def _ip_version(address: Optional[str]) -> Optional[str]:
    try:
        return f"IPv{ipaddress.ip_address(address).version}"
    except ValueError:
        return None


def _extract_body(request: Request, body: bytes) -> Optional[dict]:
    """Decode a JSON object or form encoded body, if there is one."""
    if not body:
        return None

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(body.decode("latin-1"))) or None

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) and data else None


def extract_request_info(request: Request, body: bytes = b"") -> dict[str, Any]:
    """
    Map a request onto the attributes reported with every event.

    ``params``, ``query`` and ``body`` are left out when they are empty.
    ``connection`` is only present when the client address is known.
    """
    scope = request.scope
    headers = request.headers

    local_address, local_port = scope.get("server") or (None, None)
    port = "" if not local_port or local_port in DEFAULT_PORTS else f":{local_port}"

    protocol = scope.get("scheme") or (
        "https" if "tls" in scope.get("extensions", {}) else "http"
    )
    hostname = re.sub(r":\d+$", "", headers.get("host") or local_address or "")

    raw_path = scope.get("raw_path")
    target = raw_path.decode("latin-1") if raw_path else scope.get("path", "")
    query_string = scope.get("query_string", b"").decode("latin-1")
    if query_string:
        target = f"{target}?{query_string}"

    if re.match(r"^https?://", target):
        url = target
    else:
        url = f"{protocol}://{hostname}{port}{target}"

    info: dict[str, Any] = {
        "url": url,
        "path": scope.get("path") or target,
        "httpMethod": request.method,
        "headers": dict(headers),
        "httpVersion": scope.get("http_version"),
    }

    params = dict(scope.get("path_params") or {})
    if params:
        info["params"] = params

    query = dict(request.query_params)
    if query:
        info["query"] = query

    parsed_body = _extract_body(request, body)
    if parsed_body:
        info["body"] = parsed_body

    client = scope.get("client")
    if client:
        info["clientIp"] = client[0]

    referer = headers.get("referer") or headers.get("referrer")
    if referer:
        info["referer"] = referer

    if client:
        info["connection"] = {
            "remoteAddress": client[0],
            "remotePort": client[1],
            "bytesRead": len(body),
            "bytesWritten": 0,
            "localPort": local_port,
            "localAddress": local_address,
            "IPVersion": _ip_version(local_address) if local_address else None,
        }

    return info


def get_request_info(request: Request, body: bytes = b"") -> dict[str, Any]:
    """Extract request info, dropping placeholder path params."""
    info = extract_request_info(request, body)

    params = info.get("params")
    if params is not None:
        for key in PLACEHOLDER_PARAMS:
            params.pop(key, None)
        if not params:
            del info["params"]

    return info
