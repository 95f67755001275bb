from __future__ import annotations

import ipaddress
import re
import socket
import time
from typing import Any, Mapping
from urllib.parse import urlparse

import config

DEFAULT_TIMEOUT = config.FETCH_TIMEOUT
MAX_HTML_BYTES = config.MAX_HTML_BYTES
MAX_REDIRECTS = config.MAX_REDIRECTS
READ_CHUNK_SIZE = 1024
ACCEPT_HTML = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"

PRIVATE_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie", "x-api-key"}

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def build_headers(user_agent: str) -> dict[str, str]:
    return {"User-Agent": user_agent, "Accept": ACCEPT_HTML}


def normalize_url(raw: str | None) -> str:
    """Trim input and prepend https:// when no http(s) scheme is present."""
    value = (raw or "").strip()
    if not value:
        return ""
    if _SCHEME_RE.match(value):
        return value
    return f"https://{value}"


def is_well_formed(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def lower_headers(headers: Mapping[str, Any] | None) -> dict[str, str]:
    return {str(k).lower(): str(v) for k, v in (headers or {}).items()}


def redact_headers(headers: Mapping[str, Any] | None) -> dict[str, str]:
    """Lowercase header names and mask credentials before they reach a report."""
    redacted: dict[str, str] = {}
    for key, value in (headers or {}).items():
        lower = str(key).lower()
        if lower in SENSITIVE_HEADERS:
            redacted[lower] = "[REDACTED]"
        else:
            redacted[lower] = str(value)
    return redacted


def validate_url(url: str) -> None:
    """
    Validates that the URL uses a safe scheme and does not resolve to a private IP.
    Raises ValueError if unsafe.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsafe scheme: {parsed.scheme}")

    if not parsed.hostname:
        raise ValueError("Missing hostname")

    if config.ALLOW_PRIVATE_TARGETS:
        return

    try:
        ip_list = socket.getaddrinfo(parsed.hostname, None)
    except socket.gaierror:
        raise ValueError(f"DNS resolution failed for {parsed.hostname}")

    for _, _, _, _, sockaddr in ip_list:
        ip_str = sockaddr[0]
        ip_obj = ipaddress.ip_address(ip_str)
        for private_range in PRIVATE_IP_RANGES:
            if ip_obj in private_range:
                raise ValueError(f"Target resolves to private IP: {ip_str}")


def read_limited_text(resp: Any, max_bytes: int | None, deadline: float | None = None) -> tuple[str, str | None]:
    """
    Read a streamed response body.

    Returns (text, problem) where problem is None, "too_large" or "timeout".
    A deadline (monotonic seconds) aborts the read once passed.
    """
    if max_bytes is not None:
        content_length = resp.headers.get("Content-Length")
        try:
            if content_length and int(content_length) > max_bytes:
                return "", "too_large"
        except ValueError:
            pass
    chunks: list[bytes] = []
    size = 0
    for chunk in resp.iter_content(chunk_size=READ_CHUNK_SIZE):
        if deadline is not None and time.monotonic() > deadline:
            return "", "timeout"
        if not chunk:
            continue
        chunks.append(chunk)
        size += len(chunk)
        if max_bytes is not None and size > max_bytes:
            return "", "too_large"
    data = b"".join(chunks)
    encoding = resp.encoding or "utf-8"
    try:
        return data.decode(encoding, errors="replace"), None
    except LookupError:
        return data.decode("utf-8", errors="replace"), None
