"""
agent_fetch.py - Single GET under a simulated crawler identity.

Usage:
    result = fetch_page("https://example.com", user_agent=profile.user_agent)
    if result.failed:
        ...  # status_code == 0, see result.error
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

import requests

from net_guardrails import (
    DEFAULT_TIMEOUT,
    MAX_HTML_BYTES,
    MAX_REDIRECTS,
    build_headers,
    read_limited_text,
    redact_headers,
    validate_url,
)

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


@dataclass
class FetchResult:
    requested_url: str
    status_code: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    final_url: str = ""
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status_code == 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _failure(url: str, current_url: str, error: str) -> FetchResult:
    logger.debug(f"fetch failed for {url}: {error}")
    return FetchResult(requested_url=url, status_code=0, final_url=current_url, error=error)


def robots_url_for(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/robots.txt"


def fetch_page(url: str, user_agent: str, timeout: float = DEFAULT_TIMEOUT,
               max_bytes: int | None = MAX_HTML_BYTES) -> FetchResult:
    """
    GET `url` with exactly `user_agent`, following redirects.

    Never raises: network errors, guard rejections and the wall-clock timeout
    all come back as a FetchResult with status_code 0. No retries.

    The whole fetch, DNS checks included, runs on a daemon worker that is
    abandoned once `timeout` seconds have passed.
    """
    deadline = time.monotonic() + timeout
    outcome: list[FetchResult] = []

    def _work() -> None:
        try:
            outcome.append(_fetch(url, user_agent, deadline, max_bytes))
        except Exception as exc:
            logger.exception(f"unexpected fetch error for {url}")
            outcome.append(_failure(url, url, f"fetch_error: {type(exc).__name__}"))

    worker = threading.Thread(target=_work, name="agent-fetch", daemon=True)
    worker.start()
    worker.join(timeout)
    if not outcome:
        return _failure(url, url, "timeout")
    return outcome[0]


def _fetch(url: str, user_agent: str, deadline: float, max_bytes: int | None) -> FetchResult:
    headers = build_headers(user_agent)

    try:
        validate_url(url)
    except ValueError as exc:
        return _failure(url, url, f"invalid_url: {exc}")

    session = requests.Session()
    session.max_redirects = MAX_REDIRECTS
    session.trust_env = False

    current_url = url
    redirects = 0
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return _failure(url, current_url, "timeout")
            try:
                resp = session.get(
                    current_url,
                    headers=headers,
                    timeout=remaining,
                    stream=True,
                    allow_redirects=False,
                )
            except requests.Timeout:
                return _failure(url, current_url, "timeout")
            except requests.TooManyRedirects:
                return _failure(url, current_url, "too_many_redirects")
            except requests.RequestException as exc:
                return _failure(url, current_url, f"fetch_error: {type(exc).__name__}")

            status = resp.status_code
            if status in REDIRECT_STATUSES:
                location = (resp.headers or {}).get("Location")
                resp.close()
                if not location:
                    return _failure(url, current_url, "redirect_without_location")
                redirects += 1
                if redirects > MAX_REDIRECTS:
                    return _failure(url, current_url, "too_many_redirects")
                next_url = urljoin(current_url, location)
                try:
                    validate_url(next_url)
                except ValueError as exc:
                    return _failure(url, next_url, f"invalid_url: {exc}")
                current_url = next_url
                continue

            try:
                text, problem = read_limited_text(resp, max_bytes, deadline=deadline)
            except requests.RequestException as exc:
                return _failure(url, current_url, f"fetch_error: {type(exc).__name__}")
            finally:
                resp.close()
            if problem == "timeout":
                return _failure(url, current_url, "timeout")
            result = FetchResult(
                requested_url=url,
                status_code=status,
                headers=redact_headers(resp.headers or {}),
                body=text if problem is None else "",
                final_url=resp.url or current_url,
                error=problem,
            )
            logger.debug(f"fetched {url} as {user_agent!r}: HTTP {status} ({result.final_url})")
            return result
    finally:
        session.close()
