import logging
import threading

import pytest

import audit
import config
from agent_fetch import FetchResult
from agent_profiles import AGENT_PROFILES

PAGE_URL = "https://example.com/"
ROBOTS_URL = "https://example.com/robots.txt"

GOOD_PAGE = """<html lang="en"><head>
<title>Gutter cleaning in Springfield | Clean Co</title>
<meta name="description" content="We clean gutters, roofs and windows across Springfield with same-week scheduling.">
<link rel="canonical" href="https://example.com/">
<script type="application/ld+json">{"@type": "Organization"}</script>
</head><body><h1>Gutter cleaning</h1>
<p>Family-owned gutter and roof cleaning with fixed prices and insured crews for every single job in town.</p>
</body></html>"""


class _FakeWeb:
    """Serves canned responses; page fetches after the first can be made to fail."""

    def __init__(self, page=None, robots=None, agent_page=None, raise_for=None):
        self.page = page or FetchResult(PAGE_URL, 200, {"content-type": "text/html"}, GOOD_PAGE, PAGE_URL)
        self.robots = robots or FetchResult(ROBOTS_URL, 404, {}, "", ROBOTS_URL)
        self.agent_page = agent_page
        self.raise_for = raise_for
        self.calls = []
        self._lock = threading.Lock()
        self._page_calls = 0

    def __call__(self, url, user_agent, timeout=None, max_bytes=None):
        with self._lock:
            self.calls.append((url, user_agent))
            if url == ROBOTS_URL:
                return self.robots
            self._page_calls += 1
            first = self._page_calls == 1
        if first or self.agent_page is None:
            if not first and self.raise_for and self.raise_for in user_agent:
                raise RuntimeError("boom")
            return self.page
        return self.agent_page


def _install(monkeypatch, web):
    monkeypatch.setattr(audit, "fetch_page", web)
    return web


def test_malformed_url_is_bad_request(monkeypatch):
    web = _install(monkeypatch, _FakeWeb())
    for url in ("", "   ", "https://", None):
        result = audit.run_audit(url)
        assert isinstance(result, audit.AuditFailure)
        assert result.status == 400
    assert web.calls == []


@pytest.mark.parametrize("status", [404, 410])
def test_missing_page_is_terminal(monkeypatch, status):
    _install(monkeypatch, _FakeWeb(page=FetchResult(PAGE_URL, status, {}, "gone", PAGE_URL)))
    result = audit.run_audit("example.com")
    assert isinstance(result, audit.AuditFailure)
    assert result.status == status
    assert result.error == "This page does not exist."
    assert set(result.to_dict()) == {"url", "status", "error"}


def test_unreachable_page_is_502(monkeypatch):
    _install(monkeypatch, _FakeWeb(page=FetchResult(PAGE_URL, 0, error="timeout")))
    result = audit.run_audit("https://example.com/")
    assert isinstance(result, audit.AuditFailure)
    assert result.status == 502
    assert result.error == "Could not reach the page."


def test_successful_audit(monkeypatch):
    web = _install(monkeypatch, _FakeWeb(
        robots=FetchResult(ROBOTS_URL, 200, {}, "User-agent: *\nAllow: /\nSitemap: https://example.com/s.xml\n"),
    ))
    result = audit.run_audit("example.com")

    assert isinstance(result, audit.AuditReport)
    data = result.to_dict()
    assert data["url"] == "https://example.com"
    assert data["accessible"] is True
    assert data["blocked_reasons"] == []
    assert [b["key"] for b in data["breakdown"]] == ["crawlability", "discoverability", "content", "render", "i18n"]
    assert 0 <= data["overall"] <= 100
    assert set(data["per_model_scores"]) == {p.name for p in AGENT_PROFILES}
    assert all(0 <= v <= 100 for v in data["per_model_scores"].values())
    assert data["ia_readiness"] is not None
    assert data["raw"]["sitemaps"] == ["https://example.com/s.xml"]
    assert data["ua_tried"] == config.DEFAULT_USER_AGENT

    # primary page + robots.txt + one fetch per agent
    page_uas = [ua for url, ua in web.calls if url != ROBOTS_URL]
    assert page_uas[0] == config.DEFAULT_USER_AGENT
    assert sorted(page_uas[1:]) == sorted(p.user_agent for p in AGENT_PROFILES)


def test_robots_fetch_failure_fails_open(monkeypatch):
    _install(monkeypatch, _FakeWeb(robots=FetchResult(ROBOTS_URL, 0, error="timeout")))
    result = audit.run_audit("example.com")
    assert isinstance(result, audit.AuditReport)
    assert result.raw["robots_allowed"] is True
    assert result.raw["robots_status"] == 0
    assert not any("robots.txt" in r for r in result.blocked_reasons)


def test_wildcard_block_is_reported(monkeypatch):
    _install(monkeypatch, _FakeWeb(robots=FetchResult(ROBOTS_URL, 200, {}, "User-agent: *\nDisallow: /\n")))
    result = audit.run_audit("example.com")
    assert result.accessible is False
    assert any("robots.txt blocks" in r for r in result.blocked_reasons)
    crawl = next(b for b in result.breakdown if b.key == "crawlability")
    assert "robots_allowed" in crawl.failed
    assert any(s.id == "robots" for s in result.suggestions)


def test_all_agents_failing_keeps_breakdown(monkeypatch):
    _install(monkeypatch, _FakeWeb(agent_page=FetchResult(PAGE_URL, 0, error="timeout")))
    result = audit.run_audit("example.com")
    assert isinstance(result, audit.AuditReport)
    assert result.per_model_scores is None
    assert result.ia_readiness is None
    assert len(result.breakdown) == 5
    assert result.to_dict()["per_model_scores"] is None


def test_one_agent_error_is_isolated(monkeypatch, caplog):
    _install(monkeypatch, _FakeWeb(raise_for="ClaudeBot"))
    with caplog.at_level(logging.ERROR, logger="audit"):
        result = audit.run_audit("example.com")
    errors = [r for r in caplog.records if "pipeline error" in r.getMessage()]
    assert len(errors) == 1
    assert errors[0].exc_info is not None
    scores = result.per_model_scores
    assert set(scores) == {p.name for p in AGENT_PROFILES}
    assert scores["Claude"] < scores["Gemini"]


def test_per_model_phase_error_does_not_abort(monkeypatch):
    _install(monkeypatch, _FakeWeb())

    def _explode(*args, **kwargs):
        raise RuntimeError("pool broke")

    monkeypatch.setattr(audit, "score_agents", _explode)
    result = audit.run_audit("example.com")
    assert isinstance(result, audit.AuditReport)
    assert result.per_model_scores is None
    assert result.ia_readiness is None
    assert result.overall > 0


@pytest.mark.parametrize("status", [403, 500, 503])
def test_non_2xx_page_is_terminal(monkeypatch, status):
    _install(monkeypatch, _FakeWeb(page=FetchResult(PAGE_URL, status, {"content-type": "text/html"}, GOOD_PAGE, PAGE_URL)))
    result = audit.run_audit("example.com")
    assert isinstance(result, audit.AuditFailure)
    assert result.status == status
    assert result.error == f"Could not reach the page (HTTP {status})."


def test_blocked_reasons_are_independent():
    from crawl_signals import SignalSet

    signals = SignalSet(meta_noindex=True, x_robots_noindex=True, content_type="application/pdf")
    reasons = audit.blocked_reasons_for(signals, False, ("Disallow: /",), "gptbot")
    assert len(reasons) == 4
    assert reasons[2] == 'robots.txt blocks "gptbot" -> Disallow: /'
    assert "application/pdf" in reasons[3]


def test_score_agents_without_profiles():
    from robots_policy import RobotsPolicy

    assert audit.score_agents(PAGE_URL, RobotsPolicy(""), profiles=()) is None
