"""
audit.py - Crawler readiness audit for one URL.

Usage:
    result = run_audit("example.com", strict=False)
    if isinstance(result, AuditFailure):
        ...  # result.status is 400, the non-2xx page status, or 502
    payload = result.to_dict()

Flow: primary page + robots.txt (concurrently, default identity) -> signals ->
category breakdown + suggestions -> one re-fetch per agent profile
(concurrently) -> per-agent readiness scores.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

import config
from accessibility_heuristic import count_images_missing_alt
from agent_fetch import FetchResult, fetch_page, robots_url_for
from agent_profiles import AGENT_PROFILES, AgentProfile
from crawl_signals import SignalSet, apply_robots, extract_signals
from net_guardrails import DEFAULT_TIMEOUT, is_well_formed, normalize_url
from robots_policy import RobotsPolicy
from scoring import ScoreBreakdown, average_readiness, build_breakdown, overall_score, score_for_agent
from security_sentry import security_header_flags
from suggestions import Suggestion, build_extras_suggestions, build_suggestions

logger = logging.getLogger(__name__)

PAGE_GONE_STATUSES = (404, 410)
UNREACHABLE_STATUS = 502
BAD_REQUEST_STATUS = 400


@dataclass
class AuditFailure:
    url: str
    status: int
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "status": self.status, "error": self.error}


@dataclass
class AgentResult:
    key: str
    name: str
    score: int
    fetch_failed: bool = False


@dataclass
class AuditReport:
    url: str
    final_url: str
    ua_tried: str
    strict: bool
    accessible: bool
    blocked_reasons: list[str]
    overall: int
    breakdown: list[ScoreBreakdown]
    suggestions: list[Suggestion]
    extras: dict[str, Any]
    extras_suggestions: list[dict[str, str]]
    per_model_scores: dict[str, int] | None = None
    ia_readiness: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    status: int = 200

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "final_url": self.final_url,
            "status": self.status,
            "ua_tried": self.ua_tried,
            "strict": self.strict,
            "accessible": self.accessible,
            "blocked_reasons": list(self.blocked_reasons),
            "overall": self.overall,
            "breakdown": [b.to_dict() for b in self.breakdown],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "extras": self.extras,
            "extras_suggestions": list(self.extras_suggestions),
            "per_model_scores": self.per_model_scores,
            "ia_readiness": self.ia_readiness,
            "raw": self.raw,
        }


def blocked_reasons_for(signals: SignalSet, robots_allowed: bool, robots_rules: tuple[str, ...],
                        robots_token: str) -> list[str]:
    """Each reason is independent; a page can be blocked for several at once."""
    reasons: list[str] = []
    if signals.meta_noindex:
        reasons.append('Meta robots: "noindex/none"')
    if signals.x_robots_noindex:
        reasons.append('X-Robots-Tag: "noindex/none"')
    if not robots_allowed:
        rules = ", ".join(robots_rules) if robots_rules else "(Disallow: /)"
        reasons.append(f'robots.txt blocks "{robots_token}" -> {rules}')
    if not signals.is_content_type_html:
        reasons.append(f"Content-Type is not HTML ({signals.content_type or 'unknown'})")
    return reasons


def _score_agent(profile: AgentProfile, url: str, policy: RobotsPolicy, strict: bool,
                 timeout: float) -> AgentResult:
    verdict = policy.evaluate(profile.robots_token)
    fetch_failed = False
    try:
        res = fetch_page(url, profile.user_agent, timeout=timeout)
        fetch_failed = res.failed
        if fetch_failed:
            logger.warning(f"{profile.name}: fetch failed for {url} ({res.error}); scoring degraded signals")
        signals = extract_signals(
            res.body,
            res.headers,
            final_url=res.final_url or url,
            status_code=res.status_code,
            strict=strict,
        )
    except Exception:
        logger.exception(f"{profile.name}: pipeline error for {url}")
        fetch_failed = True
        signals = SignalSet(final_url=url)

    signals = apply_robots(signals, verdict.allowed, verdict.has_ai_block_signal)
    return AgentResult(profile.key, profile.name, score_for_agent(profile, signals), fetch_failed)


def score_agents(url: str, policy: RobotsPolicy, strict: bool = False,
                 profiles: tuple[AgentProfile, ...] = AGENT_PROFILES,
                 timeout: float = DEFAULT_TIMEOUT) -> dict[str, int] | None:
    """
    Per-agent readiness, keyed by agent name in profile order.
    Returns None when there are no profiles or every agent fetch failed.
    """
    if not profiles:
        return None
    with ThreadPoolExecutor(max_workers=len(profiles)) as pool:
        futures = [pool.submit(_score_agent, p, url, policy, strict, timeout) for p in profiles]
        results = [f.result() for f in futures]

    if all(r.fetch_failed for r in results):
        logger.warning(f"All {len(results)} agent fetches failed for {url}; per-model scores unavailable")
        return None
    return {r.name: r.score for r in results}


def _fetch_primary(url: str, timeout: float) -> tuple[FetchResult, FetchResult]:
    with ThreadPoolExecutor(max_workers=2) as pool:
        page_future = pool.submit(fetch_page, url, config.DEFAULT_USER_AGENT, timeout)
        robots_future = pool.submit(fetch_page, robots_url_for(url), config.DEFAULT_USER_AGENT, timeout)
        return page_future.result(), robots_future.result()


def run_audit(url: str, strict: bool = False, profiles: tuple[AgentProfile, ...] = AGENT_PROFILES,
              timeout: float = DEFAULT_TIMEOUT) -> AuditReport | AuditFailure:
    requested = normalize_url(url)
    if not requested or not is_well_formed(requested):
        return AuditFailure(url or "", BAD_REQUEST_STATUS, "Missing or malformed URL.")

    logger.info(f"Auditing {requested} (strict={strict})")
    page, robots_res = _fetch_primary(requested, timeout)

    if page.status_code in PAGE_GONE_STATUSES:
        return AuditFailure(requested, page.status_code, "This page does not exist.")
    if page.failed:
        logger.warning(f"Primary fetch failed for {requested}: {page.error}")
        return AuditFailure(requested, UNREACHABLE_STATUS, "Could not reach the page.")
    if not page.ok:
        logger.warning(f"Primary fetch for {requested} answered HTTP {page.status_code}")
        return AuditFailure(requested, page.status_code, f"Could not reach the page (HTTP {page.status_code}).")

    robots_text = robots_res.body if robots_res.ok else ""
    if not robots_res.ok:
        logger.info(f"robots.txt unavailable for {requested} (HTTP {robots_res.status_code}); allowing all")
    policy = RobotsPolicy(robots_text)

    final_url = page.final_url or requested
    signals = extract_signals(page.body, page.headers, final_url=final_url,
                              status_code=page.status_code, strict=strict)

    default_verdict = policy.evaluate(config.DEFAULT_ROBOTS_TOKEN)
    breakdown = build_breakdown(signals, default_verdict.allowed, bool(policy.sitemaps))
    overall = overall_score(breakdown)
    blocked_reasons = blocked_reasons_for(signals, default_verdict.allowed, default_verdict.rules,
                                          config.DEFAULT_ROBOTS_TOKEN)

    suggestions = build_suggestions(breakdown, signals, count_images_missing_alt(page.body))

    security = security_header_flags(page.headers)
    gptbot_allowed = policy.allows("gptbot")
    extras = {
        "meta_description": {
            "present": signals.has_meta_description,
            "length": signals.meta_description_length,
            "ok": signals.meta_description_length_ok,
            "sample": signals.meta_description[:200],
        },
        "ai_directives": {"meta_noai": signals.meta_noai, "x_robots_noai": signals.x_robots_noai},
        "robots_per_bot": {
            "oai": default_verdict.allowed,
            "gpt": gptbot_allowed,
            "wildcard": policy.allows("*"),
        },
        "security_headers": security,
    }
    extras_suggestions = build_extras_suggestions(signals, security, gptbot_allowed)

    per_model_scores: dict[str, int] | None = None
    ia_readiness: int | None = None
    try:
        per_model_scores = score_agents(final_url, policy, strict=strict, profiles=profiles, timeout=timeout)
        ia_readiness = average_readiness(per_model_scores or {})
    except Exception:
        logger.exception(f"Per-model readiness failed for {requested}")
        per_model_scores = None
        ia_readiness = None

    logger.info(f"Audited {requested}: overall={overall} readiness={ia_readiness}")
    return AuditReport(
        url=requested,
        final_url=final_url,
        ua_tried=config.DEFAULT_USER_AGENT,
        strict=strict,
        accessible=not blocked_reasons,
        blocked_reasons=blocked_reasons,
        overall=overall,
        breakdown=breakdown,
        suggestions=suggestions,
        extras=extras,
        extras_suggestions=extras_suggestions,
        per_model_scores=per_model_scores,
        ia_readiness=ia_readiness,
        raw={
            "status": page.status_code,
            "content_type": signals.content_type,
            "robots_allowed": default_verdict.allowed,
            "robots_status": robots_res.status_code,
            "sitemaps": policy.sitemaps,
        },
        status=page.status_code,
    )
