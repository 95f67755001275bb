"""
scoring.py - Weighted readiness scoring.

Two independent scorers:
- score_for_agent(): additive points from one agent's weight table (0-100).
- build_breakdown() / overall_score(): five categories that start at 100 and
  lose fixed penalties, combined with fixed category weights.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from agent_profiles import AgentProfile
from crawl_signals import SignalSet

META_DESCRIPTION_OUT_OF_RANGE_FACTOR = 0.5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: int = 0, high: int = 100) -> float:
    return max(low, min(high, value))


def agent_signal_values(signals: SignalSet) -> dict[str, bool]:
    return {
        "robots_allow": signals.robots_allowed,
        "no_ai_directives": not signals.has_ai_restriction,
        "text_without_js": signals.has_visible_text_without_js,
        "meta_title": signals.has_title,
        "meta_description": signals.has_meta_description,
        "https": signals.is_https,
        "status_2xx": signals.is_status_2xx,
        "canonical": signals.has_canonical,
        "schema": signals.has_structured_data,
        "h1": signals.has_h1,
    }


def score_for_agent(profile: AgentProfile, signals: SignalSet) -> int:
    """
    Sum the weights of every satisfied signal.

    A missing meta description loses its full weight; a present one outside
    50-160 characters loses half of it (rounded).
    """
    weights = profile.weights
    values = agent_signal_values(signals)
    points = 0.0
    for name, weight in weights.items():
        if values.get(name):
            points += weight

    if signals.has_meta_description and not signals.meta_description_length_ok:
        points -= round_half_up(weights.get("meta_description", 0) * META_DESCRIPTION_OUT_OF_RANGE_FACTOR)

    return int(clamp(round_half_up(points)))


@dataclass(frozen=True)
class CategoryCheck:
    item: str
    points: int
    penalize_when: bool = False  # item value that costs points


@dataclass(frozen=True)
class Category:
    key: str
    label: str
    weight: float
    checks: tuple[CategoryCheck, ...]


CATEGORIES: tuple[Category, ...] = (
    Category("crawlability", "Crawlability", 0.35, (
        CategoryCheck("http_2xx", 40),
        CategoryCheck("https", 20),
        CategoryCheck("content_type_html", 8),
        CategoryCheck("robots_allowed", 35),
        CategoryCheck("x_robots_ok", 25),
    )),
    Category("discoverability", "Discoverability", 0.25, (
        CategoryCheck("title_ok", 12),
        CategoryCheck("canonical_ok", 8),
        CategoryCheck("meta_noindex", 25, penalize_when=True),
        CategoryCheck("sitemap_in_robots", 8),
    )),
    Category("content", "Content & Semantics", 0.20, (
        CategoryCheck("h1_ok", 10),
        CategoryCheck("text_ratio_ok", 22),
        CategoryCheck("schema_ok", 10),
        CategoryCheck("faq_ok", 4),
    )),
    Category("render", "Render & Robustness", 0.15, (
        CategoryCheck("anti_bot_likely", 15, penalize_when=True),
        CategoryCheck("paywall_hint", 12, penalize_when=True),
        CategoryCheck("soft_404", 25, penalize_when=True),
    )),
    Category("i18n", "Internationalization", 0.05, (
        CategoryCheck("lang_attr", 5),
    )),
)

CATEGORY_WEIGHTS: Mapping[str, float] = {c.key: c.weight for c in CATEGORIES}


@dataclass
class ScoreBreakdown:
    key: str
    category: str
    score: int
    items: dict[str, Any] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "key": self.key, "score": self.score, "items": dict(self.items)}


def category_items(signals: SignalSet, robots_allowed: bool, sitemap_in_robots: bool) -> dict[str, dict[str, Any]]:
    return {
        "crawlability": {
            "http_2xx": signals.is_status_2xx,
            "https": signals.is_https,
            "content_type_html": signals.is_content_type_html,
            "robots_allowed": robots_allowed,
            "x_robots_ok": not (signals.x_robots_noindex or signals.x_robots_noai),
        },
        "discoverability": {
            "title_ok": signals.title_ok,
            "title_length": len(signals.title),
            "canonical_ok": signals.has_canonical,
            "meta_noindex": signals.meta_noindex,
            "sitemap_in_robots": sitemap_in_robots,
        },
        "content": {
            "h1_ok": signals.has_h1,
            "text_ratio_ok": signals.has_visible_text_without_js,
            "text_ratio": signals.text_to_markup_ratio,
            "schema_ok": signals.has_structured_data,
            "faq_ok": signals.has_faq_schema,
        },
        "render": {
            "anti_bot_likely": signals.anti_bot_likely,
            "paywall_hint": signals.paywall_hint,
            "soft_404": signals.looks_soft_404,
        },
        "i18n": {
            "lang_attr": bool(signals.lang),
        },
    }


def build_breakdown(signals: SignalSet, robots_allowed: bool, sitemap_in_robots: bool,
                    categories: tuple[Category, ...] = CATEGORIES) -> list[ScoreBreakdown]:
    items_by_category = category_items(signals, robots_allowed, sitemap_in_robots)
    out: list[ScoreBreakdown] = []
    for category in categories:
        items = items_by_category.get(category.key, {})
        score = 100
        failed: list[str] = []
        for check in category.checks:
            if bool(items.get(check.item)) == check.penalize_when:
                score -= check.points
                failed.append(check.item)
        out.append(ScoreBreakdown(category.key, category.label, max(0, score), items, failed))
    return out


def overall_score(breakdown: list[ScoreBreakdown], weights: Mapping[str, float] = CATEGORY_WEIGHTS) -> int:
    return round_half_up(sum(b.score * weights.get(b.key, 0.0) for b in breakdown))


def check_points(categories: tuple[Category, ...] = CATEGORIES) -> dict[str, int]:
    return {check.item: check.points for c in categories for check in c.checks}


def average_readiness(per_agent: Mapping[str, int]) -> int | None:
    if not per_agent:
        return None
    return round_half_up(sum(per_agent.values()) / len(per_agent))
