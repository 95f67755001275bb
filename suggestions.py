from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from crawl_signals import META_DESCRIPTION_MAX, META_DESCRIPTION_MIN, SignalSet
from scoring import ScoreBreakdown, check_points

ALLOWED_EFFORTS = {"low", "medium", "high"}
EFFORT_ALIASES = {"med": "medium", "mid": "medium", "easy": "low", "hard": "high"}

IMG_ALT_IMPACT = 8
META_DESCRIPTION_IMPACT = 5


@dataclass(frozen=True)
class Suggestion:
    id: str
    title: str
    impact_points: int
    effort: str
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if out["detail"] is None:
            out.pop("detail")
        return out


# check item -> (suggestion id, title, effort, detail)
SUGGESTION_CATALOGUE: Dict[str, tuple] = {
    "http_2xx": ("http", "URL does not answer with a 2xx status", "medium", None),
    "https": ("https", "Serve the page over HTTPS", "low", None),
    "content_type_html": (
        "ctype", "Send a text/html Content-Type", "low",
        "e.g. Content-Type: text/html; charset=utf-8",
    ),
    "robots_allowed": (
        "robots", "robots.txt blocks the crawler", "low",
        'Remove "Disallow: /" or global rules for "oai-searchbot" or "*".',
    ),
    "x_robots_ok": (
        "xrobots", "Remove X-Robots-Tag noindex/none/noai", "low",
        'Response header X-Robots-Tag: drop "noindex", "none" and "noai".',
    ),
    "title_ok": (
        "title", "Optimize <title> (10-70 characters)", "low",
        "Include the focus keyword and the brand; avoid long or duplicated titles.",
    ),
    "canonical_ok": (
        "canonical", 'Add <link rel="canonical">', "low",
        'e.g. <link rel="canonical" href="https://your-domain.com/path/" />',
    ),
    "meta_noindex": (
        "noindex", "Remove meta robots noindex/none", "low",
        'e.g. <meta name="robots" content="index, follow">',
    ),
    "sitemap_in_robots": (
        "sitemap", "Declare the sitemap in robots.txt", "low",
        "e.g. Sitemap: https://your-domain.com/sitemap.xml",
    ),
    "h1_ok": (
        "h1", "Add a descriptive H1", "low",
        "One H1 per page, clear and carrying the main keyword.",
    ),
    "text_ratio_ok": (
        "ssr", "Serve content in the initial HTML (SSR/prerender)", "medium",
        "Avoid empty shells that depend entirely on JavaScript for critical content.",
    ),
    "schema_ok": (
        "schema", "Add schema.org markup (JSON-LD)", "medium",
        "Use Article, Product, Organization and similar types as appropriate.",
    ),
    "faq_ok": (
        "faq", "Add FAQPage/HowTo structured data", "low",
        "Mark up common questions in JSON-LD where it applies.",
    ),
    "anti_bot_likely": (
        "antibot", "Avoid anti-bot blocking of legitimate crawlers", "medium",
        "Allow known bots with user-agent allow-lists or dedicated rules.",
    ),
    "paywall_hint": (
        "paywall", "Avoid a hard paywall on key content", "high",
        "Expose a partial view or an accessible excerpt for indexing.",
    ),
    "soft_404": (
        "soft404", "The page looks like a soft 404", "medium",
        "Return a real 404 from the server or serve useful, non-404 content.",
    ),
    "lang_attr": (
        "lang", "Set the lang attribute on <html>", "low",
        'e.g. <html lang="en">',
    ),
}


def normalize_effort(effort: Optional[str]) -> str:
    value = (effort or "").strip().lower()
    value = EFFORT_ALIASES.get(value, value)
    return value if value in ALLOWED_EFFORTS else "medium"


def enforce_suggestion_policy(suggestions: List[Suggestion]) -> List[Suggestion]:
    """
    Normalize effort, drop non-positive impacts, keep one suggestion per id
    (highest impact wins) and sort by impact, descending. Ties keep input order.
    """
    if not suggestions:
        return []

    by_id: Dict[str, Suggestion] = {}
    order: List[str] = []
    for s in suggestions:
        if not isinstance(s, Suggestion) or s.impact_points <= 0:
            continue
        s = Suggestion(s.id, s.title, int(s.impact_points), normalize_effort(s.effort), s.detail)
        if s.id not in by_id:
            order.append(s.id)
            by_id[s.id] = s
        elif s.impact_points > by_id[s.id].impact_points:
            by_id[s.id] = s

    out = [by_id[i] for i in order]
    out.sort(key=lambda s: s.impact_points, reverse=True)
    return out


def suggestions_from_breakdown(breakdown: List[ScoreBreakdown]) -> List[Suggestion]:
    points = check_points()
    out: List[Suggestion] = []
    for category in breakdown:
        for item in category.failed:
            entry = SUGGESTION_CATALOGUE.get(item)
            if entry is None:
                continue
            sid, title, effort, detail = entry
            out.append(Suggestion(sid, title, points.get(item, 0), effort, detail))
    return out


def heuristic_suggestions(images_missing_alt: int, signals: SignalSet) -> List[Suggestion]:
    out: List[Suggestion] = []
    if images_missing_alt > 0:
        out.append(Suggestion(
            "img-alt", "Add alt attributes to images", IMG_ALT_IMPACT, "low",
            f"{images_missing_alt} image(s) without alt text.",
        ))
    if not signals.has_meta_description or not signals.meta_description_length_ok:
        out.append(Suggestion(
            "meta-description", "Improve the meta description", META_DESCRIPTION_IMPACT, "low",
            f"Aim for {META_DESCRIPTION_MIN}-{META_DESCRIPTION_MAX} characters "
            f"(current: {signals.meta_description_length}).",
        ))
    return out


def build_suggestions(breakdown: List[ScoreBreakdown], signals: SignalSet,
                      images_missing_alt: int = 0) -> List[Suggestion]:
    collected = suggestions_from_breakdown(breakdown) + heuristic_suggestions(images_missing_alt, signals)
    return enforce_suggestion_policy(collected)


def build_extras_suggestions(signals: SignalSet, security: Dict[str, bool],
                             gptbot_allowed: bool) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    if not signals.has_meta_description:
        out.append({"title": f"Add a meta description ({META_DESCRIPTION_MIN}-{META_DESCRIPTION_MAX} characters)"})
    elif not signals.meta_description_length_ok:
        out.append({
            "title": f"Adjust the meta description to {META_DESCRIPTION_MIN}-{META_DESCRIPTION_MAX} characters",
            "detail": f"Current: {signals.meta_description_length}",
        })
    if not security.get("hsts"):
        out.append({"title": "Enable HSTS (Strict-Transport-Security)"})
    if not security.get("csp"):
        out.append({"title": "Define a Content-Security-Policy (basic, with frame-ancestors if relevant)"})
    if not security.get("clickjack_protected"):
        out.append({"title": "Protect against clickjacking (X-Frame-Options or CSP frame-ancestors)"})
    if not gptbot_allowed:
        out.append({"title": "robots.txt blocks gptbot (review the rules)"})
    return out
