"""
crawl_signals.py - Regex-based signal extraction from server-delivered HTML.

Usage:
    signals = extract_signals(html, headers, final_url=url, status_code=200)

Pure: no I/O, no DOM. Unmatched patterns yield False/empty, never an exception.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping

import config
from net_guardrails import lower_headers

TITLE_MIN, TITLE_MAX = 10, 70
META_DESCRIPTION_MIN, META_DESCRIPTION_MAX = 50, 160

_ATTR_RE = re.compile(r"""([a-zA-Z_:][-a-zA-Z0-9_:.]*)\s*(?:=\s*("[^"]*"|'[^']*'|[^\s"'>]+))?""")
_META_RE = re.compile(r"<meta\b([^>]*)>", re.IGNORECASE)
_LINK_RE = re.compile(r"<link\b([^>]*)>", re.IGNORECASE)
_HTML_TAG_RE = re.compile(r"<html\b([^>]*)>", re.IGNORECASE)
_TITLE_RE = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1\b[^>]*>([\s\S]*?)</h1>", re.IGNORECASE)
_JSON_LD_RE = re.compile(
    r"""<script\b[^>]*type\s*=\s*["']?application/ld\+json["']?[^>]*>([\s\S]*?)</script>""",
    re.IGNORECASE,
)
_ITEMSCOPE_RE = re.compile(r"<[a-zA-Z][^>]*\bitemscope\b", re.IGNORECASE)
_FAQ_TYPE_RE = re.compile(r'"@type"\s*:\s*"(faqpage|howto)"', re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"</?[^>]+>")
_WS_RE = re.compile(r"\s+")
_DIRECTIVE_SPLIT_RE = re.compile(r"[\s,;:]+")

_PAYWALL_RE = re.compile(r"paywall|suscr[ií]base|subscribe|metered", re.IGNORECASE)
_SOFT_404_RE = re.compile(
    r"(^|\b)(404|not found|p[aá]gina no encontrada|no se encontr[oó]|page not found)(\b|$)",
    re.IGNORECASE,
)
_SOFT_404_TITLE_RE = re.compile(r"<title[^>]*>[^<]*(404|not found)", re.IGNORECASE)
_ANTI_BOT_RE = re.compile(r"cloudflare|captcha", re.IGNORECASE)


@dataclass(frozen=True)
class SignalSet:
    # Scored booleans
    robots_allowed: bool = True
    has_ai_restriction: bool = False
    has_visible_text_without_js: bool = False
    has_title: bool = False
    has_meta_description: bool = False
    meta_description_length_ok: bool = False
    is_https: bool = False
    is_status_2xx: bool = False
    has_canonical: bool = False
    has_structured_data: bool = False
    has_h1: bool = False
    # Derived numeric
    meta_description_length: int = 0
    text_to_markup_ratio: float = 0.0
    # Page detail used by the category breakdown
    title: str = ""
    title_ok: bool = False
    meta_description: str = ""
    meta_noindex: bool = False
    x_robots_noindex: bool = False
    meta_noai: bool = False
    x_robots_noai: bool = False
    x_robots_tag: str = ""
    canonical_href: str = ""
    content_type: str = ""
    is_content_type_html: bool = False
    lang: str = ""
    has_faq_schema: bool = False
    anti_bot_likely: bool = False
    paywall_hint: bool = False
    looks_soft_404: bool = False
    status_code: int = 0
    final_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_attrs(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for name, value in _ATTR_RE.findall(raw or ""):
        name = name.lower()
        if name in attrs:
            continue
        value = value or ""
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        attrs[name] = value.strip()
    return attrs


def _meta_contents(html: str, names: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for m in _META_RE.finditer(html):
        attrs = _parse_attrs(m.group(1))
        if attrs.get("name", "").lower() in names:
            found.append(attrs.get("content", ""))
    return found


def _directive_tokens(value: str) -> set[str]:
    return {t for t in _DIRECTIVE_SPLIT_RE.split((value or "").lower()) if t}


def _strip_tags(fragment: str) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", fragment or "")).strip()


def extract_title(html: str) -> str:
    m = _TITLE_RE.search(html or "")
    return _WS_RE.sub(" ", m.group(1)).strip() if m else ""


def extract_meta_description(html: str) -> str:
    contents = _meta_contents(html or "", ("description",))
    return contents[0].strip() if contents else ""


def extract_canonical(html: str) -> str:
    for m in _LINK_RE.finditer(html or ""):
        attrs = _parse_attrs(m.group(1))
        rels = attrs.get("rel", "").lower().split()
        if "canonical" in rels and attrs.get("href"):
            return attrs["href"]
    return ""


def extract_lang(html: str) -> str:
    m = _HTML_TAG_RE.search(html or "")
    if not m:
        return ""
    return _parse_attrs(m.group(1)).get("lang", "").lower()


def has_h1(html: str) -> bool:
    return any(_strip_tags(m.group(1)) for m in _H1_RE.finditer(html or ""))


def has_structured_data(html: str) -> bool:
    html = html or ""
    return bool(_JSON_LD_RE.search(html) or _ITEMSCOPE_RE.search(html))


def has_faq_schema(html: str) -> bool:
    return any(_FAQ_TYPE_RE.search(block) for block in _JSON_LD_RE.findall(html or ""))


def text_to_markup_ratio(html: str) -> float:
    """Visible text length (scripts, styles and tags stripped) over total HTML length."""
    html = html or ""
    if not html:
        return 0.0
    text = _STYLE_RE.sub("", _SCRIPT_RE.sub("", html))
    text = _WS_RE.sub(" ", _TAG_RE.sub(" ", text)).strip()
    return len(text) / len(html)


def robots_directives(html: str, headers: Mapping[str, Any] | None) -> dict[str, Any]:
    meta_tokens: set[str] = set()
    for content in _meta_contents(html or "", ("robots", "googlebot")):
        meta_tokens |= _directive_tokens(content)
    x_robots = lower_headers(headers).get("x-robots-tag", "")
    header_tokens = _directive_tokens(x_robots)
    return {
        "meta_noindex": bool(meta_tokens & {"noindex", "none"}),
        "meta_noai": "noai" in meta_tokens,
        "x_robots_noindex": bool(header_tokens & {"noindex", "none"}),
        "x_robots_noai": "noai" in header_tokens,
        "x_robots_tag": x_robots.lower(),
    }


def text_ratio_threshold(strict: bool = False) -> float:
    return config.TEXT_RATIO_MIN_STRICT if strict else config.TEXT_RATIO_MIN


def extract_signals(html: str, headers: Mapping[str, Any] | None, final_url: str = "",
                    status_code: int = 0, strict: bool = False) -> SignalSet:
    """
    Derive the page signals from one fetch.

    robots_allowed here only reflects meta/X-Robots noindex; the caller folds
    in the robots.txt verdict with `apply_robots`.
    """
    html = html or ""
    h = lower_headers(headers)
    directives = robots_directives(html, h)

    title = extract_title(html)
    description = extract_meta_description(html)
    ratio = text_to_markup_ratio(html)
    content_type = h.get("content-type", "").lower()
    lower_html = html.lower()
    bot_headers = f"{h.get('server', '')} {h.get('cf-ray', '')}"
    canonical = extract_canonical(html)

    return SignalSet(
        robots_allowed=not (directives["meta_noindex"] or directives["x_robots_noindex"]),
        has_ai_restriction=directives["meta_noai"] or directives["x_robots_noai"],
        has_visible_text_without_js=ratio >= text_ratio_threshold(strict),
        has_title=bool(title),
        has_meta_description=bool(description),
        meta_description_length_ok=META_DESCRIPTION_MIN <= len(description) <= META_DESCRIPTION_MAX,
        is_https=(final_url or "").lower().startswith("https://"),
        is_status_2xx=200 <= status_code < 300,
        has_canonical=bool(canonical),
        has_structured_data=has_structured_data(html),
        has_h1=has_h1(html),
        meta_description_length=len(description),
        text_to_markup_ratio=round(ratio, 4),
        title=title,
        title_ok=TITLE_MIN <= len(title) <= TITLE_MAX,
        meta_description=description,
        meta_noindex=directives["meta_noindex"],
        x_robots_noindex=directives["x_robots_noindex"],
        meta_noai=directives["meta_noai"],
        x_robots_noai=directives["x_robots_noai"],
        x_robots_tag=directives["x_robots_tag"],
        canonical_href=canonical,
        content_type=content_type,
        is_content_type_html="text/html" in content_type,
        lang=extract_lang(html),
        has_faq_schema=has_faq_schema(html),
        anti_bot_likely=bool(_ANTI_BOT_RE.search(bot_headers)),
        paywall_hint=bool(_PAYWALL_RE.search(lower_html)),
        looks_soft_404=bool(_SOFT_404_RE.search(lower_html) or _SOFT_404_TITLE_RE.search(html)),
        status_code=status_code,
        final_url=final_url,
    )


def apply_robots(signals: SignalSet, allowed: bool, ai_block: bool) -> SignalSet:
    """Return a copy with the robots.txt verdict folded in."""
    return replace(
        signals,
        robots_allowed=signals.robots_allowed and allowed,
        has_ai_restriction=signals.has_ai_restriction or ai_block,
    )
