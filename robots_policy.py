"""
robots_policy.py - Pragmatic robots.txt evaluation per crawler token.

Only a full-site block (`Disallow: /` in the selected group) counts as
blocked. Narrower paths and Allow/Disallow precedence are not resolved.
"""
from __future__ import annotations

from dataclasses import dataclass, field

WILDCARD = "*"

# UTF-8 BOM, decoded properly or as latin-1 when the server sends no charset
BYTE_ORDER_MARKS = ("\ufeff", "\u00ef\u00bb\u00bf")

# Substrings that identify AI retrieval/training crawlers in a robots.txt.
AI_CRAWLER_MARKERS = (
    "gptbot",
    "oai-searchbot",
    "chatgpt-user",
    "openai",
    "perplexity",
    "claude",
    "anthropic",
    "google-extended",
    "ccbot",
)


@dataclass(frozen=True)
class RobotsRule:
    directive: str  # "allow" | "disallow"
    path: str


@dataclass
class RobotsRuleSet:
    groups: dict[str, list[RobotsRule]] = field(default_factory=dict)
    sitemaps: list[str] = field(default_factory=list)
    has_disallow: bool = False

    def rules_for(self, token: str) -> list[RobotsRule]:
        token = (token or "").strip().lower()
        if token in self.groups:
            return self.groups[token]
        return self.groups.get(WILDCARD, [])

    @property
    def empty(self) -> bool:
        return not self.groups


@dataclass(frozen=True)
class RobotsVerdict:
    allowed: bool = True
    has_ai_block_signal: bool = False
    rules: tuple[str, ...] = ()


def parse_robots(text: str | None) -> RobotsRuleSet:
    ruleset = RobotsRuleSet()
    current: str | None = None

    text = text or ""
    for bom in BYTE_ORDER_MARKS:
        if text.startswith(bom):
            text = text[len(bom):]
            break

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "#" in line:
            line = line.split("#", 1)[0].strip()
        if ":" not in line:
            continue

        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            if not value:
                continue
            current = value.lower()
            ruleset.groups.setdefault(current, [])
        elif key in ("allow", "disallow"):
            if key == "disallow":
                ruleset.has_disallow = True
            if current is None:
                continue
            ruleset.groups[current].append(RobotsRule(key, value))
        elif key == "sitemap" and value:
            ruleset.sitemaps.append(value)

    return ruleset


def has_ai_block_signal(text: str | None, ruleset: RobotsRuleSet) -> bool:
    """AI crawler named anywhere in the file and at least one Disallow anywhere."""
    lower = (text or "").lower()
    return ruleset.has_disallow and any(marker in lower for marker in AI_CRAWLER_MARKERS)


def evaluate_ruleset(ruleset: RobotsRuleSet, ai_block: bool, agent_token: str) -> RobotsVerdict:
    if ruleset.empty:
        return RobotsVerdict()
    selected = ruleset.rules_for(agent_token)
    blocked = any(r.directive == "disallow" and r.path == "/" for r in selected)
    return RobotsVerdict(
        allowed=not blocked,
        has_ai_block_signal=ai_block,
        rules=tuple(f"{r.directive.capitalize()}: {r.path}" for r in selected),
    )


def evaluate(robots_text: str | None, agent_token: str) -> RobotsVerdict:
    """
    Fail-open: empty or unparsable text (no user-agent group at all) is
    allowed with no AI block signal.
    """
    ruleset = parse_robots(robots_text)
    return evaluate_ruleset(ruleset, has_ai_block_signal(robots_text, ruleset), agent_token)


class RobotsPolicy:
    """Parse once per audit, then answer per-agent queries."""

    def __init__(self, robots_text: str | None):
        self.text = robots_text or ""
        self.ruleset = parse_robots(self.text)
        self.ai_block = has_ai_block_signal(self.text, self.ruleset) if not self.ruleset.empty else False

    def evaluate(self, agent_token: str) -> RobotsVerdict:
        return evaluate_ruleset(self.ruleset, self.ai_block, agent_token)

    def allows(self, agent_token: str) -> bool:
        return self.evaluate(agent_token).allowed

    @property
    def sitemaps(self) -> list[str]:
        return list(self.ruleset.sitemaps)
