from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

# Signal names understood by scoring.score_for_agent
SIGNAL_NAMES = (
    "robots_allow",
    "no_ai_directives",
    "text_without_js",
    "meta_title",
    "meta_description",
    "https",
    "status_2xx",
    "canonical",
    "schema",
    "h1",
)


@dataclass(frozen=True)
class AgentProfile:
    key: str
    name: str
    user_agent: str
    robots_token: str
    weights: Mapping[str, int]

    @property
    def total_weight(self) -> int:
        return sum(self.weights.values())


def robots_token_for(user_agent: str) -> str:
    """Map a raw user-agent string to the robots.txt token it answers to."""
    ua = (user_agent or "").lower()
    if "bingbot" in ua:
        return "bingbot"
    if "googlebot" in ua:
        return "googlebot"
    if "perplexity" in ua:
        return "perplexitybot"
    if "claude" in ua:
        return "claudebot"
    if "gptbot" in ua or "oai" in ua or "openai" in ua:
        return "gptbot"
    return "*"


def _profile(key: str, name: str, user_agent: str, **weights: int) -> AgentProfile:
    unknown = set(weights) - set(SIGNAL_NAMES)
    if unknown:
        raise ValueError(f"Unknown signal weights for {key}: {sorted(unknown)}")
    return AgentProfile(key, name, user_agent, robots_token_for(user_agent), MappingProxyType(dict(weights)))


AGENT_PROFILES: tuple[AgentProfile, ...] = (
    _profile(
        "chatgpt", "ChatGPT",
        "Mozilla/5.0 (compatible; OAI-SearchBot/1.0; +https://openai.com/searchbot)",
        robots_allow=30, no_ai_directives=35, text_without_js=10, meta_title=5, meta_description=6,
        https=3, status_2xx=4, canonical=3, schema=2, h1=2,
    ),
    _profile(
        "gemini", "Gemini",
        "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
        robots_allow=28, no_ai_directives=28, text_without_js=12, meta_title=6, meta_description=7,
        https=4, status_2xx=5, canonical=4, schema=4, h1=2,
    ),
    _profile(
        "copilot", "Copilot",
        "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)",
        robots_allow=28, no_ai_directives=28, text_without_js=12, meta_title=5, meta_description=6,
        https=4, status_2xx=5, canonical=4, schema=4, h1=4,
    ),
    _profile(
        "perplexity", "Perplexity",
        "Mozilla/5.0 (compatible; PerplexityBot/1.0; +https://perplexity.ai/perplexitybot)",
        robots_allow=26, no_ai_directives=30, text_without_js=15, meta_title=5, meta_description=6,
        https=4, status_2xx=5, canonical=3, schema=3, h1=3,
    ),
    _profile(
        "claude", "Claude",
        "Mozilla/5.0 (compatible; ClaudeBot/1.0; +claudebot@anthropic.com)",
        robots_allow=26, no_ai_directives=30, text_without_js=12, meta_title=6, meta_description=6,
        https=4, status_2xx=5, canonical=3, schema=4, h1=4,
    ),
)


def get_profile(key: str, profiles: tuple[AgentProfile, ...] = AGENT_PROFILES) -> AgentProfile:
    for p in profiles:
        if p.key == key:
            return p
    raise KeyError(key)
