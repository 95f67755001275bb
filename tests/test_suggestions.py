from crawl_signals import SignalSet
from scoring import build_breakdown
from suggestions import (
    Suggestion,
    build_extras_suggestions,
    build_suggestions,
    enforce_suggestion_policy,
    heuristic_suggestions,
    normalize_effort,
    suggestions_from_breakdown,
)
from security_sentry import security_header_flags
from accessibility_heuristic import count_images_missing_alt

GOOD_DESCRIPTION = SignalSet(has_meta_description=True, meta_description_length_ok=True,
                             meta_description_length=90)


def test_policy_dedupes_keeping_highest_impact():
    out = enforce_suggestion_policy([
        Suggestion("title", "Fix title", 5, "low"),
        Suggestion("h1", "Add H1", 10, "low"),
        Suggestion("title", "Fix title", 12, "low"),
    ])
    assert [(s.id, s.impact_points) for s in out] == [("title", 12), ("h1", 10)]


def test_policy_drops_non_positive_and_normalizes_effort():
    out = enforce_suggestion_policy([
        Suggestion("zero", "No impact", 0, "low"),
        Suggestion("neg", "Negative", -3, "low"),
        Suggestion("a", "A", 4, "MED"),
        Suggestion("b", "B", 4, "whatever"),
        Suggestion("c", "C", 4, " Hard "),
    ])
    assert [s.id for s in out] == ["a", "b", "c"]
    assert [s.effort for s in out] == ["medium", "medium", "high"]


def test_policy_empty():
    assert enforce_suggestion_policy([]) == []


def test_normalize_effort():
    assert normalize_effort(None) == "medium"
    assert normalize_effort("easy") == "low"
    assert normalize_effort("low") == "low"


def test_failed_checks_map_to_catalogue_entries():
    breakdown = build_breakdown(SignalSet(), robots_allowed=False, sitemap_in_robots=False)
    ids = {s.id: s for s in suggestions_from_breakdown(breakdown)}
    assert ids["robots"].impact_points == 35
    assert ids["http"].impact_points == 40
    assert ids["ssr"].effort == "medium"
    assert "noindex" not in ids
    assert "soft404" not in ids


def test_build_suggestions_is_sorted_and_unique():
    breakdown = build_breakdown(SignalSet(), robots_allowed=True, sitemap_in_robots=False)
    out = build_suggestions(breakdown, SignalSet(), images_missing_alt=3)
    impacts = [s.impact_points for s in out]
    assert impacts == sorted(impacts, reverse=True)
    assert len({s.id for s in out}) == len(out)
    assert all(s.effort in {"low", "medium", "high"} for s in out)
    assert "img-alt" in {s.id for s in out}


def test_heuristics():
    assert heuristic_suggestions(0, GOOD_DESCRIPTION) == []
    out = heuristic_suggestions(2, SignalSet())
    assert [(s.id, s.impact_points, s.effort) for s in out] == [("img-alt", 8, "low"), ("meta-description", 5, "low")]
    assert "2 image(s)" in out[0].detail


def test_suggestion_to_dict_omits_missing_detail():
    assert Suggestion("x", "X", 1, "low").to_dict() == {"id": "x", "title": "X", "impact_points": 1, "effort": "low"}
    assert Suggestion("x", "X", 1, "low", "more").to_dict()["detail"] == "more"


def test_extras_suggestions():
    secure = {"hsts": True, "csp": True, "clickjack_protected": True}
    assert build_extras_suggestions(GOOD_DESCRIPTION, secure, gptbot_allowed=True) == []

    out = build_extras_suggestions(SignalSet(), {}, gptbot_allowed=False)
    titles = [s["title"] for s in out]
    assert titles[0].startswith("Add a meta description")
    assert any("HSTS" in t for t in titles)
    assert any("gptbot" in t for t in titles)
    assert len(out) == 5

    short = SignalSet(has_meta_description=True, meta_description_length=12)
    assert build_extras_suggestions(short, secure, True)[0]["detail"] == "Current: 12"


def test_security_header_flags():
    flags = security_header_flags({
        "Strict-Transport-Security": "max-age=63072000",
        "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
    })
    assert flags == {"hsts": True, "csp": True, "clickjack_protected": True}
    assert security_header_flags(None) == {"hsts": False, "csp": False, "clickjack_protected": False}
    assert security_header_flags({"X-Frame-Options": "DENY"})["clickjack_protected"] is True


def test_count_images_missing_alt():
    html = """
    <img src="a.png">
    <img src="b.png" alt="">
    <img src="c.png" alt="Logo">
    <img src="d.png" role="presentation">
    <img src="pixel.gif" width="1" height="1">
    <img src="e.png" width="100">
    """
    assert count_images_missing_alt(html) == 4
    assert count_images_missing_alt('<img src="a.png" role="presentation"><img src="p.gif" width="1" height="1">') == 2
    assert count_images_missing_alt("") == 0
