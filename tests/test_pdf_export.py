from pathlib import Path

from pypdf import PdfReader

import pdf_export


SUCCESS = {
    "url": "https://example.com",
    "status": 200,
    "accessible": False,
    "blocked_reasons": ['robots.txt blocks "oai-searchbot" -> Disallow: /'],
    "overall": 72,
    "breakdown": [
        {"category": "Crawlability", "key": "crawlability", "score": 65,
         "items": {"http_2xx": True, "robots_allowed": False}},
        {"category": "Content & Semantics", "key": "content", "score": 90, "items": {"h1_ok": True}},
    ],
    "suggestions": [
        {"id": "robots", "title": "robots.txt blocks the crawler", "impact_points": 35, "effort": "low",
         "detail": 'Remove "Disallow: /" or global rules for "oai-searchbot" or "*".'},
        {"id": "title", "title": "Optimize <title> (10-70 characters)", "impact_points": 12, "effort": "low"},
    ],
    "extras_suggestions": [{"title": "Enable HSTS (Strict-Transport-Security)"}],
    "per_model_scores": {"ChatGPT": 70, "Gemini": 74},
    "ia_readiness": 72,
}


def _pages(path: str) -> int:
    return len(PdfReader(path).pages)


def test_export_success_report(tmp_path: Path) -> None:
    out = pdf_export.export_audit_pdf(SUCCESS, str(tmp_path / "audit.pdf"))
    assert Path(out).exists()
    assert _pages(out) >= 1


def test_export_without_per_model_scores(tmp_path: Path) -> None:
    data = dict(SUCCESS, per_model_scores=None, ia_readiness=None, suggestions=[])
    out = pdf_export.export_audit_pdf(data, str(tmp_path / "degraded"))
    assert out.endswith(".pdf")
    assert _pages(out) >= 1


def test_export_failure_report(tmp_path: Path) -> None:
    failure = {"url": "https://example.com/missing", "status": 404, "error": "This page does not exist."}
    out = pdf_export.export_audit_pdf(failure, str(tmp_path / "failed.pdf"))
    text = "".join(page.extract_text() or "" for page in PdfReader(out).pages)
    assert "does not exist" in text


def test_score_labels() -> None:
    assert pdf_export.score_to_label(None) == "n/a"
    assert pdf_export.score_to_label(90) == "Ready"
    assert pdf_export.score_to_label(60) == "Needs work"
    assert pdf_export.score_to_label(10) == "At risk"
