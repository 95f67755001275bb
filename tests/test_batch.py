import csv
import json
from pathlib import Path

import batch
from audit import AuditFailure


class _Report:
    def __init__(self, url):
        self.url = url
        self.overall = 81
        self.ia_readiness = 77

    def to_dict(self):
        return {
            "url": self.url,
            "status": 200,
            "overall": self.overall,
            "ia_readiness": self.ia_readiness,
            "suggestions": [{"id": "h1", "title": "Add a descriptive H1", "impact_points": 10, "effort": "low"}],
        }


def _fake_run_audit(calls):
    def _run(url, strict=False, profiles=None, timeout=None):
        calls.append((url, strict, profiles))
        if "missing" in url:
            return AuditFailure(url, 404, "This page does not exist.")
        return _Report(url)
    return _run


def test_slug_from_url():
    assert batch.slug_from_url("https://www.Example.com/Blog/Post-1/") == "example_com_blog_post-1"
    assert batch.slug_from_url("example.com") == "example_com"
    assert batch.slugify("  Acme Roofing, Inc. ") == "acme_roofing_inc"
    assert batch.slugify("") == "client"


def test_read_targets(tmp_path: Path):
    targets = tmp_path / "targets.txt"
    targets.write_text("# comment\n\nAcme, https://acme.example\nhttps://plain.example\n", encoding="utf-8")
    assert batch.read_targets(str(targets)) == [
        {"client_name": "Acme", "url": "https://acme.example"},
        {"client_name": "", "url": "https://plain.example"},
    ]


def test_summary_row_for_failure():
    row = batch.summary_row({"url": "https://x.example", "status": 404, "error": "This page does not exist."})
    assert row["status"] == 404
    assert row["ia_readiness"] == ""
    assert row["top_suggestion"] == "This page does not exist."


def test_main_single_url(monkeypatch, tmp_path: Path):
    calls = []
    monkeypatch.setattr(batch, "run_audit", _fake_run_audit(calls))

    code = batch.main(["--url", "https://example.com", "--out-dir", str(tmp_path), "--campaign", "c1",
                       "--no-pdf", "--strict"])

    assert code == 0
    assert calls[0][0] == "https://example.com"
    assert calls[0][1] is True
    written = list((tmp_path / "c1" / "example_com").glob("*/audit.json"))
    assert len(written) == 1
    payload = json.loads(written[0].read_text(encoding="utf-8"))
    assert payload["schema_version"] == "1"
    assert payload["overall"] == 81
    assert not list((tmp_path / "c1").rglob("*.pdf"))


def test_main_targets_with_failure(monkeypatch, tmp_path: Path):
    calls = []
    monkeypatch.setattr(batch, "run_audit", _fake_run_audit(calls))
    targets = tmp_path / "targets.txt"
    targets.write_text("Acme,https://acme.example\nhttps://acme.example/missing\n", encoding="utf-8")

    code = batch.main(["--targets", str(targets), "--out-dir", str(tmp_path / "reports"), "--no-pdf"])

    assert code == 1
    with open(tmp_path / "reports" / "crawler-readiness" / "summary.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["status"] for r in rows] == ["200", "404"]
    assert rows[0]["top_suggestion"] == "Add a descriptive H1"
    assert (tmp_path / "reports" / "crawler-readiness" / "acme").is_dir()


def test_main_restricts_agents(monkeypatch, tmp_path: Path):
    calls = []
    monkeypatch.setattr(batch, "run_audit", _fake_run_audit(calls))

    code = batch.main(["--url", "example.com", "--agent", "claude", "--agent", "gemini",
                       "--out-dir", str(tmp_path), "--no-pdf"])

    assert code == 0
    assert [p.key for p in calls[0][2]] == ["claude", "gemini"]


def test_main_unknown_agent(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(batch, "run_audit", _fake_run_audit([]))
    assert batch.main(["--url", "example.com", "--agent", "nope", "--out-dir", str(tmp_path)]) == 2


def test_pdf_failure_does_not_abort(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(batch, "run_audit", _fake_run_audit([]))

    def _boom(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(batch, "export_audit_pdf", _boom)
    assert batch.main(["--url", "example.com", "--out-dir", str(tmp_path)]) == 0


def test_main_missing_targets_file(monkeypatch, tmp_path: Path):
    calls = []
    monkeypatch.setattr(batch, "run_audit", _fake_run_audit(calls))
    code = batch.main(["--targets", str(tmp_path / "nope.txt"), "--out-dir", str(tmp_path), "--no-pdf"])
    assert code == 2
    assert calls == []
