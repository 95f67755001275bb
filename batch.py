# batch.py
import os
import re
import csv
import json
import sys
import time
import argparse
import logging
from datetime import datetime, timezone
from urllib.parse import urlparse

import config
from agent_profiles import AGENT_PROFILES, get_profile
from audit import AuditFailure, run_audit
from pdf_export import export_audit_pdf

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = ["domain", "status", "overall", "ia_readiness", "top_suggestion"]


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Crawler and AI-assistant readiness audit")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", help="Audit a single URL")
    src.add_argument("--targets", help="Targets file: one 'name,url' or 'url' per line")
    p.add_argument("--strict", action="store_true", help="Stricter static-text threshold (0.22 instead of 0.18)")
    p.add_argument("--campaign", default=config.DEFAULT_CAMPAIGN, help="Campaign folder name under the reports dir")
    p.add_argument("--out-dir", default=config.REPORTS_DIR, help="Reports root directory")
    p.add_argument("--agent", action="append", default=None,
                   help="Restrict to these agent profiles (repeatable): "
                        + ", ".join(a.key for a in AGENT_PROFILES))
    p.add_argument("--no-pdf", action="store_true", help="Skip PDF export")
    return p.parse_args(argv)


def slug_from_url(url: str) -> str:
    url = url.strip()
    parsed = urlparse(url if "://" in url else "https://" + url)

    host = (parsed.netloc or "").lower()
    path = (parsed.path or "").strip("/").lower()

    host = re.sub(r"^www\.", "", host)
    host = host.replace(".", "_")
    path = re.sub(r"[^a-z0-9/_-]+", "", path).replace("/", "_")

    base = host if host else "site"
    if path:
        base = f"{base}_{path}"

    base = re.sub(r"_+", "_", base).strip("_")
    return base or "audit"


def slugify(s: str) -> str:
    s = (s or "").strip().lower()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^a-z0-9_]+", "_", s)
    s = re.sub(r"_+", "_", s).strip("_")
    return s or "client"


def read_targets(path: str) -> list[dict]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Targets file not found: {path}")

    targets = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            raw = line.strip()
            if not raw or raw.startswith("#"):
                continue

            if "," in raw:
                name, url = raw.split(",", 1)
                targets.append({"client_name": name.strip(), "url": url.strip()})
            else:
                targets.append({"client_name": "", "url": raw})
    return targets


def save_json(audit_result: dict, out_path: str) -> None:
    payload = {
        "schema_version": "1",
        "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        **audit_result,
    }
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def summary_row(audit_result: dict) -> dict:
    suggestions = audit_result.get("suggestions") or []
    return {
        "domain": audit_result.get("url", ""),
        "status": audit_result.get("status", 0),
        "overall": audit_result.get("overall", ""),
        "ia_readiness": audit_result.get("ia_readiness") if audit_result.get("ia_readiness") is not None else "",
        "top_suggestion": suggestions[0].get("title", "") if suggestions else (audit_result.get("error") or ""),
    }


def select_profiles(keys):
    if not keys:
        return AGENT_PROFILES
    return tuple(get_profile(k) for k in keys)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )

    if args.url:
        targets = [{"client_name": "", "url": args.url}]
    else:
        try:
            targets = read_targets(args.targets)
        except FileNotFoundError as e:
            logger.error(str(e))
            return 2

    try:
        profiles = select_profiles(args.agent)
    except KeyError as e:
        logger.error(f"Unknown agent profile: {e}")
        return 2

    reports_root = os.path.join(args.out_dir, args.campaign)
    os.makedirs(reports_root, exist_ok=True)
    csv_path = os.path.join(reports_root, "summary.csv")

    total = len(targets)
    logger.info(f"Crawler readiness audit - {total} target(s)")
    ok_count = 0
    failed_count = 0
    rows = []

    for i, t in enumerate(targets, start=1):
        url = t["url"]
        start_time = time.perf_counter()
        logger.info(f"[{i}/{total}] Processing: {url}")

        result = run_audit(url, strict=args.strict, profiles=profiles)
        payload = result.to_dict()
        if t["client_name"]:
            payload["client_name"] = t["client_name"]

        base = slugify(t["client_name"]) if t["client_name"] else slug_from_url(url)
        out_folder = os.path.join(reports_root, base, datetime.now().strftime("%Y-%m-%d"))
        os.makedirs(out_folder, exist_ok=True)

        json_path = os.path.join(out_folder, "audit.json")
        save_json(payload, json_path)
        logger.info(f"  Saved JSON: {json_path}")

        if not args.no_pdf:
            pdf_path = os.path.join(out_folder, "audit.pdf")
            try:
                export_audit_pdf(payload, pdf_path)
                logger.info(f"  Saved PDF:  {pdf_path}")
            except Exception as e:
                logger.error(f"  PDF export failed for {url}: {e}")

        if isinstance(result, AuditFailure):
            failed_count += 1
            status = f"FAILED ({result.status}: {result.error})"
        else:
            ok_count += 1
            status = f"overall {result.overall}/100, readiness {result.ia_readiness if result.ia_readiness is not None else 'n/a'}"

        duration = time.perf_counter() - start_time
        print(f"[{i}/{total}] {payload.get('url') or url}")
        print(f"  result: {status}")
        print(f"  json:  {json_path}")
        print(f"  time:  {duration:.1f}s")
        rows.append(summary_row(payload))

    if rows:
        try:
            with open(csv_path, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=SUMMARY_FIELDS)
                writer.writeheader()
                for row in rows:
                    writer.writerow(row)
            logger.info(f"Saved batch summary CSV: {csv_path}")
        except OSError as e:
            logger.error(f"Failed to write CSV: {e}")

    print(f"Done - {ok_count} audited, {failed_count} failed")
    return 1 if failed_count else 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        print(f"[FATAL] {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(2)
