# pdf_export.py
import os
import datetime as dt
from typing import Any, TypeAlias

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    HRFlowable,
    Flowable,
)
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from xml.sax.saxutils import escape

import config

BODY_FONT = "DejaVuSans"
BOLD_FONT = "DejaVuSans-Bold"

TableData: TypeAlias = list[list[Any]]

EFFORT_LABELS = {"low": "Low", "medium": "Medium", "high": "High"}


def _register_fonts() -> tuple[str, str]:
    global BODY_FONT, BOLD_FONT
    body_path = os.path.join(config.FONTS_DIR, "DejaVuSans.ttf")
    bold_path = os.path.join(config.FONTS_DIR, "DejaVuSans-Bold.ttf")

    if os.path.exists(body_path) and os.path.exists(bold_path):
        pdfmetrics.registerFont(TTFont(BODY_FONT, body_path))
        pdfmetrics.registerFont(TTFont(BOLD_FONT, bold_path))
        pdfmetrics.registerFontFamily(
            BODY_FONT,
            normal=BODY_FONT,
            bold=BOLD_FONT,
            italic=BODY_FONT,
            boldItalic=BOLD_FONT,
        )
        return BODY_FONT, BOLD_FONT

    BODY_FONT = "Helvetica"
    BOLD_FONT = "Helvetica-Bold"
    return BODY_FONT, BOLD_FONT


def score_to_label(score: int | None) -> str:
    if score is None:
        return "n/a"
    if score >= 85:
        return "Ready"
    if score >= 60:
        return "Needs work"
    return "At risk"


def score_color(score: int | None) -> colors.Color:
    if score is None:
        return colors.HexColor("#6b7280")
    if score >= 85:
        return colors.HexColor("#15803d")
    if score >= 60:
        return colors.HexColor("#b45309")
    return colors.HexColor("#b91c1c")


def _p(text: Any, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(str(text if text is not None else "")), style)


def export_audit_pdf(audit_result: dict, out_path: str) -> str:
    """Render an audit result dict (AuditReport.to_dict() or AuditFailure.to_dict()) to PDF."""
    body_font, bold_font = _register_fonts()

    if not out_path.lower().endswith(".pdf"):
        out_path += ".pdf"

    doc = SimpleDocTemplate(
        out_path,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=16 * mm,
        bottomMargin=16 * mm,
        title="Crawler Readiness Audit",
        author="Crawler Readiness Audit",
    )

    styles = getSampleStyleSheet()
    for s in styles.byName.values():
        s.fontName = body_font

    styles.add(ParagraphStyle(
        name="H1",
        fontName=bold_font,
        fontSize=18,
        leading=22,
        textColor=colors.HexColor("#111827"),
    ))
    styles.add(ParagraphStyle(
        name="H2",
        fontName=bold_font,
        fontSize=13,
        leading=17,
        textColor=colors.HexColor("#111827"),
        spaceBefore=12,
        spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        name="Body",
        fontName=body_font,
        fontSize=10,
        leading=14,
        textColor=colors.HexColor("#111827"),
    ))
    styles.add(ParagraphStyle(
        name="Small",
        fontName=body_font,
        fontSize=8.5,
        leading=12,
        textColor=colors.HexColor("#374151"),
    ))
    styles.add(ParagraphStyle(
        name="Meta",
        fontName=body_font,
        fontSize=8,
        leading=10,
        textColor=colors.HexColor("#6b7280"),
    ))

    def _style_table(tbl: Table, header: bool = True) -> None:
        style = [
            ("FONTNAME", (0, 0), (-1, -1), body_font),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.2, colors.HexColor("#e5e7eb")),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
        if header:
            style += [
                ("FONTNAME", (0, 0), (-1, 0), bold_font),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
            ]
        tbl.setStyle(TableStyle(style))

    url = audit_result.get("url", "")
    story: list[Flowable] = [
        _p("Crawler Readiness Audit", styles["H1"]),
        Spacer(1, 4),
        _p(f"Website: {url}", styles["Body"]),
        _p(f"Date: {dt.date.today().strftime('%Y-%m-%d')}", styles["Meta"]),
        HRFlowable(width="100%", color=colors.HexColor("#e5e7eb"), spaceBefore=6, spaceAfter=6),
    ]

    if audit_result.get("error"):
        story.append(_p("The audit could not be completed", styles["H2"]))
        story.append(_p(f"HTTP status: {audit_result.get('status')}", styles["Body"]))
        story.append(_p(audit_result.get("error"), styles["Body"]))
        doc.build(story)
        return out_path

    overall = audit_result.get("overall")
    readiness = audit_result.get("ia_readiness")
    summary: TableData = [
        ["Overall score", "AI readiness", "Verdict"],
        [
            f"{overall}/100 ({score_to_label(overall)})",
            f"{readiness}/100 ({score_to_label(readiness)})" if readiness is not None else "n/a",
            "Accessible" if audit_result.get("accessible") else "Blocked",
        ],
    ]
    tbl = Table(summary, colWidths=[58 * mm, 58 * mm, 58 * mm])
    _style_table(tbl)
    tbl.setStyle(TableStyle([
        ("TEXTCOLOR", (0, 1), (0, 1), score_color(overall)),
        ("TEXTCOLOR", (1, 1), (1, 1), score_color(readiness)),
    ]))
    story.append(tbl)

    reasons = audit_result.get("blocked_reasons") or []
    if reasons:
        story.append(_p("Why crawlers are blocked", styles["H2"]))
        for reason in reasons:
            story.append(_p(f"- {reason}", styles["Body"]))

    story.append(_p("Category breakdown", styles["H2"]))
    rows: TableData = [["Category", "Score", "Checks"]]
    for b in audit_result.get("breakdown") or []:
        items = b.get("items") or {}
        checks = ", ".join(f"{k}={v}" for k, v in items.items())
        rows.append([_p(b.get("category"), styles["Small"]), str(b.get("score")), _p(checks, styles["Small"])])
    tbl = Table(rows, colWidths=[40 * mm, 16 * mm, 118 * mm])
    _style_table(tbl)
    story.append(tbl)

    per_model = audit_result.get("per_model_scores")
    story.append(_p("Readiness per crawler", styles["H2"]))
    if per_model:
        rows = [["Crawler", "Score", "Assessment"]]
        for name, score in per_model.items():
            rows.append([name, str(score), score_to_label(score)])
        tbl = Table(rows, colWidths=[58 * mm, 30 * mm, 86 * mm])
        _style_table(tbl)
        story.append(tbl)
    else:
        story.append(_p("Per-crawler scores were not available for this run.", styles["Small"]))

    suggestions = audit_result.get("suggestions") or []
    story.append(_p("Recommended fixes (highest impact first)", styles["H2"]))
    if suggestions:
        rows = [["Fix", "Impact", "Effort"]]
        for s in suggestions:
            text = s.get("title", "")
            if s.get("detail"):
                text = f"{text} - {s['detail']}"
            rows.append([
                _p(text, styles["Small"]),
                f"+{s.get('impact_points', 0)}",
                EFFORT_LABELS.get(s.get("effort"), s.get("effort", "")),
            ])
        tbl = Table(rows, colWidths=[124 * mm, 20 * mm, 30 * mm])
        _style_table(tbl)
        story.append(tbl)
    else:
        story.append(_p("No fixes needed for these checks.", styles["Small"]))

    extras_suggestions = audit_result.get("extras_suggestions") or []
    if extras_suggestions:
        story.append(_p("Additional notes", styles["H2"]))
        for item in extras_suggestions:
            line = item.get("title", "")
            if item.get("detail"):
                line = f"{line} ({item['detail']})"
            story.append(_p(f"- {line}", styles["Body"]))

    story.append(Spacer(1, 10))
    story.append(_p(
        "Note: only server-delivered HTML was inspected; content rendered by JavaScript is not evaluated.",
        styles["Meta"],
    ))
    doc.build(story)
    return out_path
