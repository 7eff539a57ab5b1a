"""Export helpers for AOG downtime analytics."""

from __future__ import annotations

import io
from pathlib import Path

import pandas as pd

from ..analytics.breakdowns import (
    build_aircraft_breakdown,
    build_reason_code_breakdown,
    build_responsible_party_breakdown,
)
from ..analytics.buckets import ThreeBucketBreakdown, breakdown_to_frame, summary_to_frame
from ..analytics.profiling import analyze_milestone_coverage
from ..analytics.stages import BottleneckAnalysis

try:  # Optional dependency for PDF output
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    _REPORTLAB_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    _REPORTLAB_AVAILABLE = False


def export_excel_report(
    prepared_df: pd.DataFrame,
    breakdown: ThreeBucketBreakdown,
    *,
    stages: BottleneckAnalysis | None = None,
    path: str | Path | None = None,
) -> bytes | Path:
    """
    Build an Excel workbook containing the prepared events and the fleet analytics.

    If ``path`` is provided, the workbook is written to disk and the path is returned.
    Otherwise the bytes object is returned for download workflows.
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:  # type: ignore[arg-type]
        prepared_df.to_excel(writer, sheet_name="Events", index=False)
        summary_to_frame(breakdown).to_excel(writer, sheet_name="Summary", index=False)
        breakdown_to_frame(breakdown).to_excel(writer, sheet_name="Three Buckets", index=False)

        if stages is not None:
            stages.to_frame().to_excel(writer, sheet_name="Stages", index=False)

        aircraft = build_aircraft_breakdown(prepared_df)
        if not aircraft.empty:
            aircraft.to_excel(writer, sheet_name="Aircraft Downtime", index=False)

        parties = build_responsible_party_breakdown(prepared_df)
        if not parties.empty:
            parties.to_excel(writer, sheet_name="Responsible Party", index=False)

        reasons = build_reason_code_breakdown(prepared_df)
        if not reasons.empty:
            reasons.to_excel(writer, sheet_name="Reason Codes", index=False)

        coverage = analyze_milestone_coverage(prepared_df)
        if not coverage.empty:
            coverage.to_excel(writer, sheet_name="Milestone Coverage", index=False)

    buffer.seek(0)
    if path is None:
        return buffer.getvalue()

    target = Path(path)
    target.write_bytes(buffer.read())
    return target


def build_pdf_report(
    prepared_df: pd.DataFrame,
    breakdown: ThreeBucketBreakdown,
    *,
    stages: BottleneckAnalysis | None = None,
) -> bytes:
    """Create a lightweight PDF report summarising the three-bucket analytics."""
    if not _REPORTLAB_AVAILABLE:  # pragma: no cover - optional dependency
        raise ImportError("ReportLab is required for PDF export. Install it via `pip install reportlab`.")

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=36,
        rightMargin=36,
        topMargin=42,
        bottomMargin=36,
    )
    styles = getSampleStyleSheet()
    story = [Paragraph("AOG Downtime Analytics", styles["Title"]), Spacer(1, 12)]

    story.extend(
        [
            Paragraph("Headline Metrics", styles["Heading2"]),
            _table(summary_to_frame(breakdown)),
            Spacer(1, 12),
            Paragraph("Three-Bucket Breakdown", styles["Heading2"]),
            _table(breakdown_to_frame(breakdown)),
            Spacer(1, 12),
        ]
    )

    if stages is not None and stages.bottleneck is not None:
        story.extend(
            [
                Paragraph(
                    f"Milestone Stages (bottleneck: {stages.bottleneck.stage}, "
                    f"{stages.bottleneck.average_hours:.2f} h average)",
                    styles["Heading2"],
                ),
                _table(stages.to_frame().drop(columns=["From", "To"])),
                Spacer(1, 12),
            ]
        )

    aircraft = build_aircraft_breakdown(prepared_df).head(15)
    if not aircraft.empty:
        story.extend([Paragraph("Aircraft Downtime", styles["Heading2"]), _table(aircraft), Spacer(1, 12)])

    reasons = build_reason_code_breakdown(prepared_df, top_n=10)
    if not reasons.empty:
        story.extend([Paragraph("Top Reason Codes", styles["Heading2"]), _table(reasons), Spacer(1, 12)])

    doc.build(story)
    buffer.seek(0)
    return buffer.getvalue()


def _table(df: pd.DataFrame) -> Table:
    values = [df.columns.tolist()] + df.astype(str).values.tolist()
    tbl = Table(values, hAlign="LEFT")
    tbl.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#002b55")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
            ]
        )
    )
    return tbl
