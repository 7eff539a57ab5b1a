"""Command-line entrypoint for generating AOG downtime analytics."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from aog_analytics import get_settings, load_events, prepare_event_dataframe
from aog_analytics.analytics import (
    aggregate,
    analyze_stages,
    calculate_risk_scores,
    events_from_frame,
    events_to_frame,
    filter_events,
    get_high_risk_aircraft,
)
from aog_analytics.errors import AOGAnalyticsError
from aog_analytics.reporting import export_excel_report, build_pdf_report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Decompose AOG downtime into Technical / Procurement / Ops buckets.")
    parser.add_argument(
        "--events",
        type=Path,
        required=True,
        help="Path to the AOG event export (.xlsx, .xls or .csv).",
    )
    parser.add_argument(
        "--sheet",
        type=str,
        default=None,
        help="Worksheet name to load. Defaults to the first sheet.",
    )
    parser.add_argument(
        "--excel",
        type=Path,
        default=Path("aog_downtime_analytics.xlsx"),
        help="Destination path for the Excel analytics workbook.",
    )
    parser.add_argument(
        "--pdf",
        type=Path,
        default=Path("aog_downtime_analytics.pdf"),
        help="Destination path for the PDF summary report.",
    )
    parser.add_argument("--start", type=pd.Timestamp, default=None, help="Only include events on or after this date.")
    parser.add_argument("--end", type=pd.Timestamp, default=None, help="Only include events on or before this date.")
    parser.add_argument("--aircraft", type=str, default=None, help="Restrict the analysis to one aircraft id.")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> None:
    settings = get_settings()

    df = load_events(args.events, sheet_name=args.sheet if args.sheet is not None else 0)
    prepared = prepare_event_dataframe(df, imported=True)

    events = filter_events(
        events_from_frame(prepared),
        start=args.start.to_pydatetime() if args.start is not None else None,
        end=args.end.to_pydatetime() if args.end is not None else None,
        aircraft_id=args.aircraft,
    )
    selected = prepare_event_dataframe(events_to_frame(events))

    breakdown = aggregate(events)
    stages = analyze_stages(events)

    aircraft = sorted({(event.aircraft_id, event.registration or event.aircraft_id) for event in events})
    high_risk = get_high_risk_aircraft(
        calculate_risk_scores(aircraft, events, window_days=settings.risk_window_days),
        threshold=settings.high_risk_threshold,
    )

    print(f"AOG events: {breakdown.total_events} ({breakdown.complete_events} complete, {breakdown.legacy_events} legacy)")
    for name in ("technical", "procurement", "ops"):
        stats = breakdown.bucket(name)
        print(f" - {name.title():<12} {stats.total_hours:>10.2f} h  avg {stats.average_hours:>8.2f} h  {stats.percentage:>6.2f} %")
    print(f" - {'Legacy':<12} {breakdown.legacy_downtime_hours:>10.2f} h")
    if stages.bottleneck is not None:
        print(f"Bottleneck stage: {stages.bottleneck.stage} ({stages.bottleneck.average_hours:.2f} h average)")
    for result in high_risk:
        print(f"High risk: {result.registration} score {result.risk_score:.1f}")

    export_excel_report(selected, breakdown, stages=stages, path=args.excel)

    pdf_written = False
    try:
        pdf_bytes = build_pdf_report(selected, breakdown, stages=stages)
    except ImportError as exc:
        print(f"[WARN] PDF export skipped: {exc}")
    else:
        args.pdf.write_bytes(pdf_bytes)
        pdf_written = True

    print(f"Analytics generated:\n - Excel: {args.excel}\n - PDF: {args.pdf if pdf_written else 'skipped'}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        level = get_settings().log_level
    except AOGAnalyticsError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        run(args)
    except FileNotFoundError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    except AOGAnalyticsError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
