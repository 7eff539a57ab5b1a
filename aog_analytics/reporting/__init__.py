"""Reporting utilities for exporting AOG downtime analytics."""

from .exporters import export_excel_report, build_pdf_report

__all__ = ["export_excel_report", "build_pdf_report"]
