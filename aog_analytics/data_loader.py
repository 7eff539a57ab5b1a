"""Utilities for loading AOG event workbooks and CSV exports."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping

import pandas as pd

from .models import resolve_field

logger = logging.getLogger(__name__)

_EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
    ".xls": "xlrd",
}
_ENGINE_PACKAGES = {"openpyxl": "openpyxl", "xlrd": "xlrd"}
_EMPTY_SENTINELS = {"", "none", "nan", "null", "na"}
_MIN_HEADER_MATCHES = 3


def load_events(
    path: str | Path,
    *,
    sheet_name: str | int | None = 0,
    **read_kwargs: Mapping[str, object],
) -> pd.DataFrame:
    """
    Read an AOG event export into a DataFrame.

    Parameters
    ----------
    path:
        Filesystem path to a ``.xlsx``, legacy ``.xls`` or ``.csv`` file.
    sheet_name:
        Worksheet to read. Mirrors ``pandas.read_excel``; ignored for CSV.
    read_kwargs:
        Extra keyword arguments forwarded to the pandas reader.

    Returns
    -------
    pandas.DataFrame

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ImportError
        When the reader engine for the file type (``openpyxl`` or ``xlrd``) is not installed.
    """

    target = Path(path)
    if not target.exists():
        raise FileNotFoundError(f"Event file not found: {target}")

    suffix = target.suffix.lower()
    if suffix == ".csv":
        frame = pd.read_csv(target, **read_kwargs)
    else:
        engine = read_kwargs.pop("engine", _EXCEL_ENGINES.get(suffix, "openpyxl"))
        try:
            frame = pd.read_excel(target, sheet_name=sheet_name, engine=engine, **read_kwargs)
        except ImportError as exc:  # pragma: no cover - depends on environment
            package = _ENGINE_PACKAGES.get(str(engine), str(engine))
            raise ImportError(
                f"Reading {suffix} files requires the '{package}' package. "
                f"Install it via `pip install {package}` and retry."
            ) from exc

    cleaned = _clean_workbook_frame(frame)
    logger.info("Loaded event file", extra={"path": str(target), "rows": len(cleaned), "columns": len(cleaned.columns)})
    return cleaned


def available_sheets(path: str | Path) -> Iterable[str]:
    """Return the worksheet names available in an event workbook."""
    target = Path(path)
    if not target.exists():
        raise FileNotFoundError(f"Event file not found: {target}")

    engine = _EXCEL_ENGINES.get(target.suffix.lower(), "openpyxl")
    try:
        xls = pd.ExcelFile(target, engine=engine)
    except ImportError as exc:  # pragma: no cover - depends on environment
        raise ImportError(
            f"Inspecting {target.suffix} files requires the '{engine}' package. "
            f"Install it via `pip install {engine}` and retry."
        ) from exc

    return xls.sheet_names


def _clean_workbook_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Repair common header issues (title rows above the header / unnamed columns)."""
    if df.empty:
        return df

    df = _promote_header_row(df)
    df = df.dropna(axis=1, how="all")

    df.columns = _deduplicate_headers([str(col).strip() for col in df.columns])

    col_series = pd.Series(df.columns, dtype="string")
    unnamed_mask = col_series.str.lower().str.startswith("unnamed")
    df = df.loc[:, ~unnamed_mask.values]

    df = df.dropna(axis=0, how="all")
    return df.reset_index(drop=True)


def _is_header_label(value: object) -> bool:
    text = str(value).strip()
    if text.lower() in _EMPTY_SENTINELS:
        return False
    return resolve_field(text) is not None or text.lower() in {"start time", "finish time", "location"}


def _promote_header_row(df: pd.DataFrame) -> pd.DataFrame:
    """Use the first row that looks like event headers when exports prepend a title block."""
    if df.empty:
        return df

    current_matches = sum(1 for column in df.columns if _is_header_label(column))
    if current_matches >= _MIN_HEADER_MATCHES:
        return df.rename(columns=lambda c: str(c).strip())

    max_scan = min(len(df), 10)
    for idx in range(max_scan):
        row = df.iloc[idx]
        if sum(1 for value in row if _is_header_label(value)) < _MIN_HEADER_MATCHES:
            continue

        new_columns = _deduplicate_headers(
            [
                _safe_column_label(value, position=index)
                for index, value in enumerate(row)
            ]
        )
        cleaned = df.iloc[idx + 1 :].copy()
        cleaned.columns = new_columns
        cleaned.reset_index(drop=True, inplace=True)
        logger.debug("Promoted header row", extra={"row": idx})
        return cleaned

    return df.rename(columns=lambda c: str(c).strip())


def _safe_column_label(value: object, *, position: int) -> str:
    text = str(value).strip()
    if not text or text.lower() in _EMPTY_SENTINELS:
        return f"column_{position+1}"
    return text


def _deduplicate_headers(headers: Iterable[str]) -> list[str]:
    result: list[str] = []
    seen: dict[str, int] = {}
    for header in headers:
        candidate = header or "column"
        count = seen.get(candidate, 0) + 1
        seen[candidate] = count
        if count > 1:
            candidate = f"{candidate}_{count}"
        result.append(candidate)
    return result
