"""Read and write address tables (CSV or XLSX) with pandas."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd

from ..geocoding.models import AddressRow, Status
from .columns import ColumnRoles

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
EXPORT_SHEET_NAME = "Fixed Addresses"
MESSAGE_COLUMN = "message"


def _is_excel(path: Path) -> bool:
    return path.suffix.lower() in EXCEL_SUFFIXES


def read_records(path: Path | str) -> list[dict[str, Any]]:
    """
    Read the first sheet (or the CSV) as string records.

    Every cell is read as text and empty cells stay empty strings, so
    columns the pipeline does not touch are written back exactly.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input table not found: {path}")

    if _is_excel(path):
        frame = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False, engine="openpyxl")
    else:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")

    logger.info(f"Read {len(frame)} rows with {len(frame.columns)} columns from {path}")
    return frame.to_dict(orient="records")


def default_output_path(path: Path | str) -> Path:
    """``data/addresses.xlsx`` -> ``data/addresses-fixed.xlsx``"""
    path = Path(path)
    return path.with_name(f"{path.stem}-fixed{path.suffix}")


def rows_to_frame(rows: Iterable[AddressRow], roles: ColumnRoles) -> pd.DataFrame:
    records = []
    for row in rows:
        record = dict(row.original)
        if row.final_coords is not None:
            record[roles.lat] = row.final_coords.lat
            record[roles.lon] = row.final_coords.lon
        elif row.status is Status.SKIPPED:
            record[roles.lat] = ""
            record[roles.lon] = ""
        record[MESSAGE_COLUMN] = row.message
        records.append(record)
    return pd.DataFrame.from_records(records)


def export_rows(
    rows: Iterable[AddressRow], roles: ColumnRoles, path: Path | str, source_path: Optional[Path | str] = None
) -> Path:
    """
    Write processed rows with updated coordinates and a message column.

    Args:
        rows: Classified rows, in input order
        roles: Column roles detected on import
        path: Output file; its suffix picks CSV or XLSX
        source_path: Only used for logging

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = rows_to_frame(rows, roles)

    if _is_excel(path):
        frame.to_excel(path, sheet_name=EXPORT_SHEET_NAME, index=False, engine="openpyxl")
    else:
        frame.to_csv(path, index=False, encoding="utf-8")

    logger.info(f"Wrote {len(frame)} rows to {path}" + (f" (from {source_path})" if source_path else ""))
    return path
