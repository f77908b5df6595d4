"""Decode CSV/XLSX import files into ImportRow records.

Expected columns (header case and padding ignored):
- employee_number and/or email (at least one column)
- training_type_name, facility_code, last_training_date (required)
- trainer, company, note (optional)
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from bulkrecon.models import ImportRow

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")
REQUIRED_COLUMNS = {"training_type_name", "facility_code", "last_training_date"}
IDENTITY_COLUMNS = {"employee_number", "email"}


def read_import_file(
    file_path: Path,
    max_file_size_mb: int = 5,
    max_rows: int = 50000,
) -> list[ImportRow]:
    """Read an import file into cleaned rows, in file order.

    Args:
        file_path: Path to CSV or XLSX file
        max_file_size_mb: Upload size limit
        max_rows: Row count limit

    Returns:
        One ImportRow per data line (blank lines skipped)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is too large, empty, of an unsupported type,
            or lacks required columns
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Import file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file format: {file_path.suffix}. Use CSV, XLSX or XLS.")

    file_size_mb = file_path.stat().st_size / (1024 * 1024)
    if file_size_mb > max_file_size_mb:
        raise ValueError(
            f"File too large ({file_size_mb:.1f}MB). Maximum allowed: {max_file_size_mb}MB"
        )

    if suffix == ".csv":
        # sep=None sniffs "," vs ";"; utf-8-sig drops a leading BOM
        df = pd.read_csv(
            file_path,
            sep=None,
            engine="python",
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    else:
        df = pd.read_excel(file_path, sheet_name=0, dtype=object)

    return rows_from_dataframe(df, max_rows=max_rows)


def rows_from_dataframe(df: pd.DataFrame, max_rows: int = 50000) -> list[ImportRow]:
    """Validate the header of a decoded sheet and convert its lines to rows."""
    df = df.rename(columns=lambda c: str(c).strip().lower())
    # Whitespace-only cells count as empty, so separator-only lines drop out
    df = df.apply(lambda col: col.map(lambda v: None if isinstance(v, str) and not v.strip() else v))
    df = df.dropna(how="all")

    if df.empty:
        raise ValueError("Import file contains no data rows")

    if len(df) > max_rows:
        raise ValueError(f"Too many rows ({len(df):,}). Maximum allowed: {max_rows:,}")

    columns = set(df.columns)
    missing = REQUIRED_COLUMNS - columns
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(sorted(missing))}")
    if not columns & IDENTITY_COLUMNS:
        raise ValueError("Missing identity column: employee_number or email")

    # NaN/NaT -> None so the row model sees absent values
    df = df.astype(object).where(pd.notna(df), None)

    rows = [ImportRow.from_mapping(record) for record in df.to_dict(orient="records")]
    logger.info(f"Read {len(rows)} rows")
    return rows
