"""Error-row export and import templates.

Rejected rows are written back in the input column shape (plus row number and
error message) so they can be fixed and uploaded again. CSV output uses ";" and
a UTF-8 BOM so spreadsheet applications open it with the right encoding.
"""

from __future__ import annotations

import csv
from io import BytesIO, StringIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from bulkrecon.importing.rows import ImportPreview
from bulkrecon.models import IMPORT_COLUMNS

ERROR_COLUMNS: tuple[str, ...] = ("row_number", *IMPORT_COLUMNS, "error")
CSV_DELIMITER = ";"
CSV_ENCODING = "utf-8-sig"

TEMPLATE_ROWS: list[dict[str, str]] = [
    {
        "employee_number": "EMP001",
        "email": "jan.novak@example.com",
        "training_type_name": "BOZP - Základní",
        "facility_code": "qlar-jenec-dc3",
        "last_training_date": "2024-01-15",
        "trainer": "Jan Novák",
        "company": "Bezpečnostní akademie",
        "note": "Poznámka ke školení",
    },
    {
        "employee_number": "EMP002",
        "email": "petr.svoboda@example.com",
        "training_type_name": "První pomoc",
        "facility_code": "qlar-jenec-dc3",
        "last_training_date": "2024-02-20",
        "trainer": "",
        "company": "",
        "note": "",
    },
]


def error_records(preview: ImportPreview) -> list[dict[str, str | int]]:
    """Error rows as flat records in export column order."""
    return [
        {"row_number": row.row_number, **row.data.as_export_dict(), "error": row.error}
        for row in sorted(preview.errors, key=lambda r: r.row_number)
    ]


def _csv_text(records: list[dict], columns: tuple[str, ...]) -> str:
    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=list(columns), delimiter=CSV_DELIMITER)
    writer.writeheader()
    writer.writerows(records)
    return output.getvalue()


def _xlsx_bytes(records: list[dict], columns: tuple[str, ...], sheet_title: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title

    ws.append(list(columns))
    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="DDDDDD", end_color="DDDDDD", fill_type="solid")
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill

    for record in records:
        ws.append([record.get(column, "") for column in columns])

    for idx, column in enumerate(columns, start=1):
        width = max([len(str(column))] + [len(str(r.get(column, ""))) for r in records])
        ws.column_dimensions[get_column_letter(idx)].width = min(width + 2, 60)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def error_rows_csv(preview: ImportPreview) -> str:
    """CSV text (without BOM) of the rejected rows."""
    return _csv_text(error_records(preview), ERROR_COLUMNS)


def error_rows_xlsx(preview: ImportPreview) -> bytes:
    """XLSX workbook bytes of the rejected rows."""
    return _xlsx_bytes(error_records(preview), ERROR_COLUMNS, "Errors")


def write_error_rows(preview: ImportPreview, path: Path) -> int:
    """Write rejected rows to a .csv or .xlsx file; returns the row count.

    Raises:
        ValueError: If the extension is neither .csv nor .xlsx
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        path.write_text(error_rows_csv(preview), encoding=CSV_ENCODING, newline="")
    elif suffix == ".xlsx":
        path.write_bytes(error_rows_xlsx(preview))
    else:
        raise ValueError(f"Unsupported export format: {path.suffix}. Use CSV or XLSX.")
    return len(preview.errors)


def write_template(path: Path) -> None:
    """Write an import template with sample rows to a .csv or .xlsx file."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        path.write_text(_csv_text(TEMPLATE_ROWS, IMPORT_COLUMNS), encoding=CSV_ENCODING, newline="")
    elif suffix == ".xlsx":
        path.write_bytes(_xlsx_bytes(TEMPLATE_ROWS, IMPORT_COLUMNS, "Trainings"))
    else:
        raise ValueError(f"Unsupported template format: {path.suffix}. Use CSV or XLSX.")
