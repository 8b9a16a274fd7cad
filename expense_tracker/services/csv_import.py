"""
CSV Import

Converts pasted or uploaded CSV text into raw rows for the bulk normalizer.

The first line is the header. Column names are matched case-insensitively
('Amount' and 'amount' are the same column). Cell values are passed through
as strings; all coercion happens in the normalizer.
"""

import csv
import io
from typing import Union


REQUIRED_COLUMNS = ("amount",)


class CSVImportError(ValueError):
    """The CSV text has no usable header."""
    pass


def _decode(source: Union[str, bytes], encoding: str) -> str:
    if isinstance(source, bytes):
        try:
            source = source.decode(encoding)
        except UnicodeDecodeError as e:
            raise CSVImportError(f"CSV is not valid {encoding}: {e}")
    return source.lstrip("\ufeff")


def parse_csv_rows(source: Union[str, bytes], encoding: str = "utf-8") -> list[dict[str, str]]:
    """
    Parse CSV text into ordered row mappings.

    Rows where every cell is blank are dropped. Cells beyond the header
    width are ignored.

    Raises:
        CSVImportError: If the header is missing or lacks an amount column
    """
    text = _decode(source, encoding)
    reader = csv.DictReader(io.StringIO(text, newline=""))

    if not reader.fieldnames:
        raise CSVImportError("CSV is empty or has no header row")

    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
    missing = [col for col in REQUIRED_COLUMNS if col not in reader.fieldnames]
    if missing:
        raise CSVImportError(
            f"CSV header is missing required column(s): {', '.join(missing)}"
        )

    rows = []
    for row in reader:
        cleaned = {
            key: (value or "").strip()
            for key, value in row.items()
            if key is not None and key != ""
        }
        if not any(cleaned.values()):
            continue
        rows.append(cleaned)
    return rows
