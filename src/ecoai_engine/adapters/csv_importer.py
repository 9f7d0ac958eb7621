"""CSV parser for bulk energy record imports.

Expected layout (header optional, matched case-insensitively):

    date,totalKwh,departmentName,region
    2026-01-15,1200.5,ML Platform,US
    2026-01-15,300,,EU-NORTH

Parsing is row-independent: a malformed row becomes a RejectedRow and
never aborts the batch. Department and region lookups happen in the
ledger service, which knows the company's departments and overrides.
"""
from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass
from datetime import date, datetime

from ecoai_engine.observability import get_logger

logger = get_logger(__name__)

EXPECTED_COLUMNS: tuple[str, ...] = ("date", "totalkwh", "departmentname", "region")
DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class CsvEnergyRow:
    """A syntactically valid CSV row.

    Attributes:
        row_number: 1-based line number in the source (header counts as line 1).
        usage_date: Parsed calendar date.
        total_kwh: Parsed, non-negative consumption.
        department_name: Department name or None for company-wide usage.
        region: Region code or None to use the company's primary region.
    """

    row_number: int
    usage_date: date
    total_kwh: float
    department_name: str | None
    region: str | None


@dataclass(frozen=True)
class RejectedRow:
    """A row that could not be imported and why."""

    row_number: int
    reason: str

    def to_dict(self) -> dict[str, int | str]:
        return {"row_number": self.row_number, "reason": self.reason}


def _is_header(cells: list[str]) -> bool:
    return bool(cells) and cells[0].strip().lower() == EXPECTED_COLUMNS[0]


def _parse_row(row_number: int, cells: list[str]) -> CsvEnergyRow | RejectedRow:
    if len(cells) < 2:
        return RejectedRow(row_number, "expected at least date and totalKwh columns")

    raw_date = cells[0].strip()
    try:
        usage_date = datetime.strptime(raw_date, DATE_FORMAT).date()
    except ValueError:
        return RejectedRow(row_number, f"invalid date '{raw_date}' (expected YYYY-MM-DD)")

    raw_kwh = cells[1].strip()
    try:
        total_kwh = float(raw_kwh)
    except ValueError:
        return RejectedRow(row_number, f"invalid totalKwh '{raw_kwh}'")
    if not math.isfinite(total_kwh):
        return RejectedRow(row_number, f"invalid totalKwh '{raw_kwh}'")
    if total_kwh < 0:
        return RejectedRow(row_number, f"totalKwh must be >= 0, got {total_kwh}")

    department_name = cells[2].strip() if len(cells) > 2 else ""
    region = cells[3].strip() if len(cells) > 3 else ""

    return CsvEnergyRow(
        row_number=row_number,
        usage_date=usage_date,
        total_kwh=total_kwh,
        department_name=department_name or None,
        region=region or None,
    )


def parse_energy_csv(content: str) -> tuple[list[CsvEnergyRow], list[RejectedRow]]:
    """Parse CSV text into valid rows and rejections.

    Blank lines are skipped silently. A leading header row is detected by
    its first cell ("date") and skipped. Row numbers are physical line
    numbers, so a quoted field containing a newline does not shift the
    numbers reported for later rows.

    Args:
        content: Full CSV text.

    Returns:
        Tuple of (parsed rows, rejected rows), both in source order.
    """
    rows: list[CsvEnergyRow] = []
    rejected: list[RejectedRow] = []

    reader = csv.reader(io.StringIO(content))
    last_line = 0
    for cells in reader:
        # A quoted field may span lines; report the line the record starts on.
        row_number = last_line + 1
        last_line = reader.line_num
        if not any(cell.strip() for cell in cells):
            continue
        if row_number == 1 and _is_header(cells):
            continue

        parsed = _parse_row(row_number, cells)
        if isinstance(parsed, RejectedRow):
            logger.warning("csv_row_rejected", row_number=row_number, reason=parsed.reason)
            rejected.append(parsed)
        else:
            rows.append(parsed)

    logger.info("csv_parsed", valid_rows=len(rows), rejected_rows=len(rejected))
    return rows, rejected
