"""
Shared utilities for data ingestion: cell coercion, header detection,
column resolution, sheet selection and the generic row-to-record driver.

Every coercion here is total: dirty cells resolve to a default value instead
of raising, so a single bad row never aborts an import. The only failure a
caller sees is UnusableSheetError, raised once per sheet.
"""

import logging
import math
import numbers
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Sequence

import openpyxl
import pandas as pd

from ..config import (
    EXCEL_EPOCH,
    HEADER_SCAN_ROWS,
    HEADER_TOKENS,
    PREFERRED_SHEET_NAMES,
    SHEET_NAME_TOKENS,
)

logger = logging.getLogger(__name__)

_EPOCH = pd.Timestamp(EXCEL_EPOCH)

_NUMBER_NOISE = re.compile(r"[^-0-9.]")
_LEADING_FLOAT = re.compile(r"^-?(\d+\.?\d*|\.\d+)")
_LEADING_INT = re.compile(r"^\s*[-+]?\d+")
_DATE_SEPARATORS = re.compile(r"[-/]")
_DIGITS = re.compile(r"[0-9]+")
_HEADER_SPACING = re.compile(r"[\s_]+")

FieldIndexMap = dict[str, int]
FieldSpecs = dict[str, tuple[str, int]]


class UnusableSheetError(ValueError):
    """Raised when a sheet is empty or no row survives normalisation."""


def _is_number(val: Any) -> bool:
    return isinstance(val, numbers.Real) and not isinstance(val, bool)


def _is_missing(val: Any) -> bool:
    return val is None or val is pd.NaT


def _finite(val: float) -> float:
    return val if math.isfinite(val) else 0.0


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def coerce_number(val: Any) -> float:
    """Coerce a cell to a float, returning 0.0 when nothing parses.

    Text is cleaned in two steps: the first comma becomes a decimal point,
    then every character other than digits, '.' and '-' is dropped. The
    longest leading decimal literal is parsed. A value carrying both
    separators ("1.234,56") therefore keeps only its first group (1.234).
    """
    if _is_missing(val) or (isinstance(val, str) and val == ""):
        return 0.0
    if _is_number(val):
        return _finite(float(val))

    cleaned = _NUMBER_NOISE.sub("", str(val).replace(",", ".", 1))
    match = _LEADING_FLOAT.match(cleaned)
    if match is None:
        return 0.0
    return _finite(float(match.group(0)))


def _leading_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(0)) if match else 0


def coerce_time_of_day(val: Any) -> float:
    """Convert a cell to decimal hours.

    - datetime/time: hours + minutes/60 + seconds/3600 of the time part
    - timedelta (openpyxl duration cells): total hours
    - number: spreadsheet day fraction, multiplied by 24
    - "H:M[:S]" string: parsed positionally, bad segments count as 0
    Anything else is 0.0. The result is not clamped to [0, 24).
    """
    if _is_missing(val):
        return 0.0
    if isinstance(val, (datetime, time)):
        return _finite(val.hour + val.minute / 60 + val.second / 3600)
    if isinstance(val, timedelta):
        return _finite(val.total_seconds() / 3600)
    if _is_number(val):
        return _finite(float(val) * 24)
    if isinstance(val, str):
        parts = val.strip().split(":")
        if len(parts) >= 2:
            hours = _leading_int(parts[0])
            minutes = _leading_int(parts[1])
            seconds = _leading_int(parts[2]) if len(parts) > 2 else 0
            return hours + minutes / 60 + seconds / 3600
    return 0.0


def _parse_date_string(text: str) -> str | None:
    tokens = text.strip().split()
    if not tokens:
        return None
    # Drop a trailing time part: "15/01/2024 08:30", "2024-01-15T08:30"
    head = tokens[0].split("T")[0]
    parts = _DATE_SEPARATORS.split(head)
    if len(parts) != 3 or not all(_DIGITS.fullmatch(p) for p in parts):
        return None

    if len(parts[0]) == 4:
        year, month, day = parts
    else:
        day, month, year = parts
        if len(year) != 4:
            return None

    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def coerce_calendar_date(val: Any) -> str | None:
    """Convert a cell to an ISO calendar date string.

    Native datetimes give their UTC date, numbers are serial day counts on
    the 1899-12-30 epoch (45292 -> "2024-01-01"), and "/" or "-" delimited
    strings are read as Y-M-D when the first part has four digits, else as
    D-M-Y. Returns None for anything else; callers reject the row.
    """
    if _is_missing(val):
        return None
    if isinstance(val, datetime):
        if val.tzinfo is not None:
            val = val.astimezone(timezone.utc)
        return val.date().isoformat()
    if isinstance(val, date):
        return val.isoformat()
    if _is_number(val):
        if not math.isfinite(val):
            return None
        try:
            return (_EPOCH + pd.Timedelta(days=float(val))).date().isoformat()
        except (ValueError, OverflowError, pd.errors.OutOfBoundsDatetime, pd.errors.OutOfBoundsTimedelta):
            logger.debug("Could not convert serial number %s to date", val)
            return None
    if isinstance(val, str):
        return _parse_date_string(val)
    return None


def format_hours_to_clock(hours: float) -> str:
    """Format decimal hours as "H:MM"; non-positive or non-finite -> "0:00"."""
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        return "0:00"
    if not math.isfinite(hours) or hours <= 0:
        return "0:00"

    whole = math.floor(hours)
    minutes = math.floor((hours - whole) * 60 + 0.5)
    if minutes == 60:
        whole += 1
        minutes = 0
    return f"{whole}:{minutes:02d}"


def format_signed_clock(hours: float) -> str:
    """Format a deviation in hours as "+H:MM" / "-H:MM" ("0:00" when zero)."""
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        return "0:00"
    if not math.isfinite(hours) or hours == 0:
        return "0:00"
    if hours > 0:
        return "+" + format_hours_to_clock(hours)
    return "-" + format_hours_to_clock(-hours)


def format_date_cl(iso_date: str) -> str:
    """Render an ISO date as DD-MM-YYYY. Unparseable input is returned as-is."""
    try:
        parsed = date.fromisoformat(str(iso_date))
    except ValueError:
        return str(iso_date)
    return parsed.strftime("%d-%m-%Y")


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

def get_cell(row: Sequence[Any], idx: int) -> Any:
    """Return row[idx], or None when the index is past the end of the row."""
    if 0 <= idx < len(row):
        return row[idx]
    return None


def cell_text(val: Any, default: str, upper: bool = False) -> str:
    """Trimmed text of a cell, or `default` when the cell is empty.

    A numeric zero or False counts as empty: spreadsheets leave 0 in
    unfilled text columns.
    """
    if _is_missing(val) or val is False:
        return default
    if _is_number(val) and val == 0:
        return default
    if isinstance(val, float):
        if math.isnan(val):
            return default
        if val.is_integer():
            val = int(val)
    text = str(val).strip()
    if not text:
        return default
    return text.upper() if upper else text


# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------

def _header_text(val: Any) -> str:
    return "" if val is None else str(val).strip().upper()


def _match_key(text: str) -> str:
    return _HEADER_SPACING.sub(" ", text.upper()).strip()


def find_header_row(
    grid: Sequence[Sequence[Any]],
    signature: Sequence[str] = HEADER_TOKENS,
    max_rows: int = HEADER_SCAN_ROWS,
) -> int | None:
    """Scan the first rows of a grid for the header row.

    Returns the 0-based index of the first row with a cell equal to one of
    the `signature` tokens (case-insensitive, trimmed), or None if no row
    within `max_rows` qualifies.
    """
    wanted = {token.upper() for token in signature}
    for row_idx, row in enumerate(grid[:max_rows]):
        if not row:
            continue
        if any(_header_text(cell) in wanted for cell in row):
            return row_idx
    return None


def locate_header_row(
    grid: Sequence[Sequence[Any]],
    signature: Sequence[str] = HEADER_TOKENS,
    max_rows: int = HEADER_SCAN_ROWS,
) -> int:
    """Like find_header_row, but defaults to row 0 when nothing matches."""
    header_idx = find_header_row(grid, signature, max_rows)
    if header_idx is None:
        logger.debug("No header row found in first %d rows, assuming row 0", max_rows)
        return 0
    return header_idx


def resolve_columns(header_row: Sequence[Any] | None, field_specs: FieldSpecs) -> FieldIndexMap:
    """Map each logical field to a column index.

    A field takes the first header cell containing its token (underscores
    and whitespace compare equal), else its fallback index. The returned
    map always covers every field in `field_specs`.
    """
    headers = [_match_key(_header_text(cell)) for cell in (header_row or [])]

    index_map: FieldIndexMap = {}
    for field, (token, fallback) in field_specs.items():
        key = _match_key(token)
        index_map[field] = next(
            (i for i, header in enumerate(headers) if key in header),
            fallback,
        )
    return index_map


# ---------------------------------------------------------------------------
# Table building
# ---------------------------------------------------------------------------

def build_table(
    grid: Sequence[Sequence[Any]],
    field_specs: FieldSpecs,
    normalise_row: Callable[[Sequence[Any], FieldIndexMap], dict | None],
    signature: Sequence[str] = HEADER_TOKENS,
) -> list[dict]:
    """Run header detection once, then normalise every row below the header.

    Rejected rows are dropped silently. Raises UnusableSheetError when the
    grid has fewer than two rows or when no row is accepted.
    """
    if grid is None or len(grid) < 2:
        logger.warning("Sheet has fewer than 2 rows")
        raise UnusableSheetError("Sheet is empty")

    header_idx = locate_header_row(grid, signature)
    index_map = resolve_columns(grid[header_idx], field_specs)
    logger.debug("Header row %d resolved to %s", header_idx, index_map)

    records = []
    rejected = 0
    for row in grid[header_idx + 1:]:
        record = normalise_row(row, index_map)
        if record is None:
            rejected += 1
            continue
        records.append(record)

    logger.debug("Accepted %d rows, rejected %d", len(records), rejected)

    if not records:
        logger.warning("No usable rows below header row %d", header_idx)
        raise UnusableSheetError("No rows could be normalised")

    return records


def get_available_dates(df: pd.DataFrame) -> list[str]:
    """Distinct ISO dates in a canonical table, most recent first."""
    if df.empty or "date" not in df.columns:
        return []
    return sorted(df["date"].dropna().unique().tolist(), reverse=True)


# ---------------------------------------------------------------------------
# Workbook access
# ---------------------------------------------------------------------------

def select_sheet(sheetnames: Sequence[str]) -> str:
    """Pick the data sheet: an exact preferred name, then a name containing
    one of the known tokens, then the first sheet."""
    if not sheetnames:
        raise UnusableSheetError("Workbook has no sheets")

    for name in PREFERRED_SHEET_NAMES:
        if name in sheetnames:
            return name

    for name in sheetnames:
        upper = name.upper()
        if any(token in upper for token in SHEET_NAME_TOKENS):
            return name

    logger.warning("No data sheet name recognised, using '%s'", sheetnames[0])
    return sheetnames[0]


def read_workbook_grid(source, sheet_name: str | None = None) -> tuple[str, list[list[Any]]]:
    """Read one sheet of an .xlsx workbook into a list of row lists.

    Parameters
    ----------
    source : Path, filename or binary file-like object.
    sheet_name : Explicit sheet to read. Defaults to select_sheet().

    Returns
    -------
    (sheet_name, grid) where grid cells are None, numbers, strings,
    datetime/time/timedelta values as decoded by openpyxl.
    """
    try:
        wb = openpyxl.load_workbook(source, data_only=True)
    except Exception:
        logger.exception("Failed to open workbook: %s", source)
        raise

    try:
        if sheet_name is not None and sheet_name not in wb.sheetnames:
            logger.warning("Sheet '%s' not found. Available: %s", sheet_name, wb.sheetnames)
            sheet_name = None
        if sheet_name is None:
            sheet_name = select_sheet(wb.sheetnames)

        ws = wb[sheet_name]
        grid = [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()

    logger.info("Read %d rows from sheet '%s'", len(grid), sheet_name)
    return sheet_name, grid
