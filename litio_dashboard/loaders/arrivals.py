"""
Loader for the truck-arrival log ("LLEGADA" / "BASE" sheets).

The header row is not always the first one, so it is located by scanning
for FECHA / EMPRESA / PRODUCTO. Each accepted row becomes one arrival event
with its destination, canonical company name and arrival hour.
"""

import logging
from typing import Any, Sequence

import pandas as pd

from ..config import ARRIVAL_COLUMNS, ARRIVAL_FIELDS, NO_ARRIVAL_DESTINATION, NO_COMPANY
from ..transforms import normalize_company_name
from .utils import (
    FieldIndexMap,
    build_table,
    cell_text,
    coerce_calendar_date,
    coerce_time_of_day,
    get_cell,
    read_workbook_grid,
)

logger = logging.getLogger(__name__)


def normalise_arrival_row(row: Sequence[Any], idx: FieldIndexMap) -> dict | None:
    """Convert one raw row into an arrival record, or None if it has no date."""
    if not row or len(row) < 2:
        return None

    date_str = coerce_calendar_date(get_cell(row, idx["fecha"]))
    if date_str is None:
        return None

    company = normalize_company_name(get_cell(row, idx["empresa"]))

    return {
        "date": date_str,
        "destination": cell_text(get_cell(row, idx["destino"]), NO_ARRIVAL_DESTINATION, upper=True),
        "company": company or NO_COMPANY,
        "arrival_hour": coerce_time_of_day(get_cell(row, idx["hora"])),
    }


def build_arrival_table(grid: Sequence[Sequence[Any]]) -> pd.DataFrame:
    """Normalise a decoded arrival sheet.

    Returns
    -------
    DataFrame with columns: date, destination, company, arrival_hour

    Raises
    ------
    UnusableSheetError if the sheet is empty or no row has a valid date.
    """
    records = build_table(grid, ARRIVAL_FIELDS, normalise_arrival_row)
    df = pd.DataFrame(records, columns=ARRIVAL_COLUMNS)
    logger.info("Built arrival table with %d rows", len(df))
    return df


def load_arrivals(source, sheet_name: str | None = None) -> pd.DataFrame:
    """Read an arrival workbook (path or file-like) into the arrival table."""
    sheet_name, grid = read_workbook_grid(source, sheet_name)
    df = build_arrival_table(grid)
    logger.info("Loaded %d arrival rows from sheet '%s'", len(df), sheet_name)
    return df
