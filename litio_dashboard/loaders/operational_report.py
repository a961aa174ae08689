"""
Loader for the daily operational report ("Base de Datos" sheet).

One row per dispatch line: date, product, destination, programmed vs real
tonnage and equipment, regulation and four duration columns (SdA loading,
PANG transit, target and actual cycle time). Columns drift between exports,
so they are located by header token with fixed fallback positions
(see config.OPERATIONAL_FIELDS).
"""

import logging
from typing import Any, Sequence

import pandas as pd

from ..config import NO_DESTINATION, NO_PRODUCT, OPERATIONAL_COLUMNS, OPERATIONAL_FIELDS
from .utils import (
    FieldIndexMap,
    build_table,
    cell_text,
    coerce_calendar_date,
    coerce_number,
    coerce_time_of_day,
    get_cell,
    read_workbook_grid,
)

logger = logging.getLogger(__name__)


def normalise_operational_row(row: Sequence[Any], idx: FieldIndexMap) -> dict | None:
    """Convert one raw row into an operational record.

    Returns None when the row has fewer than two cells or its date cannot
    be determined. Every other field falls back to 0 or a placeholder.
    """
    if not row or len(row) < 2:
        return None

    date_str = coerce_calendar_date(get_cell(row, idx["fecha"]))
    if date_str is None:
        return None

    return {
        "date": date_str,
        "product": cell_text(get_cell(row, idx["producto"]), NO_PRODUCT, upper=True),
        "destination": cell_text(get_cell(row, idx["destino"]), NO_DESTINATION),
        "ton_prog": coerce_number(get_cell(row, idx["tonProg"])),
        "ton_real": coerce_number(get_cell(row, idx["tonReal"])),
        "eq_prog": coerce_number(get_cell(row, idx["eqProg"])),
        "eq_real": coerce_number(get_cell(row, idx["eqReal"])),
        "regulation": coerce_number(get_cell(row, idx["regReal"])),
        "loading_hours": coerce_time_of_day(get_cell(row, idx["sda"])),
        "transit_hours": coerce_time_of_day(get_cell(row, idx["pang"])),
        "target_cycle_hours": coerce_time_of_day(get_cell(row, idx["faenaMeta"])),
        "actual_cycle_hours": coerce_time_of_day(get_cell(row, idx["faenaReal"])),
    }


def build_operational_table(grid: Sequence[Sequence[Any]]) -> pd.DataFrame:
    """Normalise a decoded sheet into the operational fact table.

    Returns
    -------
    DataFrame with columns:
        date, product, destination, ton_prog, ton_real, eq_prog, eq_real,
        regulation, loading_hours, transit_hours, target_cycle_hours,
        actual_cycle_hours

    Raises
    ------
    UnusableSheetError if the sheet is empty or no row has a valid date.
    """
    records = build_table(grid, OPERATIONAL_FIELDS, normalise_operational_row)
    df = pd.DataFrame(records, columns=OPERATIONAL_COLUMNS)
    logger.info("Built operational table with %d rows", len(df))
    return df


def load_operational_report(source, sheet_name: str | None = None) -> pd.DataFrame:
    """Read an operational workbook (path or file-like) into the fact table."""
    sheet_name, grid = read_workbook_grid(source, sheet_name)
    df = build_operational_table(grid)
    logger.info("Loaded %d operational rows from sheet '%s'", len(df), sheet_name)
    return df
