"""Data ingestion loaders for operational and arrival workbooks."""

from .utils import UnusableSheetError, get_available_dates, read_workbook_grid
from .operational_report import build_operational_table, load_operational_report
from .arrivals import build_arrival_table, load_arrivals

__all__ = [
    "UnusableSheetError",
    "get_available_dates",
    "read_workbook_grid",
    "build_operational_table",
    "load_operational_report",
    "build_arrival_table",
    "load_arrivals",
]
