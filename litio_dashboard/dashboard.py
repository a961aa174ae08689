"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end. Each
function takes the full canonical table plus the active filter and returns
fresh plain dicts or DataFrames; nothing is cached between filter changes.
"""

import logging
import math

import pandas as pd

from .config import KPI_LABELS, PRODUCT_STATUS
from .kpis import classify_product_status, positive_mean, summarise_operations
from .loaders.utils import format_hours_to_clock, format_signed_clock
from .transforms import filter_records

logger = logging.getLogger(__name__)


def _format_plain(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(round(value, 2))


def get_fixed_kpis(df_day: pd.DataFrame) -> list[dict]:
    """KPI cards for the selected date.

    Parameters
    ----------
    df_day : Operational records filtered to one date.

    Returns
    -------
    Ordered list of {"label", "value", "highlight"} dicts; empty when the
    day has no records. `highlight` is a key into config.RAG_COLORS.
    """
    if df_day.empty:
        return []

    stats = summarise_operations(df_day)

    compliance = f"{stats['compliance_pct']:.1f}%" if stats["ton_prog"] > 0 else "0%"
    fleet = f"{stats['utilization_pct']:.1f}%" if stats["eq_prog"] > 0 else "0%"
    deviation = stats["time_deviation_hours"]

    return [
        {"label": KPI_LABELS["compliance"], "value": compliance, "highlight": "green"},
        {"label": KPI_LABELS["avg_load"], "value": f"{stats['avg_load']:.2f}", "highlight": "neutral"},
        {"label": KPI_LABELS["fleet_usage"], "value": fleet, "highlight": "neutral"},
        {
            "label": KPI_LABELS["time_deviation"],
            "value": format_signed_clock(deviation),
            "highlight": "red" if stats["time_deviation_flag"] else "green",
        },
        {
            "label": KPI_LABELS["total_regulation"],
            "value": _format_plain(stats["total_regulation"]),
            "highlight": "neutral",
        },
    ]


def get_products(df_day: pd.DataFrame) -> list[str]:
    """Sorted product names present in the selection."""
    if df_day.empty:
        return []
    return sorted(df_day["product"].unique().tolist())


def get_product_detail(df_day: pd.DataFrame, product: str) -> dict | None:
    """Summary card data for one product on the selected date.

    Returns None when the product has no records. Otherwise the
    summarise_operations() dict plus:
        product, status, status_label, rag,
        avg_actual_cycle, avg_target_cycle, time_deviation (formatted)
    """
    product_df = filter_records(df_day, product=product)
    if product_df.empty:
        return None

    stats = summarise_operations(product_df)
    status = classify_product_status(stats["compliance_pct"], stats["time_deviation_flag"])

    return {
        "product": product,
        **stats,
        "status": status,
        "status_label": PRODUCT_STATUS[status]["label"],
        "rag": PRODUCT_STATUS[status]["rag"],
        "avg_actual_cycle": format_hours_to_clock(stats["avg_actual_cycle_hours"]),
        "avg_target_cycle": format_hours_to_clock(stats["avg_target_cycle_hours"]),
        "time_deviation": format_signed_clock(stats["time_deviation_hours"]),
    }


def get_ai_inputs(df_day: pd.DataFrame) -> dict:
    """Average SdA and PANG durations ("H:MM") sent along with the AI request."""
    if df_day.empty:
        return {"avg_loading": "0:00", "avg_transit": "0:00"}
    return {
        "avg_loading": format_hours_to_clock(positive_mean(df_day["loading_hours"])),
        "avg_transit": format_hours_to_clock(positive_mean(df_day["transit_hours"])),
    }


# ---------------------------------------------------------------------------
# Arrivals
# ---------------------------------------------------------------------------

def get_companies(arrivals: pd.DataFrame, date: str) -> list[str]:
    """Sorted companies with arrivals on `date`."""
    day = filter_records(arrivals, date=date)
    return sorted(day["company"].unique().tolist())


def get_destinations(arrivals: pd.DataFrame, date: str, company: str) -> list[str]:
    """Sorted destinations served by `company` on `date`."""
    day = filter_records(arrivals, date=date, company=company)
    return sorted(day["destination"].unique().tolist())


def get_hourly_arrivals(
    arrivals: pd.DataFrame,
    date: str,
    company: str,
    destinations: list[str] | None = None,
    hour_range: tuple[int, int] = (0, 23),
) -> pd.DataFrame:
    """Arrival counts per hour and destination.

    Parameters
    ----------
    destinations : Destinations to include; defaults to all of the
                   company's destinations for the date.
    hour_range : Inclusive (first_hour, last_hour). An arrival counts when
                 first_hour <= arrival_hour <= last_hour + 0.99.

    Returns
    -------
    DataFrame with columns: hour, hour_label ("HH:00"), then one count
    column per destination. Every hour in the range has a row.
    """
    if destinations is None:
        destinations = get_destinations(arrivals, date, company)
    destinations = list(dict.fromkeys(destinations))
    start, end = hour_range

    selected = filter_records(arrivals, date=date, company=company, destination=destinations)
    hours = selected["arrival_hour"]
    selected = selected[(hours >= start) & (hours <= end + 0.99)]

    table = pd.DataFrame(
        0,
        index=pd.Index(range(start, end + 1), name="hour"),
        columns=destinations,
        dtype=int,
    )
    for hour, destination in zip(selected["arrival_hour"], selected["destination"]):
        slot = math.floor(hour)
        if slot in table.index and destination in table.columns:
            table.at[slot, destination] += 1

    table = table.reset_index()
    table.insert(1, "hour_label", [f"{h:02d}:00" for h in table["hour"]])
    return table


def get_arrival_pivot(
    arrivals: pd.DataFrame,
    date: str,
    company: str,
    destinations: list[str] | None = None,
    hour_range: tuple[int, int] = (0, 23),
) -> pd.DataFrame:
    """Same as get_hourly_arrivals but only the hours that had arrivals."""
    table = get_hourly_arrivals(arrivals, date, company, destinations, hour_range)
    count_cols = [c for c in table.columns if c not in ("hour", "hour_label")]
    if not count_cols:
        return table.iloc[0:0]
    return table[table[count_cols].sum(axis=1) > 0].reset_index(drop=True)
