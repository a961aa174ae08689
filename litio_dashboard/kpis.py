"""
KPI computation functions — pure functions with no side effects.

Provides guarded ratios, positive-only duration means, the per-day
operations summary and product status classification.

Every figure returned here is a finite float (or a fixed sentinel string),
so the presentation layer never has to check for NaN or infinity.
"""

import logging
from collections import Counter

import pandas as pd

from .config import (
    COMPLIANCE_ACTION_PCT,
    COMPLIANCE_OPTIMAL_PCT,
    NO_DESTINATION,
    TIME_DEVIATION_THRESHOLD_HOURS,
)

logger = logging.getLogger(__name__)

# Minute arithmetic on decimal hours leaves float noise (2:40 - 2:30 is a
# hair under 10/60), so threshold comparisons allow for it.
_HOURS_EPSILON = 1e-9


def safe_divide(numerator: float, denominator: float) -> float:
    """Return numerator / denominator, or 0.0 when denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator


def calc_compliance(real: float, programmed: float) -> float:
    """Return real / programmed * 100, 0.0 when nothing was programmed."""
    return safe_divide(real, programmed) * 100


def positive_mean(values: pd.Series) -> float:
    """Mean of the strictly positive values; 0.0 if there are none.

    Zero durations mean "not recorded" in the source sheets, so they are
    left out of the average rather than pulling it down.
    """
    positive = values[values > 0]
    if positive.empty:
        return 0.0
    return float(positive.mean())


def is_time_deviation(actual_hours: float, target_hours: float) -> bool:
    """True when both cycle means exist and actual exceeds target by the threshold."""
    if actual_hours <= 0 or target_hours <= 0:
        return False
    return (actual_hours - target_hours) >= TIME_DEVIATION_THRESHOLD_HOURS - _HOURS_EPSILON


def most_frequent(values: pd.Series, default: str) -> tuple[str, int]:
    """Most common value and its count; ties go to the first one seen."""
    counts = Counter(values.tolist())
    if not counts:
        return default, 0
    value, count = counts.most_common(1)[0]
    return value, int(count)


def summarise_operations(df: pd.DataFrame) -> dict:
    """Aggregate operational records for one date (optionally one product).

    Parameters
    ----------
    df : Operational records already filtered by the caller.

    Returns
    -------
    Dict with keys:
        row_count, ton_prog, ton_real, ton_diff, compliance_pct,
        eq_prog, eq_real, eq_diff, utilization_pct, avg_load,
        avg_regulation, total_regulation,
        avg_actual_cycle_hours, avg_target_cycle_hours,
        time_deviation_hours, time_deviation_flag,
        avg_loading_hours, avg_transit_hours,
        main_destination, main_destination_count
    """
    ton_prog = float(df["ton_prog"].sum())
    ton_real = float(df["ton_real"].sum())
    eq_prog = float(df["eq_prog"].sum())
    eq_real = float(df["eq_real"].sum())
    total_regulation = float(df["regulation"].sum())

    avg_actual = positive_mean(df["actual_cycle_hours"])
    avg_target = positive_mean(df["target_cycle_hours"])

    main_destination, main_count = most_frequent(df["destination"], NO_DESTINATION)

    return {
        "row_count": len(df),
        "ton_prog": ton_prog,
        "ton_real": ton_real,
        "ton_diff": ton_real - ton_prog,
        "compliance_pct": calc_compliance(ton_real, ton_prog),
        "eq_prog": eq_prog,
        "eq_real": eq_real,
        "eq_diff": eq_real - eq_prog,
        "utilization_pct": calc_compliance(eq_real, eq_prog),
        "avg_load": safe_divide(ton_real, eq_real),
        "avg_regulation": safe_divide(total_regulation, len(df)),
        "total_regulation": total_regulation,
        "avg_actual_cycle_hours": avg_actual,
        "avg_target_cycle_hours": avg_target,
        "time_deviation_hours": avg_actual - avg_target,
        "time_deviation_flag": is_time_deviation(avg_actual, avg_target),
        "avg_loading_hours": positive_mean(df["loading_hours"]),
        "avg_transit_hours": positive_mean(df["transit_hours"]),
        "main_destination": main_destination,
        "main_destination_count": main_count,
    }


def classify_product_status(compliance_pct: float, time_deviation: bool) -> str:
    """Return the status key for a product card.

    Logic
    -----
    - compliance below the action band       -> 'action_required'
    - cycle time deviated                    -> 'time_deviation'
    - compliance at or above the optimal band -> 'optimal'
    - otherwise                              -> 'acceptable'
    """
    if compliance_pct < COMPLIANCE_ACTION_PCT:
        return "action_required"
    if time_deviation:
        return "time_deviation"
    if compliance_pct >= COMPLIANCE_OPTIMAL_PCT:
        return "optimal"
    return "acceptable"


def find_deviated_products(breakdown: pd.DataFrame) -> list[dict]:
    """Products needing a written justification.

    A product is listed when real tonnage is under the action band of
    its programmed tonnage, or when its cycle time deviates.

    Returns
    -------
    List of {"product", "ton_issue", "time_issue"} in breakdown order.
    """
    deviated = []
    for row in breakdown.itertuples(index=False):
        ton_issue = row.ton_prog > 0 and row.ton_real < row.ton_prog * COMPLIANCE_ACTION_PCT / 100
        time_issue = is_time_deviation(row.avg_actual_cycle_hours, row.avg_target_cycle_hours)
        if ton_issue or time_issue:
            deviated.append({
                "product": row.product,
                "ton_issue": bool(ton_issue),
                "time_issue": bool(time_issue),
            })

    logger.info("Found %d deviated products", len(deviated))
    return deviated
