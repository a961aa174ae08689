"""
Data transforms: company-name canonicalisation, record filtering and the
per-product breakdown used by the comparison charts.
"""

import logging
import math
import re

import pandas as pd

from .config import COMPANY_EQUIVALENCES, PRODUCT_BREAKDOWN_LIMIT
from .kpis import calc_compliance, positive_mean

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

BREAKDOWN_COLUMNS = [
    "product", "rows",
    "ton_prog", "ton_real", "eq_prog", "eq_real",
    "compliance_pct",
    "avg_actual_cycle_hours", "avg_target_cycle_hours",
]


def normalize_company_name(raw) -> str:
    """Canonicalise a free-text company name.

    Uppercases, trims, drops periods, spells "&" as AND and collapses
    whitespace, then maps known variants through COMPANY_EQUIVALENCES.
    Unknown companies come back in their normalised form.
    """
    if raw is None or (isinstance(raw, float) and math.isnan(raw)):
        return ""

    text = str(raw).upper().strip()
    text = text.replace(".", "").replace("&", " AND ")
    text = _WHITESPACE.sub(" ", text).strip()
    return COMPANY_EQUIVALENCES.get(text, text)


def _matches(column: pd.Series, wanted) -> pd.Series:
    if isinstance(wanted, (list, tuple, set, frozenset)):
        return column.isin(list(wanted))
    return column == wanted


def filter_records(
    df: pd.DataFrame,
    date: str | None = None,
    product: str | None = None,
    company: str | None = None,
    destination=None,
) -> pd.DataFrame:
    """Filter a canonical table by date and optional product/company/destination.

    `destination` may be a single name or a collection of names. Filters
    left as None are not applied. Returns a fresh, re-indexed DataFrame.
    """
    mask = pd.Series(True, index=df.index)
    filters = {
        "date": date,
        "product": product,
        "company": company,
        "destination": destination,
    }
    for column, wanted in filters.items():
        if wanted is None:
            continue
        if column not in df.columns:
            logger.warning("Cannot filter on missing column '%s'", column)
            continue
        mask &= _matches(df[column], wanted)

    return df[mask].reset_index(drop=True)


def build_product_breakdown(
    df: pd.DataFrame,
    limit: int = PRODUCT_BREAKDOWN_LIMIT,
) -> pd.DataFrame:
    """Aggregate one day of operational records to one row per product.

    Tonnage and equipment are summed; cycle times are averaged over their
    positive values. Rows are sorted by programmed tonnage (descending,
    stable) and capped at `limit`.

    Returns
    -------
    DataFrame with columns:
        product, rows, ton_prog, ton_real, eq_prog, eq_real,
        compliance_pct, avg_actual_cycle_hours, avg_target_cycle_hours
    """
    if df.empty:
        return pd.DataFrame(columns=BREAKDOWN_COLUMNS)

    grouped = df.groupby("product", sort=False)
    result = grouped.agg(
        rows=("ton_prog", "size"),
        ton_prog=("ton_prog", "sum"),
        ton_real=("ton_real", "sum"),
        eq_prog=("eq_prog", "sum"),
        eq_real=("eq_real", "sum"),
    )
    result["avg_actual_cycle_hours"] = grouped["actual_cycle_hours"].agg(positive_mean)
    result["avg_target_cycle_hours"] = grouped["target_cycle_hours"].agg(positive_mean)
    result = result.reset_index()

    result["compliance_pct"] = [
        calc_compliance(real, prog)
        for real, prog in zip(result["ton_real"], result["ton_prog"])
    ]

    result = result.sort_values("ton_prog", ascending=False, kind="stable").head(limit)
    return result[BREAKDOWN_COLUMNS].reset_index(drop=True)
