"""
Litio Dashboard — End-to-end analytics pipeline.

Runs the full data pipeline from source workbooks to dashboard-ready
outputs and prints smoke-test summaries. Without arguments it generates
synthetic demo workbooks first.

Usage:
    python main.py [operational.xlsx] [arrivals.xlsx]
"""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from litio_dashboard.config import (
    DEMO_ARRIVALS_FILE,
    DEMO_OPERATIONAL_FILE,
    LOG_FORMAT,
    LOG_LEVEL,
    OPERATION_NAME,
)
from litio_dashboard.loaders import (
    UnusableSheetError,
    get_available_dates,
    load_arrivals,
    load_operational_report,
)
from litio_dashboard.loaders.utils import format_date_cl
from litio_dashboard.simulator import (
    generate_arrival_grid,
    generate_operational_grid,
    write_demo_workbook,
)
from litio_dashboard.transforms import build_product_breakdown, filter_records
from litio_dashboard.kpis import find_deviated_products
from litio_dashboard.dashboard import (
    get_ai_inputs,
    get_arrival_pivot,
    get_companies,
    get_fixed_kpis,
    get_product_detail,
    get_products,
)
from litio_dashboard.ai_service import summarise_day

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT,
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run the full analytics pipeline and print smoke-test outputs."""
    args = sys.argv[1:] if argv is None else argv

    print("=" * 70)
    print(f"  {OPERATION_NAME}")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)

    if args:
        operational_path = Path(args[0])
        arrivals_path = Path(args[1]) if len(args) > 1 else None
    else:
        operational_path = write_demo_workbook(
            generate_operational_grid(), DEMO_OPERATIONAL_FILE, "Base de Datos"
        )
        arrivals_path = write_demo_workbook(
            generate_arrival_grid(), DEMO_ARRIVALS_FILE, "LLEGADA EQUIPOS"
        )
        print(f"\nDemo workbooks written to {operational_path.parent}")

    try:
        operations = load_operational_report(operational_path)
    except UnusableSheetError as e:
        logger.error("Archivo vacío o inutilizable (%s): %s", operational_path, e)
        return 1

    dates = get_available_dates(operations)
    print(f"\nOperational report: {len(operations)} rows, {len(dates)} dates")
    print(operations.head(10).to_string(index=False))

    arrivals = None
    if arrivals_path is not None:
        try:
            arrivals = load_arrivals(arrivals_path)
            print(f"\nArrivals: {len(arrivals)} rows loaded")
            print(arrivals.head().to_string(index=False))
        except UnusableSheetError as e:
            logger.warning("Could not load arrivals: %s", e)

    # ------------------------------------------------------------------
    # 2. Dashboard outputs for the most recent date
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    active_date = dates[0]
    day = filter_records(operations, date=active_date)
    print(f"\nActive date: {format_date_cl(active_date)} ({len(day)} rows)")

    print("\nFixed KPIs:")
    for kpi in get_fixed_kpis(day):
        print(f"  {kpi['label']:32s} | {kpi['value']}")

    print("\nProduct detail:")
    for product in get_products(day):
        detail = get_product_detail(day, product)
        print(
            f"  {product:24s} | {detail['compliance_pct']:6.1f}% | "
            f"{detail['avg_actual_cycle']} vs {detail['avg_target_cycle']} | "
            f"{detail['status_label']}"
        )

    breakdown = build_product_breakdown(day)
    deviated = find_deviated_products(breakdown)
    print(f"\nProducts needing justification: {[d['product'] for d in deviated]}")

    if arrivals is not None and not arrivals.empty:
        arrival_date = get_available_dates(arrivals)[0]
        companies = get_companies(arrivals, arrival_date)
        if companies:
            print(f"\nArrivals by hour — {companies[0]} on {format_date_cl(arrival_date)}:")
            print(get_arrival_pivot(arrivals, arrival_date, companies[0]).to_string(index=False))

    # ------------------------------------------------------------------
    # 3. AI summary (falls back to local mode without credentials)
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] AI SUMMARY")
    print("-" * 40)

    ai_inputs = get_ai_inputs(day)
    summary = summarise_day(day, active_date, ai_inputs["avg_loading"], ai_inputs["avg_transit"])
    print(f"\n{summary['summary']}")
    for kpi in summary["suggested_kpis"]:
        print(f"  {kpi['label']:24s} | {kpi['value']}")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
