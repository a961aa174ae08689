"""
Simulated workbook generator for the Litio dashboard.

Builds raw grids shaped like the hand-maintained exports (title rows above
the header, mixed date encodings, comma decimals, "H:MM" durations and
company names spelt several ways) so the full pipeline can be exercised
without real operational data. All values are synthetic.
"""

from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import openpyxl

from .loaders.utils import format_hours_to_clock

# Seed for reproducibility
_SEED = 42

# ---------------------------------------------------------------------------
# Typical dispatch parameters
# ---------------------------------------------------------------------------
_PRODUCTS = {
    "Carbonato de Litio": {"payload_t": 27.5, "meta_h": 6.0},
    "Hidróxido de Litio": {"payload_t": 26.0, "meta_h": 6.5},
    "Cloruro de Potasio": {"payload_t": 28.0, "meta_h": 5.5},
    "Sulfato de Potasio": {"payload_t": 28.0, "meta_h": 5.0},
}

_DESTINATIONS = ["Puerto Angamos", "Puerto Tocopilla", "Planta Carmen", "Antofagasta"]

_COMPANY_SPELLINGS = [
    "M&Q S.P.A.",
    "m and q spa",
    "M S & D S.P.A.",
    "Jorquera Transporte S.A.",
    "Coseducam S.A.",
    "AG Services",
    "Nueva Empresa SpA",
]

OPERATIONAL_HEADER = [
    "FECHA", "PRODUCTO", "DESTINO",
    "TON_PROG", "TON_REAL", "EQ_PROG", "EQ_REAL",
    "REGULACION", "TPO SDA", "TPO PANG", "FAENA META", "FAENA REAL",
]

ARRIVAL_HEADER = ["FECHA", "DESTINO", "EMPRESA", "HORA"]


def _serial(day: datetime) -> int:
    return (day - datetime(1899, 12, 30)).days


def generate_operational_grid(
    start_date: str = "2026-02-12",
    n_days: int = 3,
    rows_per_day: int = 10,
    seed: int = _SEED,
) -> list[list]:
    """Generate a raw dispatch sheet: two title rows, a header, then data.

    Every fourth row stores its date as a serial day number and its real
    tonnage as a comma-decimal string, like hand-edited exports do.
    """
    rng = np.random.default_rng(seed)
    products = list(_PRODUCTS)
    start = datetime.fromisoformat(start_date)

    grid: list[list] = [
        ["INFORME DIARIO DE DESPACHO — LITIO"],
        [],
        list(OPERATIONAL_HEADER),
    ]

    for day_offset in range(n_days):
        day = start + timedelta(days=day_offset)
        for i in range(rows_per_day):
            product = products[int(rng.integers(0, len(products)))]
            params = _PRODUCTS[product]
            destination = _DESTINATIONS[int(rng.integers(0, len(_DESTINATIONS)))]

            eq_prog = int(rng.integers(2, 9))
            eq_real = max(eq_prog + int(rng.integers(-2, 2)), 0)
            ton_prog = round(eq_prog * params["payload_t"], 1)
            ton_real = round(eq_real * rng.normal(params["payload_t"], 1.2), 1)

            meta_h = params["meta_h"]
            real_h = max(meta_h + rng.normal(0.1, 0.35), 0.0)
            sda_h = float(rng.uniform(0.5, 2.5))
            pang_h = float(rng.uniform(1.0, 3.0))

            mangled = i % 4 == 3
            grid.append([
                _serial(day) if mangled else day,
                product,
                destination,
                ton_prog,
                f"{ton_real:.1f}".replace(".", ",") if mangled else ton_real,
                eq_prog,
                eq_real,
                int(rng.integers(0, 3)),
                format_hours_to_clock(sda_h),
                pang_h / 24,
                format_hours_to_clock(meta_h),
                format_hours_to_clock(real_h),
            ])

    # Trailing junk rows that must be rejected
    grid.append(["TOTAL", None, None, None])
    grid.append([None, None])
    return grid


def generate_arrival_grid(
    start_date: str = "2026-02-12",
    n_days: int = 3,
    arrivals_per_day: int = 40,
    seed: int = _SEED,
) -> list[list]:
    """Generate a raw truck-arrival log with a title row above the header.

    Dates are "DD/MM/YYYY" strings and arrival times "HH:MM" strings.
    """
    rng = np.random.default_rng(seed)
    start = datetime.fromisoformat(start_date)

    grid: list[list] = [
        ["CONTROL DE ACCESO — LLEGADA DE EQUIPOS"],
        list(ARRIVAL_HEADER),
    ]

    for day_offset in range(n_days):
        day = start + timedelta(days=day_offset)
        for _ in range(arrivals_per_day):
            # Arrivals bunch up around the morning and afternoon shifts
            centre = 9.0 if rng.random() < 0.6 else 16.0
            hour = float(np.clip(rng.normal(centre, 2.0), 0, 23.9))
            grid.append([
                day.strftime("%d/%m/%Y"),
                _DESTINATIONS[int(rng.integers(0, len(_DESTINATIONS)))],
                _COMPANY_SPELLINGS[int(rng.integers(0, len(_COMPANY_SPELLINGS)))],
                f"{int(hour):02d}:{int((hour % 1) * 60):02d}",
            ])

    return grid


def write_demo_workbook(grid: list[list], path: Path, sheet_name: str) -> Path:
    """Write a grid to a one-sheet .xlsx (plus a leading summary sheet)."""
    wb = openpyxl.Workbook()
    summary = wb.active
    summary.title = "Resumen"
    summary.append(["Archivo de demostración generado automáticamente"])

    ws = wb.create_sheet(sheet_name)
    for row in grid:
        ws.append(row)

    path = Path(path)
    wb.save(path)
    wb.close()
    return path
