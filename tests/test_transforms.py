"""Tests for company canonicalisation, filtering and the product breakdown."""

import pandas as pd
import pytest

from litio_dashboard.config import COMPANY_EQUIVALENCES
from litio_dashboard.transforms import (
    BREAKDOWN_COLUMNS,
    build_product_breakdown,
    filter_records,
    normalize_company_name,
)


def _ops(rows):
    columns = [
        "date", "product", "destination", "ton_prog", "ton_real", "eq_prog", "eq_real",
        "regulation", "loading_hours", "transit_hours", "target_cycle_hours", "actual_cycle_hours",
    ]
    return pd.DataFrame(rows, columns=columns)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("m and q spa", "M&Q SPA"),
        ("M&Q S.P.A.", "M&Q SPA"),
        ("  M  &  Q   SPA ", "M&Q SPA"),
        ("M S & D SPA", "M S & D SPA"),
        ("M.S. & D. S.P.A.", "M S & D SPA"),
        ("msd spa", "M S & D SPA"),
        ("JORQUERA TRANSPORTE S. A.", "JORQUERA TRANSPORTE S. A."),
        ("Jorquera Transporte S.A.", "JORQUERA TRANSPORTE S. A."),
        ("Transportes Jorquera", "JORQUERA TRANSPORTE S. A."),
        ("COSEDUCAM S A", "COSEDUCAM S A"),
        ("Coseducam S.A.", "COSEDUCAM S A"),
        ("AG SERVICES SPA", "AG SERVICES SPA"),
        ("A.G. Services SpA", "AG SERVICES SPA"),
        ("ag services", "AG SERVICES SPA"),
        ("NUEVA EMPRESA SPA", "NUEVA EMPRESA SPA"),
        ("Nueva  Empresa  S.p.A.", "NUEVA EMPRESA SPA"),
        (None, ""),
        (float("nan"), ""),
    ],
)
def test_normalize_company_name(raw, expected):
    assert normalize_company_name(raw) == expected


def test_display_spellings_normalise_to_themselves():
    """Names already in display form ("M S & D SPA") survive a second pass."""
    for canonical in set(COMPANY_EQUIVALENCES.values()):
        assert normalize_company_name(canonical) == canonical


def test_filter_records_by_date_and_destinations():
    df = pd.DataFrame({
        "date": ["2024-01-01", "2024-01-01", "2024-01-02", "2024-01-01"],
        "company": ["A", "A", "A", "B"],
        "destination": ["X", "Y", "X", "X"],
    })

    result = filter_records(df, date="2024-01-01", company="A", destination=["X", "Y"])
    assert result["destination"].tolist() == ["X", "Y"]
    assert result.index.tolist() == [0, 1]

    assert len(filter_records(df, destination="X")) == 3
    assert filter_records(df, destination=[]).empty


def test_filter_records_ignores_missing_columns():
    df = pd.DataFrame({"date": ["2024-01-01"]})
    assert len(filter_records(df, product="CARBONATO")) == 1


def test_product_breakdown_sorts_and_averages():
    df = _ops([
        ["2024-01-01", "B", "P", 50, 40, 2, 2, 0, 1, 2, 6.0, 6.5],
        ["2024-01-01", "A", "P", 100, 90, 4, 4, 0, 1, 2, 6.0, 0.0],
        ["2024-01-01", "A", "Q", 100, 100, 4, 4, 0, 1, 2, 6.0, 7.0],
        ["2024-01-01", "C", "P", 50, 50, 2, 2, 0, 1, 2, 0.0, 0.0],
    ])
    breakdown = build_product_breakdown(df)

    assert list(breakdown.columns) == BREAKDOWN_COLUMNS
    # Ties on ton_prog keep first-seen order
    assert breakdown["product"].tolist() == ["A", "B", "C"]

    a = breakdown.iloc[0]
    assert a["rows"] == 2
    assert a["ton_prog"] == 200
    assert a["compliance_pct"] == pytest.approx(95.0)
    # The zero actual cycle is not recorded, not a zero-hour trip
    assert a["avg_actual_cycle_hours"] == pytest.approx(7.0)

    c = breakdown.iloc[2]
    assert c["avg_actual_cycle_hours"] == 0.0
    assert c["avg_target_cycle_hours"] == 0.0


def test_product_breakdown_limit_and_empty_input():
    df = _ops([
        ["2024-01-01", f"P{i}", "X", 10 * i, 0, 0, 0, 0, 0, 0, 0, 0]
        for i in range(1, 6)
    ])
    assert build_product_breakdown(df, limit=2)["product"].tolist() == ["P5", "P4"]

    empty = build_product_breakdown(_ops([]))
    assert empty.empty
    assert list(empty.columns) == BREAKDOWN_COLUMNS
