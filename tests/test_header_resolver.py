"""Tests for header-row detection and column resolution."""

from litio_dashboard.config import ARRIVAL_FIELDS, OPERATIONAL_FIELDS
from litio_dashboard.loaders.utils import find_header_row, locate_header_row, resolve_columns


def test_resolve_columns_by_substring():
    """Fields resolve by header text, not by their fallback positions."""
    header = ["FECHA", "PRODUCTO", "DESTINO", "TON PROG", "TON REAL"]
    idx = resolve_columns(header, OPERATIONAL_FIELDS)

    assert idx["fecha"] == 0
    assert idx["producto"] == 1
    assert idx["destino"] == 2
    assert idx["tonProg"] == 3
    assert idx["tonReal"] == 4


def test_resolve_columns_falls_back_for_missing_headers():
    header = ["FECHA", "PRODUCTO", "DESTINO", "TON PROG", "TON REAL"]
    idx = resolve_columns(header, OPERATIONAL_FIELDS)

    assert idx["eqProg"] == 35
    assert idx["faenaReal"] == 50
    assert set(idx) == set(OPERATIONAL_FIELDS)


def test_resolve_columns_is_total_without_a_header():
    idx = resolve_columns(None, ARRIVAL_FIELDS)
    assert idx == {field: fallback for field, (_, fallback) in ARRIVAL_FIELDS.items()}


def test_resolve_columns_first_match_wins():
    header = ["Fecha Despacho", "TON_PROG_AJUSTADO", "TON_PROG"]
    idx = resolve_columns(header, OPERATIONAL_FIELDS)
    assert idx["fecha"] == 0
    assert idx["tonProg"] == 1


def test_find_header_row_below_title_rows():
    grid = [
        ["INFORME DIARIO"],
        [],
        [None, " empresa ", "DESTINO"],
        ["01/01/2024", "M&Q SPA", "PUERTO"],
    ]
    assert find_header_row(grid) == 2


def test_find_header_row_needs_exact_token():
    """A cell merely containing FECHA does not mark the header row."""
    grid = [["FECHA DE CARGA", "TOTAL"], ["x", "y"]]
    assert find_header_row(grid) is None


def test_header_outside_scan_window_defaults_to_row_zero():
    grid = [["titulo"]] * 10 + [["FECHA", "EMPRESA"]]
    assert find_header_row(grid) is None
    assert locate_header_row(grid) == 0
