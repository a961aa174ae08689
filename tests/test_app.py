"""Tests for the Streamlit pages, driven headless through AppTest."""

from pathlib import Path

import pytest

AppTest = pytest.importorskip("streamlit.testing.v1").AppTest

APP = Path(__file__).resolve().parent.parent / "app.py"


def _uploader_labels(at):
    return [element.proto.label for element in at.get("file_uploader")]


@pytest.fixture
def app():
    at = AppTest.from_file(str(APP), default_timeout=60)
    at.run()
    return at


def test_daily_report_page_has_its_own_uploader(app):
    assert not app.exception
    assert app.title[0].value == "Informe Diario de Despacho"
    assert _uploader_labels(app) == ["Cargar informe diario"]


def test_arrivals_page_has_its_own_uploader(app):
    """Switching pages swaps the uploader, so a dispatch file is never read as arrivals."""
    app.sidebar.radio[0].set_value("Llegada de Equipos").run()

    assert not app.exception
    assert app.title[0].value == "Llegada de Equipos"
    assert _uploader_labels(app) == ["Cargar llegada de equipos"]
