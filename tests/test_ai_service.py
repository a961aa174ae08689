"""Tests for the AI summary and refinement service (no network)."""

import json

import pytest
import requests

from litio_dashboard.ai_service import (
    AIServiceConfig,
    AIServiceError,
    local_fallback,
    parse_summary,
    records_for_prompt,
    refine_text,
    summarise_day,
)
from litio_dashboard.config import AI_API_KEY_ENV_VARS


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Records each POST and replies with a canned response or error."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _reply(text):
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": text}]}}]})


RECORDS = [
    {
        "date": "2024-01-01", "product": "CARBONATO", "destination": "PUERTO",
        "ton_prog": 100.0, "ton_real": 90.0, "eq_prog": 4.0, "eq_real": 4.0,
        "regulation": 1.0, "loading_hours": 1.5, "transit_hours": 2.0,
        "target_cycle_hours": 6.0, "actual_cycle_hours": 6.5,
    }
]

INJECTED = AIServiceConfig(credential_source="injected", api_key="test-key")


@pytest.fixture
def no_env_key(monkeypatch):
    for name in AI_API_KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_fallback_text_is_exact():
    result = local_fallback("", "1:30", None)
    assert result == {
        "summary": "Análisis operativo disponible localmente. Error de conexión.",
        "suggested_kpis": [
            {"label": "Tiempo SdA", "value": "1:30"},
            {"label": "Tiempo PANG", "value": "0:00"},
            {"label": "Estado", "value": "Modo Local"},
        ],
    }


def test_missing_key_falls_back_without_request(no_env_key):
    session = FakeSession(_reply("{}"))
    result = summarise_day(RECORDS, "2024-01-01", "1:30", "2:00", session=session)

    assert result["summary"] == (
        "Análisis operativo disponible localmente. (IA no inicializada (Falta API Key))"
    )
    assert result["suggested_kpis"][0] == {"label": "Tiempo SdA", "value": "1:30"}
    assert session.calls == []


def test_env_key_is_picked_up(no_env_key, monkeypatch):
    monkeypatch.setenv(AI_API_KEY_ENV_VARS[-1], "from-env")
    assert AIServiceConfig().resolve_api_key() == "from-env"

    monkeypatch.setenv(AI_API_KEY_ENV_VARS[0], "undefined")
    assert AIServiceConfig().resolve_api_key() == "from-env"


def test_unknown_credential_source():
    with pytest.raises(AIServiceError):
        AIServiceConfig(credential_source="vault").resolve_api_key()


def test_summarise_day_success():
    reply = {
        "summary": "Cumplimiento de plan al 90%.",
        "suggestedKPIs": [{"label": "Throughput", "value": "90 Ton"}],
    }
    session = FakeSession(_reply("```json\n" + json.dumps(reply) + "\n```"))

    result = summarise_day(RECORDS, "2024-01-01", config=INJECTED, session=session)

    assert result == {
        "summary": "Cumplimiento de plan al 90%.",
        "suggested_kpis": [{"label": "Throughput", "value": "90 Ton"}],
    }
    call = session.calls[0]
    assert call["headers"]["x-goog-api-key"] == "test-key"
    assert "gemini-1.5-flash:generateContent" in call["url"]
    assert call["json"]["generationConfig"] == {"responseMimeType": "application/json"}
    prompt = call["json"]["contents"][0]["parts"][0]["text"]
    assert "2024-01-01" in prompt
    assert '"Producto": "CARBONATO"' in prompt


@pytest.mark.parametrize(
    "reply",
    [
        requests.ConnectionError("sin red"),
        FakeResponse(status_code=500),
        FakeResponse(ValueError("not json")),
        FakeResponse({"candidates": []}),
        _reply(""),
        _reply("no es json"),
        _reply('{"suggestedKPIs": []}'),
    ],
)
def test_summarise_day_failures_fall_back(reply):
    result = summarise_day(RECORDS, "2024-01-01", "1:30", "2:00", INJECTED, FakeSession(reply))

    assert result["summary"].startswith("Análisis operativo disponible localmente. (")
    assert result["suggested_kpis"][-1] == {"label": "Estado", "value": "Modo Local"}


def test_prompt_rows_are_capped():
    session = FakeSession(_reply('{"summary": "ok"}'))
    config = AIServiceConfig(credential_source="injected", api_key="k", max_rows=2)

    summarise_day(RECORDS * 5, "2024-01-01", config=config, session=session)

    prompt = session.calls[0]["json"]["contents"][0]["parts"][0]["text"]
    assert prompt.count('"Producto"') == 2


def test_records_for_prompt_shape():
    (row,) = records_for_prompt(RECORDS)
    assert row["Ton_Real"] == 90.0
    assert row["Tiempos"] == {"SdA": 1.5, "PANG": 2.0, "FaenaReal": 6.5, "FaenaMeta": 6.0}


def test_parse_summary_accepts_snake_case_kpis():
    result = parse_summary('{"summary": " ok ", "suggested_kpis": [{"label": "A", "value": 1}]}')
    assert result == {"summary": "ok", "suggested_kpis": [{"label": "A", "value": "1"}]}


def test_refine_text():
    session = FakeSession(_reply("  Retraso por congestión en puerto.  "))
    refined = refine_text("CARBONATO", "se atraso en puerto", INJECTED, session)

    assert refined == "Retraso por congestión en puerto."
    assert "CARBONATO" in session.calls[0]["json"]["contents"][0]["parts"][0]["text"]
    assert "generationConfig" not in session.calls[0]["json"]


def test_refine_text_short_or_failing_returns_original():
    session = FakeSession(_reply("texto"))
    assert refine_text("CARBONATO", "abc", INJECTED, session) == "abc"
    assert session.calls == []

    failing = FakeSession(requests.Timeout("timeout"))
    assert refine_text("CARBONATO", "se atraso en puerto", INJECTED, failing) == "se atraso en puerto"

    blank = FakeSession(_reply("   "))
    assert refine_text("CARBONATO", "se atraso en puerto", INJECTED, blank) == "se atraso en puerto"
