"""
Generative-AI collaborators: executive day summary and justification
refinement.

Both calls go to the Gemini ``generateContent`` REST endpoint through
requests. Neither raises to the caller: when anything goes wrong (no API
key, network or HTTP error, empty or malformed reply) the summary degrades
to a fixed local object built from precomputed averages, and refinement
hands back the original text.
"""

import json
import logging
import os
from dataclasses import dataclass

import pandas as pd
import requests

from .config import (
    AI_API_KEY_ENV_VARS,
    AI_ENDPOINT,
    AI_MAX_ROWS,
    AI_MIN_REFINE_CHARS,
    AI_MODEL,
    AI_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = """Actúa como un Gerente de Logística y Operaciones de SQM.
Analiza el desempeño operativo del día {date} basado en estos datos: {data}.

TU TAREA:
Genera un "Resumen de Gestión de IA" que sea altamente TÉCNICO, EJECUTIVO y PROFESIONAL para la alta gerencia.

REGLAS DE SALIDA:
1. El resumen debe identificar causas raíz de desviaciones (si las hay) y destacar logros de eficiencia.
2. Usa términos como "Throughput", "Ciclo Operativo", "Restricciones de flujo", "Cumplimiento de Plan".
3. No menciones que eres una IA.
4. Responde ÚNICAMENTE en JSON con el formato:
{{
  "summary": "Texto del resumen ejecutivo (máx 3-4 líneas)",
  "suggestedKPIs": [
    {{"label": "KPI 1", "value": "valor"}},
    {{"label": "KPI 2", "value": "valor"}},
    {{"label": "KPI 3", "value": "valor"}},
    {{"label": "KPI 4", "value": "valor"}},
    {{"label": "KPI 5", "value": "valor"}}
  ]
}}"""

REFINE_PROMPT = """Reescribe esta justificación para el producto {product} de forma profesional y técnica para gerencia SQM.
Texto original: "{text}"
Regla: Solo entrega el texto refinado, corto y profesional."""

FALLBACK_SUMMARY = "Análisis operativo disponible localmente. "
FALLBACK_NO_DETAIL = "Error de conexión."
MISSING_KEY_MESSAGE = "IA no inicializada (Falta API Key)"


class AIServiceError(RuntimeError):
    """Any failure talking to the AI service; never escapes this module."""


@dataclass
class AIServiceConfig:
    """How to reach the AI service.

    credential_source is "env" (first non-empty variable in env_vars) or
    "injected" (api_key supplied by the caller, e.g. Streamlit secrets).
    """

    credential_source: str = "env"
    api_key: str | None = None
    env_vars: tuple[str, ...] = AI_API_KEY_ENV_VARS
    model: str = AI_MODEL
    summary_prompt: str = SUMMARY_PROMPT
    refine_prompt: str = REFINE_PROMPT
    endpoint: str = AI_ENDPOINT
    timeout: float = AI_TIMEOUT_SECONDS
    max_rows: int = AI_MAX_ROWS

    def resolve_api_key(self) -> str:
        if self.credential_source == "injected":
            key = self.api_key or ""
        elif self.credential_source == "env":
            key = ""
            for name in self.env_vars:
                value = os.environ.get(name, "").strip()
                if value and value != "undefined":
                    key = value
                    break
        else:
            raise AIServiceError(f"Unknown credential source: {self.credential_source}")

        if not key:
            raise AIServiceError(MISSING_KEY_MESSAGE)
        return key


def records_for_prompt(records) -> list[dict]:
    """Reduce operational records to the fields the prompt talks about."""
    if isinstance(records, pd.DataFrame):
        records = records.to_dict("records")

    return [
        {
            "Fecha": r.get("date"),
            "Producto": r.get("product"),
            "Destino": r.get("destination"),
            "Ton_Prog": r.get("ton_prog"),
            "Ton_Real": r.get("ton_real"),
            "Eq_Prog": r.get("eq_prog"),
            "Eq_Real": r.get("eq_real"),
            "Regulacion_Real": r.get("regulation"),
            "Tiempos": {
                "SdA": r.get("loading_hours"),
                "PANG": r.get("transit_hours"),
                "FaenaReal": r.get("actual_cycle_hours"),
                "FaenaMeta": r.get("target_cycle_hours"),
            },
        }
        for r in records
    ]


def local_fallback(message: str, avg_loading: str | None, avg_transit: str | None) -> dict:
    """The offline summary shown when the AI service cannot be used."""
    detail = f"({message})" if message else FALLBACK_NO_DETAIL
    return {
        "summary": FALLBACK_SUMMARY + detail,
        "suggested_kpis": [
            {"label": "Tiempo SdA", "value": avg_loading or "0:00"},
            {"label": "Tiempo PANG", "value": avg_transit or "0:00"},
            {"label": "Estado", "value": "Modo Local"},
        ],
    }


def _generate(prompt: str, config: AIServiceConfig, session=None, json_mode: bool = False) -> str:
    """POST a single-turn prompt and return the concatenated reply text."""
    key = config.resolve_api_key()

    body: dict = {"contents": [{"parts": [{"text": prompt}]}]}
    if json_mode:
        body["generationConfig"] = {"responseMimeType": "application/json"}

    http = session if session is not None else requests
    try:
        response = http.post(
            config.endpoint.format(model=config.model),
            headers={"x-goog-api-key": key, "Content-Type": "application/json"},
            json=body,
            timeout=config.timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise AIServiceError(f"Request failed: {exc}") from exc

    try:
        parts = payload["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise AIServiceError("Malformed response from AI service") from exc


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_summary(text: str) -> dict:
    """Validate the model's JSON reply into {"summary", "suggested_kpis"}."""
    text = _strip_code_fence(text or "")
    if not text:
        raise AIServiceError("La IA no devolvió texto.")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AIServiceError(f"Invalid JSON from AI service: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("summary"), str):
        raise AIServiceError("AI reply has no summary")

    kpis = data.get("suggestedKPIs", data.get("suggested_kpis", []))
    if not isinstance(kpis, list):
        raise AIServiceError("AI reply has malformed KPI list")

    return {
        "summary": data["summary"].strip(),
        "suggested_kpis": [
            {"label": str(k.get("label", "")), "value": str(k.get("value", ""))}
            for k in kpis
            if isinstance(k, dict)
        ],
    }


def summarise_day(
    records,
    report_date: str,
    avg_loading: str | None = None,
    avg_transit: str | None = None,
    config: AIServiceConfig | None = None,
    session=None,
) -> dict:
    """Ask the AI service for an executive summary of one day.

    Parameters
    ----------
    records : Operational records for the date (DataFrame or list of dicts).
    report_date : ISO date shown in the prompt.
    avg_loading, avg_transit : "H:MM" averages used by the local fallback.
    session : Optional requests.Session (or compatible) to send through.

    Returns
    -------
    {"summary": str, "suggested_kpis": [{"label": str, "value": str}, ...]}
    """
    config = config or AIServiceConfig()
    try:
        rows = records_for_prompt(records)[: config.max_rows]
        prompt = config.summary_prompt.format(
            date=report_date,
            data=json.dumps(rows, ensure_ascii=False, default=str),
        )
        result = parse_summary(_generate(prompt, config, session, json_mode=True))
    except AIServiceError as exc:
        logger.warning("AI summary unavailable, using local fallback: %s", exc)
        return local_fallback(str(exc), avg_loading, avg_transit)
    except Exception as exc:
        logger.exception("Unexpected error while requesting AI summary")
        return local_fallback(str(exc), avg_loading, avg_transit)

    logger.info("AI summary received for %s (%d KPIs)", report_date, len(result["suggested_kpis"]))
    return result


def refine_text(
    product: str,
    raw_text: str,
    config: AIServiceConfig | None = None,
    session=None,
) -> str:
    """Rewrite a deviation justification in a professional register.

    Text shorter than AI_MIN_REFINE_CHARS, and any failure, return the
    original text unchanged.
    """
    if not raw_text or len(raw_text) < AI_MIN_REFINE_CHARS:
        return raw_text

    config = config or AIServiceConfig()
    try:
        prompt = config.refine_prompt.format(product=product, text=raw_text)
        refined = _generate(prompt, config, session)
    except AIServiceError as exc:
        logger.warning("Text refinement unavailable for %s: %s", product, exc)
        return raw_text
    except Exception:
        logger.exception("Unexpected error while refining text for %s", product)
        return raw_text

    return refined.strip() or raw_text
