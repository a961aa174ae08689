"""
Configuration: column field specs, header tokens, sentinels, thresholds,
company equivalences, KPI labels and AI-service defaults.

FIELD specs map each logical field name to (search_token, fallback_index).
The token is matched as a substring of the header cell; the fallback index
is used when no header cell contains it.
"""

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# File paths: demo workbooks written by the simulator
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

DEMO_OPERATIONAL_FILE = DATA_DIR / "demo_informe_diario.xlsx"
DEMO_ARRIVALS_FILE = DATA_DIR / "demo_llegada_equipos.xlsx"

# ---------------------------------------------------------------------------
# Operation identity
# ---------------------------------------------------------------------------
OPERATION_NAME = "SQM Litio — Despacho"

# ---------------------------------------------------------------------------
# Sheet selection
# ---------------------------------------------------------------------------
PREFERRED_SHEET_NAMES = ("Base de Datos",)
SHEET_NAME_TOKENS = ("BASE", "LLEGADA", "DATOS")

# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------
HEADER_TOKENS = ("FECHA", "EMPRESA", "PRODUCTO")
HEADER_SCAN_ROWS = 10

OPERATIONAL_FIELDS: dict[str, tuple[str, int]] = {
    "fecha": ("FECHA", 1),
    "producto": ("PRODUCTO", 31),
    "destino": ("DESTINO", 32),
    "tonProg": ("TON_PROG", 33),
    "tonReal": ("TON_REAL", 34),
    "eqProg": ("EQ_PROG", 35),
    "eqReal": ("EQ_REAL", 36),
    "regReal": ("REGULACION", 46),
    "sda": ("TPO SDA", 4),
    "pang": ("TPO PANG", 5),
    "faenaMeta": ("FAENA META", 49),
    "faenaReal": ("FAENA REAL", 50),
}

ARRIVAL_FIELDS: dict[str, tuple[str, int]] = {
    "fecha": ("FECHA", 0),
    "destino": ("DESTINO", 3),
    "empresa": ("EMPRESA", 11),
    "hora": ("HORA", 14),
}

OPERATIONAL_COLUMNS = [
    "date", "product", "destination",
    "ton_prog", "ton_real",
    "eq_prog", "eq_real",
    "regulation",
    "loading_hours", "transit_hours",
    "target_cycle_hours", "actual_cycle_hours",
]

ARRIVAL_COLUMNS = ["date", "destination", "company", "arrival_hour"]

# ---------------------------------------------------------------------------
# Placeholders for empty text cells
# ---------------------------------------------------------------------------
NO_PRODUCT = "SIN PRODUCTO"
NO_DESTINATION = "S/D"
NO_ARRIVAL_DESTINATION = "SIN DESTINO"
NO_COMPANY = "SIN EMPRESA"

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------
# Cycle-time deviation (hours) at or above which a product is flagged.
TIME_DEVIATION_THRESHOLD_HOURS = 10 / 60
# Tonnage compliance bands (percent).
COMPLIANCE_ACTION_PCT = 85.0
COMPLIANCE_OPTIMAL_PCT = 95.0
PRODUCT_BREAKDOWN_LIMIT = 10

# ---------------------------------------------------------------------------
# Company names
# ---------------------------------------------------------------------------
# Keys are already normalised (uppercase, no periods, "&" -> "AND",
# single spaces). Values are the display spellings of the known carriers.
# Maintained by hand as new spellings show up in exports.
COMPANY_EQUIVALENCES: dict[str, str] = {
    "COSEDUCAM S A": "COSEDUCAM S A",
    "COSEDUCAM SA": "COSEDUCAM S A",
    "COSEDUCAM": "COSEDUCAM S A",
    "M AND Q SPA": "M&Q SPA",
    "M AND Q": "M&Q SPA",
    "MANDQ SPA": "M&Q SPA",
    "M Y Q SPA": "M&Q SPA",
    "M AND Q S P A": "M&Q SPA",
    "M S AND D SPA": "M S & D SPA",
    "MS AND D SPA": "M S & D SPA",
    "M S Y D SPA": "M S & D SPA",
    "MSD SPA": "M S & D SPA",
    "M S AND D S P A": "M S & D SPA",
    "JORQUERA TRANSPORTE S A": "JORQUERA TRANSPORTE S. A.",
    "JORQUERA TRANSPORTE SA": "JORQUERA TRANSPORTE S. A.",
    "JORQUERA TRANSPORTES S A": "JORQUERA TRANSPORTE S. A.",
    "TRANSPORTES JORQUERA": "JORQUERA TRANSPORTE S. A.",
    "AG SERVICES SPA": "AG SERVICES SPA",
    "AG SERVICES": "AG SERVICES SPA",
    "A G SERVICES SPA": "AG SERVICES SPA",
    "AG SERVICE SPA": "AG SERVICES SPA",
}

# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------
KPI_LABELS = {
    "compliance": "Cumplimiento Tonelaje",
    "avg_load": "Carga Promedio (Ton/EQ)",
    "fleet_usage": "Uso de Flota (Real vs Prog)",
    "time_deviation": "Desviación Tiempo Faena",
    "total_regulation": "Total Regulaciones",
}

PRODUCT_STATUS = {
    "action_required": {"label": "ACCIÓN REQUERIDA (TON)", "rag": "red"},
    "time_deviation": {"label": "DESVIACIÓN DE TIEMPO (TPO)", "rag": "amber"},
    "optimal": {"label": "CUMPLIMIENTO ÓPTIMO", "rag": "green"},
    "acceptable": {"label": "RANGO ACEPTABLE", "rag": "amber"},
}

RAG_COLORS = {
    "green": "#89B821",
    "amber": "#f59e0b",
    "red": "#e11d48",
    "grey": "#95a5a6",
    "neutral": "#1e293b",
}

# ---------------------------------------------------------------------------
# AI service
# ---------------------------------------------------------------------------
AI_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY", "API_KEY")
AI_MODEL = "gemini-1.5-flash"
AI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
AI_TIMEOUT_SECONDS = 30.0
AI_MAX_ROWS = 40
AI_MIN_REFINE_CHARS = 5

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
# Serial day 0. 1970-01-01 is serial 25569 on this epoch.
EXCEL_EPOCH = "1899-12-30"
