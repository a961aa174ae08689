"""
Litio Dashboard — Interactive Dashboard

Run with:  streamlit run app.py
"""

import io
import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from litio_dashboard.config import OPERATION_NAME, RAG_COLORS
from litio_dashboard.loaders import (
    UnusableSheetError,
    build_arrival_table,
    build_operational_table,
    get_available_dates,
    load_arrivals,
    load_operational_report,
)
from litio_dashboard.loaders.utils import format_date_cl, format_hours_to_clock
from litio_dashboard.simulator import generate_arrival_grid, generate_operational_grid
from litio_dashboard.transforms import build_product_breakdown, filter_records
from litio_dashboard.kpis import find_deviated_products
from litio_dashboard.dashboard import (
    get_ai_inputs,
    get_arrival_pivot,
    get_companies,
    get_destinations,
    get_fixed_kpis,
    get_hourly_arrivals,
    get_product_detail,
    get_products,
)
from litio_dashboard.ai_service import AIServiceConfig, refine_text, summarise_day

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Litio Dashboard",
    page_icon="🚚",
    layout="wide",
    initial_sidebar_state="expanded",
)

COLORS = ["#003595", "#89B821", "#f59e0b", "#0ea5e9", "#e11d48", "#64748b"]


# ---------------------------------------------------------------------------
# Data loading (cached per uploaded file)
# ---------------------------------------------------------------------------
@st.cache_data
def load_operations(content: bytes | None) -> pd.DataFrame:
    if content is None:
        return build_operational_table(generate_operational_grid())
    return load_operational_report(io.BytesIO(content))


@st.cache_data
def load_arrival_log(content: bytes | None) -> pd.DataFrame:
    if content is None:
        return build_arrival_table(generate_arrival_grid())
    return load_arrivals(io.BytesIO(content))


def ai_config() -> AIServiceConfig:
    try:
        key = st.secrets.get("GEMINI_API_KEY")
    except Exception:
        # No secrets.toml: fall back to environment variables
        key = None
    if key:
        return AIServiceConfig(credential_source="injected", api_key=key)
    return AIServiceConfig()


def uploaded_bytes(label: str, key: str) -> bytes | None:
    """Per-page uploader; each page only ever parses its own file."""
    uploaded = st.sidebar.file_uploader(label, type=["xlsx", "xlsm"], key=key)
    return uploaded.getvalue() if uploaded is not None else None


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("Litio Dashboard")
st.sidebar.markdown(OPERATION_NAME)
st.sidebar.divider()

page = st.sidebar.radio("Navegar", ["Informe Diario", "Llegada de Equipos"])

st.sidebar.divider()
st.sidebar.caption("Sin archivo se muestran datos de demostración.")


# ---------------------------------------------------------------------------
# Helper: KPI card
# ---------------------------------------------------------------------------
def kpi_card(label: str, value: str, highlight: str = "neutral"):
    color = RAG_COLORS.get(highlight, RAG_COLORS["neutral"])
    st.markdown(
        f"""
        <div style="border-left: 4px solid {color}; border-radius: 8px;
                    padding: 14px; margin-bottom: 8px; background: {color}11;">
            <div style="font-size: 12px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
            <div style="font-size: 26px; font-weight: 800; color: {color};">{value}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


# ===========================================================================
# PAGE: Informe Diario
# ===========================================================================
if page == "Informe Diario":
    try:
        operations = load_operations(uploaded_bytes("Cargar informe diario", "operational_upload"))
    except UnusableSheetError:
        st.error("Archivo vacío o inutilizable. Verifica que exista la columna FECHA.")
        st.stop()

    dates = get_available_dates(operations)
    selected_date = st.sidebar.selectbox("Fecha", dates, format_func=format_date_cl)
    day = filter_records(operations, date=selected_date)

    st.title("Informe Diario de Despacho")
    st.caption(f"Fecha: **{format_date_cl(selected_date)}** — {len(day)} registros")

    cols = st.columns(5)
    for col, kpi in zip(cols, get_fixed_kpis(day)):
        with col:
            kpi_card(kpi["label"], kpi["value"], kpi["highlight"])

    st.divider()

    breakdown = build_product_breakdown(day)
    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Comparativa Tonelaje: Programado vs Real")
        fig = go.Figure()
        fig.add_trace(go.Bar(x=breakdown["product"], y=breakdown["ton_prog"], name="Programado", marker_color=COLORS[0]))
        fig.add_trace(go.Bar(x=breakdown["product"], y=breakdown["ton_real"], name="Real", marker_color=COLORS[1]))
        fig.update_layout(barmode="group", height=380, plot_bgcolor="rgba(0,0,0,0)")
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        st.subheader("Distribución de Carga por Destino")
        by_destination = day.groupby("destination", as_index=False)["ton_real"].sum()
        fig = px.pie(by_destination, names="destination", values="ton_real", hole=0.45,
                     color_discrete_sequence=COLORS)
        fig.update_layout(height=380)
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("Equipos Reales por Tipo de Producto")
    fig = go.Figure(go.Bar(x=breakdown["product"], y=breakdown["eq_real"], marker_color=COLORS[3]))
    fig.update_layout(height=300, plot_bgcolor="rgba(0,0,0,0)")
    st.plotly_chart(fig, use_container_width=True)

    # AI summary runs only after the tables and KPIs above are built
    st.subheader("Resumen de Gestión")
    if st.button("Generar resumen"):
        ai_inputs = get_ai_inputs(day)
        with st.spinner("Analizando..."):
            summary = summarise_day(
                day, selected_date, ai_inputs["avg_loading"], ai_inputs["avg_transit"], ai_config()
            )
        st.info(summary["summary"])
        kpi_cols = st.columns(max(len(summary["suggested_kpis"]), 1))
        for col, kpi in zip(kpi_cols, summary["suggested_kpis"]):
            with col:
                st.metric(kpi["label"], kpi["value"])

    st.divider()

    # Product sections
    for product in get_products(day):
        detail = get_product_detail(day, product)
        st.markdown(f"### {product}")
        kpi_card("Estado", detail["status_label"], detail["rag"])
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Tonelaje Real", f"{detail['ton_real']:,.0f} Ton", f"{detail['ton_diff']:+,.0f} vs Prog")
        c2.metric("Equipos Reales", f"{detail['eq_real']:.0f} EQ", f"{detail['eq_diff']:+.0f} vs Prog")
        c3.metric("Cumplimiento", f"{detail['compliance_pct']:.1f}%")
        c4.metric("Carga Promedio", f"{detail['avg_load']:.2f} Ton/EQ")
        c1.metric("Regulación Promedio", f"{detail['avg_regulation']:.1f}")
        c2.metric("Faena Real", detail["avg_actual_cycle"], detail["time_deviation"], delta_color="inverse")
        c3.metric("Faena Meta", detail["avg_target_cycle"])
        c4.metric("Destino Principal", detail["main_destination"], f"{detail['main_destination_count']} viajes")

    # Justifications for deviated products
    deviated = find_deviated_products(breakdown)
    if deviated:
        st.divider()
        st.subheader("Justificación por Desviación")
        for item in deviated:
            product = item["product"]
            issues = []
            if item["ton_issue"]:
                issues.append("Tonelaje < 85%")
            if item["time_issue"]:
                issues.append("Desviación Tiempo")
            key = f"justification_{selected_date}_{product}"
            text = st.text_area(f"{product} — {', '.join(issues)}", key=key)
            if st.button("Mejorar con IA", key=f"refine_{key}", disabled=len(text) < 5):
                st.session_state[f"refined_{key}"] = refine_text(product, text, ai_config())
            refined = st.session_state.get(f"refined_{key}")
            if refined:
                st.success(refined)


# ===========================================================================
# PAGE: Llegada de Equipos
# ===========================================================================
elif page == "Llegada de Equipos":
    try:
        arrivals = load_arrival_log(uploaded_bytes("Cargar llegada de equipos", "arrivals_upload"))
    except UnusableSheetError:
        st.error("Error al cargar el archivo. Verifica que las columnas FECHA, EMPRESA, DESTINO y HORA existan.")
        st.stop()

    st.title("Llegada de Equipos")

    dates = get_available_dates(arrivals)
    selected_date = st.sidebar.selectbox("Fecha", dates, format_func=format_date_cl)
    companies = get_companies(arrivals, selected_date)
    selected_company = st.sidebar.selectbox("Empresa", companies)
    all_destinations = get_destinations(arrivals, selected_date, selected_company)
    selected_destinations = st.sidebar.multiselect("Destinos", all_destinations, default=all_destinations)
    hour_range = st.sidebar.slider("Rango horario", 0, 23, (0, 23))

    hourly = get_hourly_arrivals(arrivals, selected_date, selected_company, selected_destinations, hour_range)

    fig = go.Figure()
    for i, destination in enumerate(selected_destinations):
        fig.add_trace(go.Bar(
            x=hourly["hour_label"],
            y=hourly[destination],
            name=destination,
            marker_color=COLORS[i % len(COLORS)],
        ))
    fig.update_layout(barmode="stack", height=420, plot_bgcolor="rgba(0,0,0,0)",
                      xaxis_title="Hora", yaxis_title="Equipos")
    st.plotly_chart(fig, use_container_width=True)

    st.subheader("Detalle por hora")
    pivot = get_arrival_pivot(arrivals, selected_date, selected_company, selected_destinations, hour_range)
    if pivot.empty:
        st.warning("Sin llegadas en el rango seleccionado.")
    else:
        st.dataframe(pivot.drop(columns=["hour"]), use_container_width=True, hide_index=True)

    day = filter_records(arrivals, date=selected_date, company=selected_company)
    if not day.empty:
        first, last = day["arrival_hour"].min(), day["arrival_hour"].max()
        st.caption(f"Primera llegada {format_hours_to_clock(first)} — última {format_hours_to_clock(last)}")
