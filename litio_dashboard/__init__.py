"""
Litio Dashboard — daily logistics reporting backend

Analytics backend that turns hand-maintained dispatch and truck-arrival
workbooks into canonical tables and dashboard-ready KPIs.

To read a workbook:
    loaders.load_operational_report(path_or_buffer) or
    loaders.load_arrivals(path_or_buffer). Both return pandas DataFrames with
    a fixed schema and raise UnusableSheetError when nothing can be read.

To connect to Streamlit:
    Call dashboard.get_fixed_kpis(df_day) for the KPI cards and
    dashboard.get_product_detail(df_day, product) for each product section.
    Every call recomputes from the table and the active filter.

To add a new column:
    Add an entry to config.OPERATIONAL_FIELDS (header token + fallback
    index) and map it in loaders.operational_report.normalise_operational_row.
"""
