from __future__ import annotations

from datetime import date

import streamlit as st

from tracker.auth import require_login
from tracker.config import get_settings
from tracker.errors import PersistenceError
from tracker.logging import configure_logging
from tracker.services.batches import load_batches
from tracker.services.reports import dashboard_stats, profit_by_batch, sales_trend
from tracker.services.sales import load_sales
from tracker.stores.factory import get_store

st.set_page_config(page_title="Batch Tracker", page_icon="🧵", layout="wide")

settings = get_settings()
configure_logging(settings.log_level, settings.environment)
require_login(settings)
try:
    store = get_store(settings)
except PersistenceError as e:
    st.error(f"Could not open the {settings.backend} store: {e}")
    st.stop()
cur = settings.currency

st.title("🧵 Dashboard")
st.caption("Batch costing, sales and stock at a glance.")

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Store:** `{settings.backend}`")
    if settings.backend == "local":
        st.write(f"**Database:** `{settings.db_path}`")
    else:
        st.write(f"**Firestore project:** `{settings.firestore_project or 'default'}`")

try:
    batches = load_batches(store)
    sales = load_sales(store)
except Exception as e:
    st.error(f"Could not load data: {e}")
    st.stop()

stats = dashboard_stats(batches, sales)
c1, c2, c3, c4 = st.columns(4)
c1.metric("Revenue", f"{cur}{stats.total_revenue:,.2f}")
c2.metric("Profit", f"{cur}{stats.total_profit:,.2f}")
c3.metric("Orders", f"{stats.sale_count}")
c4.metric("Unsold stock value", f"{cur}{stats.unsold_value:,.2f}")

left, right = st.columns(2)
with left:
    st.subheader("Sales trend (last 7 days)")
    trend = sales_trend(sales, today=date.today())
    st.line_chart(trend.set_index("label")[["revenue", "profit"]])

with right:
    st.subheader("Profit by batch")
    top = profit_by_batch(batches, sales)
    if top.empty:
        st.info("No profitable batches yet.")
    else:
        st.bar_chart(top.set_index("batch"))

if not batches:
    st.info(
        "Start with **📦 Inventory** to define a batch, or load demo data in **🧪 Data Management**.",
        icon="ℹ️",
    )
