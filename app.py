from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Batch Tracker", page_icon="🧵", layout="wide")

pages = [
    st.Page("home.py", title="Dashboard", icon="🏠"),
    st.Page("pages/1_📦_Inventory.py", title="Inventory", icon="📦"),
    st.Page("pages/2_🛒_Sales.py", title="Sales", icon="🛒"),
    st.Page("pages/3_📒_Ledger.py", title="Ledger", icon="📒"),
    st.Page("pages/4_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
