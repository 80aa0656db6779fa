import logging
import os
import sys

import streamlit as st

# Add repo root to path to import barplot
sys.path.append(os.path.dirname(__file__))

from barplot.nav import render_sidebar

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(
    page_title="Barplot Studio",
    page_icon="📊",
    layout="wide"
)

render_sidebar()

st.title("📊 Barplot Studio")
st.markdown(r"""
### Build publication-ready bar charts

Enter or import your data, tune the design, and export to **PNG**, **SVG** or **PDF**.

---
""")

col1, col2 = st.columns(2)

with col1:
    st.subheader("Charts")
    st.info("Vertical and horizontal bar charts with error bars.")
    st.page_link("pages/1_Bar_Chart.py", label="Bar Chart Studio", icon="📊", use_container_width=True)
    st.markdown("* Nice axis ticks or a fixed step\n* Patterns, rounded corners, value labels\n"
                "* Side-by-side comparison")

with col2:
    st.subheader("Data")
    st.info("Paste or upload delimited text.")
    st.markdown("* Comma, semicolon, tab, pipe or space separated\n* Dot or comma decimals\n"
                "* Up to 30 rows per import")

st.markdown("---")
st.caption("Barplot Studio v1.0")
