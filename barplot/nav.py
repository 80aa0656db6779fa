import streamlit as st


def render_sidebar():
    """
    Renders the sidebar with a Home button and the studio link.
    """
    with st.sidebar:
        st.page_link("Home.py", label="Home", icon="🏠", use_container_width=True)
        st.page_link("pages/1_Bar_Chart.py", label="Bar Chart Studio", icon="📊", use_container_width=True)
        st.markdown("---")
