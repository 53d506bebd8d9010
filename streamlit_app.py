import logging

import streamlit as st

from utils.state import get_settings

st.set_page_config(layout="wide", page_title="Kentucky Highway Plan Projects")

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Define pages
pages = [
    st.Page("pages/home.py", title="Home", icon="🏠", default=True),
    st.Page("pages/project_dashboard.py", title="Project Dashboard", icon="🗺️"),
]

# Top bar navigation
pg = st.navigation(pages, position="top")
pg.run()
