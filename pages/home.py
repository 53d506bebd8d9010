import streamlit as st

st.title("Kentucky Highway Plan Projects")

st.markdown("""
A dashboard for exploring the projects in the Kentucky Transportation Cabinet's
Highway Plan, both awarded and still current, across the state's counties and
highway districts.
""")

st.markdown("### Features")

col1, col2 = st.columns(2)

with col1:
    st.markdown("""
    **Project Dashboard**

    Filter projects by county, highway district or project type. The map,
    awarded vs current breakdown, projects per plan year and the project table
    all follow the selected filter.
    """)

with col2:
    st.markdown("""
    **Route Information**

    Click a project line on the map to look up its route, road name, traffic
    count and bridges from the KYTC spatial API, then copy or print the result.
    """)

st.caption("Tables can be exported to CSV, JSON or Excel from the dashboard.")
