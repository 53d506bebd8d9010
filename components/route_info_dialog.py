"""Route information dialog for a selected project line."""

import logging

import streamlit as st

from utils.errors import RemoteAPIError
from utils.formatters import format_milepoint
from utils.route_api import (
    RouteLookupClient,
    RouteSegmentRequest,
    format_route_text,
    render_route_html,
)

logger = logging.getLogger(__name__)


def render_route_lookup_button(selected: dict | None, client: RouteLookupClient):
    """
    Show the selected project line and a button that opens the route dialog.

    Args:
        selected: Properties reported by the map for the clicked line
        client: Route lookup client
    """
    if not selected:
        st.caption("Click a project line on the map to look up its route information.")
        return

    try:
        request = RouteSegmentRequest.from_feature_properties(selected)
    except RemoteAPIError as e:
        st.warning(str(e))
        return

    label = selected.get("project_id") or request.route_unique_id
    st.markdown(
        f"**Selected project:** {label}  \n"
        f"Route {request.route_unique_id}, milepoints "
        f"{format_milepoint(request.begin_mp)} to {format_milepoint(request.end_mp)}"
    )
    if selected.get("description"):
        st.caption(selected["description"])

    if st.button("🛣️ Route Information", help="Look up route details from the KYTC spatial API"):
        show_route_dialog(client, request)


@st.dialog("Route Information", width="large")
def show_route_dialog(client: RouteLookupClient, request: RouteSegmentRequest):
    """Run the lookup and show the summary with copy and print options."""
    try:
        with st.spinner("Contacting KYTC spatial API..."):
            summary = client.summarize(request)
    except RemoteAPIError as e:
        logger.warning("Route lookup failed for %s: %s", request.route_unique_id, e)
        st.error(f"Failed to retrieve route information. {e}")
        return

    left, right = st.columns(2)
    with left:
        st.markdown(f"**County:** {summary.county}")
        st.markdown(f"**Route:** {summary.route}")
        st.markdown(f"**Road Name:** {summary.road_name}")
        st.markdown(f"**Direction:** {summary.direction}")
    with right:
        st.markdown(f"**Surface Type:** {summary.surface_type}")
        st.markdown(f"**Traffic Count:** {summary.traffic_display}")
        st.markdown(f"**Operation Type:** {summary.operation_type}")
        st.markdown(f"**Total Route Segments:** {summary.segment_count}")

    if summary.bridges:
        st.markdown(f"**Bridges on Route:** {', '.join(summary.bridges)}")
    if summary.license_url:
        st.caption(f"[Data License & Usage Terms]({summary.license_url})")

    with st.expander("📋 Copy as text"):
        st.code(format_route_text(summary), language=None)

    st.download_button(
        "🖨️ Printable page",
        data=render_route_html(summary),
        file_name=f"route_{request.route_unique_id}.html",
        mime="text/html",
        on_click="ignore",
    )
