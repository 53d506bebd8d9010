"""MapLibre-based highway project map with boundary outlines and line selection."""

import streamlit as st

from utils.fields import canonicalize_feature_properties
from utils.presentation import project_popup_html
from utils.spatial import BoundingBox

AWARDED_COLOR = "#0000ff"
CURRENT_COLOR = "#008000"
DISTRICT_COLOR = "#800000"
COUNTY_COLOR = "#808080"
SELECTED_COLOR = "#ff8c00"

BASEMAPS = {
    "OpenStreetMap": {
        "tiles": [
            "https://a.tile.openstreetmap.org/{z}/{x}/{y}.png",
            "https://b.tile.openstreetmap.org/{z}/{x}/{y}.png",
            "https://c.tile.openstreetmap.org/{z}/{x}/{y}.png",
        ],
        "attribution": '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
    },
    "Esri World Street Map": {
        "tiles": [
            "https://server.arcgisonline.com/ArcGIS/rest/services/World_Street_Map/MapServer/tile/{z}/{y}/{x}"
        ],
        "attribution": "Tiles &copy; Esri",
    },
    "USGS Topo": {
        "tiles": ["https://basemap.nationalmap.gov/arcgis/rest/services/USGSTopo/MapServer/tile/{z}/{y}/{x}"],
        "attribution": "Tiles courtesy of the U.S. Geological Survey",
    },
    "OpenTopoMap": {
        "tiles": [
            "https://a.tile.opentopomap.org/{z}/{x}/{y}.png",
            "https://b.tile.opentopomap.org/{z}/{x}/{y}.png",
        ],
        "attribution": '&copy; <a href="https://opentopomap.org">OpenTopoMap</a> (CC-BY-SA)',
    },
}
DEFAULT_BASEMAP = "OpenStreetMap"

# Properties copied onto each project line for popups and click reporting
POPUP_FIELDS = ("project_id", "description", "county", "plan_year", "type_work", "location")


COMPONENT_HTML = """
<script src="https://unpkg.com/maplibre-gl@4.7.1/dist/maplibre-gl.js"></script>
<link href="https://unpkg.com/maplibre-gl@4.7.1/dist/maplibre-gl.css" rel="stylesheet" />
"""

COMPONENT_CSS = """
.map-container {
    width: 100%;
    height: 650px;
    position: relative;
}
.basemap-select {
    position: absolute;
    top: 10px;
    left: 10px;
    z-index: 1000;
    padding: 4px 6px;
    font-size: 12px;
    border-radius: 4px;
    border: 1px solid #ccc;
    background: rgba(255,255,255,0.95);
}
.map-legend {
    position: absolute;
    bottom: 24px;
    left: 10px;
    z-index: 1000;
    background: rgba(255,255,255,0.95);
    padding: 8px 10px;
    border-radius: 6px;
    font-family: system-ui;
    font-size: 12px;
    box-shadow: 0 2px 8px rgba(0,0,0,0.2);
}
.map-legend span {
    display: inline-block;
    width: 18px;
    height: 3px;
    margin-right: 6px;
    vertical-align: middle;
}
.maplibregl-popup-content {
    background: #3c5e49;
    color: white;
    font-size: 12px;
    padding: 10px;
    max-width: 300px;
}
.maplibregl-popup-content b {
    font-weight: 600;
}
"""

COMPONENT_JS = """
export default function(component) {
    const { parentElement, data, setStateValue } = component;

    let map = null;
    let mapContainer = null;

    function createElementsAndInit() {
        mapContainer = document.createElement('div');
        mapContainer.className = 'map-container';

        const select = document.createElement('select');
        select.className = 'basemap-select';
        Object.keys(data.basemaps).forEach(name => {
            const option = document.createElement('option');
            option.value = name;
            option.textContent = name;
            option.selected = name === data.basemap;
            select.appendChild(option);
        });
        select.addEventListener('change', (e) => {
            Object.keys(data.basemaps).forEach(name => {
                if (map && map.getLayer('basemap-' + name)) {
                    map.setLayoutProperty('basemap-' + name, 'visibility',
                        name === e.target.value ? 'visible' : 'none');
                }
            });
        });

        const legend = document.createElement('div');
        legend.className = 'map-legend';
        legend.innerHTML = `
            <div><span style="background:${data.colors.awarded}"></span>Awarded projects</div>
            <div><span style="background:${data.colors.current}"></span>Current projects</div>
            <div><span style="background:${data.colors.district}"></span>Districts</div>
            <div><span style="background:${data.colors.county}"></span>Counties</div>
            <div><span style="background:${data.colors.selected}"></span>Selected area</div>
        `;

        mapContainer.appendChild(select);
        mapContainer.appendChild(legend);
        parentElement.appendChild(mapContainer);
        initMap();
    }

    function initMap() {
        if (typeof maplibregl === 'undefined') {
            setTimeout(initMap, 50);
            return;
        }

        const sources = {};
        const layers = [];
        Object.entries(data.basemaps).forEach(([name, cfg]) => {
            sources['basemap-' + name] = {
                type: 'raster',
                tiles: cfg.tiles,
                tileSize: 256,
                attribution: cfg.attribution
            };
            layers.push({
                id: 'basemap-' + name,
                type: 'raster',
                source: 'basemap-' + name,
                layout: { visibility: name === data.basemap ? 'visible' : 'none' }
            });
        });

        map = new maplibregl.Map({
            container: mapContainer,
            style: { version: 8, sources: sources, layers: layers },
            center: [data.center.lon, data.center.lat],
            zoom: data.zoom
        });
        map.addControl(new maplibregl.NavigationControl(), 'top-right');

        const popup = new maplibregl.Popup({ closeButton: false, closeOnClick: false, maxWidth: '300px' });

        map.on('load', () => {
            map.addSource('districts', { type: 'geojson', data: data.districts });
            map.addLayer({
                id: 'districts-line', type: 'line', source: 'districts',
                paint: { 'line-color': data.colors.district, 'line-width': 2, 'line-opacity': 0.8 }
            });

            map.addSource('counties', { type: 'geojson', data: data.counties });
            map.addLayer({
                id: 'counties-line', type: 'line', source: 'counties',
                paint: { 'line-color': data.colors.county, 'line-width': 1, 'line-opacity': 0.6 }
            });

            map.addSource('selected-boundary', { type: 'geojson', data: data.selected_boundary });
            map.addLayer({
                id: 'selected-boundary-line', type: 'line', source: 'selected-boundary',
                paint: { 'line-color': data.colors.selected, 'line-width': 4, 'line-opacity': 0.9 }
            });

            const projectLayers = [];
            [['current', data.colors.current], ['awarded', data.colors.awarded]].forEach(([name, color]) => {
                const layerId = name + '-projects';
                map.addSource(name, { type: 'geojson', data: data[name] });
                map.addLayer({
                    id: layerId, type: 'line', source: name,
                    paint: {
                        'line-color': color,
                        'line-width': 3,
                        'line-opacity': ['coalesce', ['get', 'lineOpacity'], 0.8]
                    }
                });
                projectLayers.push(layerId);
            });

            projectLayers.forEach(layerId => {
                map.on('mouseenter', layerId, () => { map.getCanvas().style.cursor = 'pointer'; });
                map.on('mouseleave', layerId, () => {
                    map.getCanvas().style.cursor = '';
                    popup.remove();
                });

                map.on('mousemove', layerId, (e) => {
                    if (!e.features || e.features.length === 0) return;
                    popup.setLngLat(e.lngLat).setHTML(e.features[0].properties.popup_html).addTo(map);
                });

                map.on('click', layerId, (e) => {
                    if (!e.features || e.features.length === 0) return;
                    const p = e.features[0].properties;
                    setStateValue('selected_project', {
                        project_id: p.project_id || null,
                        description: p.description || null,
                        status: p.status,
                        RT_NE_UNIQUE: p.route_unique_id || null,
                        BMP: p.begin_mp,
                        EMP: p.end_mp
                    });
                });
            });

            if (data.bounds) {
                map.fitBounds(data.bounds, { padding: 20, duration: 0 });
            }
        });

        map.on('error', (e) => {
            console.error('MapLibre error:', e);
        });
    }

    createElementsAndInit();

    return () => {
        if (map) {
            map.remove();
        }
    };
}
"""

project_map = st.components.v2.component(
    "maplibre_project_map",
    html=COMPONENT_HTML,
    css=COMPONENT_CSS,
    js=COMPONENT_JS,
)


def prepare_project_lines(feature_collection: dict | None, status: str) -> dict:
    """
    Copy project lines with the canonical popup fields and a status label.

    Args:
        feature_collection: Project lines, already styled with ``lineOpacity``
        status: ``Awarded`` or ``Current``

    Returns:
        dict: FeatureCollection ready for the map
    """
    prepared = []
    for feature in (feature_collection or {}).get("features", []):
        raw = feature.get("properties") or {}
        canonical = canonicalize_feature_properties(raw)
        props = {name: canonical[name] for name in POPUP_FIELDS}
        props["route_unique_id"] = canonical["route_unique_id"]
        props["begin_mp"] = canonical["begin_mp"]
        props["end_mp"] = canonical["end_mp"]
        props["status"] = status
        props["popup_html"] = project_popup_html(props, status)
        if "lineOpacity" in raw:
            props["lineOpacity"] = raw["lineOpacity"]
        prepared.append({"type": "Feature", "geometry": feature.get("geometry"), "properties": props})
    return {"type": "FeatureCollection", "features": prepared}


def build_map_payload(
    awarded: dict | None,
    current: dict | None,
    counties: dict | None,
    districts: dict | None,
    center: list,
    zoom: int,
    bounds: BoundingBox | None = None,
    basemap: str = DEFAULT_BASEMAP,
    selected_boundary: dict | None = None,
) -> dict:
    empty = {"type": "FeatureCollection", "features": []}
    return {
        "awarded": prepare_project_lines(awarded, "Awarded"),
        "current": prepare_project_lines(current, "Current"),
        "counties": counties or empty,
        "districts": districts or empty,
        "selected_boundary": selected_boundary or empty,
        "center": {"lat": center[0], "lon": center[1]},
        "zoom": zoom,
        "bounds": bounds.to_maplibre() if bounds else None,
        "basemaps": BASEMAPS,
        "basemap": basemap if basemap in BASEMAPS else DEFAULT_BASEMAP,
        "colors": {
            "awarded": AWARDED_COLOR,
            "current": CURRENT_COLOR,
            "district": DISTRICT_COLOR,
            "county": COUNTY_COLOR,
            "selected": SELECTED_COLOR,
        },
    }


def render_project_map(payload: dict, key: str = "project_map"):
    """
    Render the MapLibre project map.

    Args:
        payload: Output of build_map_payload
        key: Widget key

    Returns:
        Component value; ``selected_project`` holds the last clicked line
    """
    return project_map(
        data=payload,
        key=key,
        on_selected_project_change=lambda: None,
    )
