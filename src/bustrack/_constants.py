"""Internal constants shared across the library."""

from __future__ import annotations

import dataclasses

DEFAULT_BASE_URL = "http://localhost:5000/api/bus/location"
USER_AGENT = "bustrack/1.0"

#: Seconds between two location polls of an active session.
POLL_INTERVAL_S: float = 20.0

GENERIC_FETCH_ERROR = "Failed to fetch bus location"

# ------------------------------------------------------------------
# Map rendering
# ------------------------------------------------------------------

DEFAULT_MAP_CONTAINER = "map"
DEFAULT_ZOOM = 15
PROXIMITY_RADIUS_M: float = 100.0
MARKER_COLOR = "#667eea"


@dataclasses.dataclass(frozen=True)
class BaseLayer:
    """A switchable tile layer the map can display."""

    key: str
    label: str
    url: str
    attribution: str
    max_zoom: int = 19


BASE_LAYERS: dict[str, BaseLayer] = {
    "street": BaseLayer(
        key="street",
        label="Street",
        url="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        attribution="&copy; OpenStreetMap contributors",
    ),
    "satellite": BaseLayer(
        key="satellite",
        label="Satellite",
        url="https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        attribution="Tiles &copy; Esri",
    ),
    "terrain": BaseLayer(
        key="terrain",
        label="Terrain",
        url="https://{s}.tile.opentopomap.org/{z}/{x}/{y}.png",
        attribution="&copy; OpenStreetMap contributors, SRTM | &copy; OpenTopoMap",
        max_zoom=17,
    ),
}
DEFAULT_LAYER = "street"
