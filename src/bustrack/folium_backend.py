"""folium implementation of the map backend.

Each map is rendered as a standalone Leaflet HTML page named after its
container.  A view keeps its own list of overlays and rebuilds the
folium map from it on every change, so removing a layer or replacing a
popup is a list edit followed by a re-render.  A browser pointed at the
page (with reload) follows the vehicle.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import folium

from bustrack._constants import MARKER_COLOR, BaseLayer
from bustrack.exceptions import BusTrackRenderError

_logger = logging.getLogger(__name__)

LatLng = tuple[float, float]


# Handles compare by identity.
@dataclasses.dataclass(slots=True, eq=False)
class TileOverlay:
    layer: BaseLayer


@dataclasses.dataclass(slots=True, eq=False)
class MarkerOverlay:
    position: LatLng
    popup: str | None = None


@dataclasses.dataclass(slots=True, eq=False)
class CircleOverlay:
    position: LatLng
    radius_m: float


Overlay = TileOverlay | MarkerOverlay | CircleOverlay


@dataclasses.dataclass(slots=True)
class FoliumView:
    """Map handle: what the page shows plus the file it renders to."""

    path: Path
    center: LatLng
    zoom: int
    overlays: list[Overlay] = dataclasses.field(default_factory=list)

    def build(self) -> folium.Map:
        fmap = folium.Map(location=list(self.center), zoom_start=self.zoom, tiles=None, control_scale=True)
        for overlay in self.overlays:
            _to_element(overlay).add_to(fmap)
        return fmap


def _to_element(overlay: Overlay) -> folium.Element:
    if isinstance(overlay, TileOverlay):
        layer = overlay.layer
        return folium.TileLayer(
            tiles=layer.url,
            attr=layer.attribution,
            name=layer.label,
            max_zoom=layer.max_zoom,
            overlay=False,
            control=False,
        )
    if isinstance(overlay, MarkerOverlay):
        popup = folium.Popup(overlay.popup, max_width=300, show=True) if overlay.popup else None
        return folium.Marker(
            location=list(overlay.position),
            popup=popup,
            icon=folium.Icon(color="purple", icon="bus", prefix="fa"),
        )
    return folium.Circle(
        location=list(overlay.position),
        radius=overlay.radius_m,
        color=MARKER_COLOR,
        fill=True,
        fill_color=MARKER_COLOR,
        fill_opacity=0.1,
    )


class FoliumMapBackend:
    """Render maps to ``<output_dir>/<container>.html``."""

    def __init__(self, output_dir: str | Path = ".") -> None:
        self._output_dir = Path(output_dir)

    def create_map(self, container: str, center: LatLng, zoom: int) -> FoliumView:
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BusTrackRenderError(f"Cannot create map {container!r}: {exc}") from exc
        view = FoliumView(path=self._output_dir / f"{container}.html", center=center, zoom=zoom)
        self._render(view)
        return view

    def add_tile_layer(self, map_: FoliumView, layer: BaseLayer) -> TileOverlay:
        tiles = TileOverlay(layer)
        self._add(map_, tiles)
        return tiles

    def remove_layer(self, map_: FoliumView, layer: Overlay) -> None:
        if layer in map_.overlays:
            map_.overlays.remove(layer)
            self._render(map_)

    def add_marker(self, map_: FoliumView, position: LatLng) -> MarkerOverlay:
        marker = MarkerOverlay(position)
        self._add(map_, marker)
        return marker

    def add_circle(self, map_: FoliumView, position: LatLng, radius_m: float) -> CircleOverlay:
        circle = CircleOverlay(position, radius_m)
        self._add(map_, circle)
        return circle

    def set_position(self, map_: FoliumView, overlay: MarkerOverlay | CircleOverlay, position: LatLng) -> None:
        overlay.position = position
        self._render(map_)

    def bind_popup(self, map_: FoliumView, marker: MarkerOverlay, content: str) -> None:
        marker.popup = content
        self._render(map_)

    def pan_to(self, map_: FoliumView, position: LatLng) -> None:
        map_.center = position
        self._render(map_)

    def destroy_map(self, map_: FoliumView) -> None:
        map_.overlays.clear()
        try:
            map_.path.unlink(missing_ok=True)
        except OSError as exc:
            raise BusTrackRenderError(f"Cannot remove {map_.path}: {exc}") from exc

    def _add(self, view: FoliumView, overlay: Overlay) -> None:
        view.overlays.append(overlay)
        self._render(view)

    def _render(self, view: FoliumView) -> None:
        try:
            view.build().save(str(view.path))
        except (OSError, ValueError, TypeError) as exc:
            raise BusTrackRenderError(f"Cannot write {view.path}: {exc}") from exc
        _logger.debug("Rendered %s with %d overlays", view.path, len(view.overlays))
