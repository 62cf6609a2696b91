"""Project tracking snapshots onto a map through a pluggable backend.

The adapter owns exactly one map instance at a time, created lazily on
the first available location and released by :meth:`MapAdapter.dispose`.
Rendering goes through the :class:`MapBackend` protocol so the adapter
never depends on one mapping library; `bustrack.folium_backend` is the
bundled implementation.
"""

from __future__ import annotations

import dataclasses
import html
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from bustrack._constants import (
    BASE_LAYERS,
    DEFAULT_LAYER,
    DEFAULT_MAP_CONTAINER,
    DEFAULT_ZOOM,
    PROXIMITY_RADIUS_M,
    BaseLayer,
)
from bustrack.exceptions import BusTrackRenderError
from bustrack.models.vehicle import LocationSample, VehicleStatus

_logger = logging.getLogger(__name__)

LatLng = tuple[float, float]


class MapBackend(Protocol):
    """Operations the adapter needs from a mapping library.

    Handles returned by the backend are opaque to the adapter.  Every
    method raises :class:`BusTrackRenderError` on failure.
    """

    def create_map(self, container: str, center: LatLng, zoom: int) -> Any: ...

    def add_tile_layer(self, map_: Any, layer: BaseLayer) -> Any: ...

    def remove_layer(self, map_: Any, layer: Any) -> None: ...

    def add_marker(self, map_: Any, position: LatLng) -> Any: ...

    def add_circle(self, map_: Any, position: LatLng, radius_m: float) -> Any: ...

    def set_position(self, map_: Any, overlay: Any, position: LatLng) -> None: ...

    def bind_popup(self, map_: Any, marker: Any, content: str) -> None: ...

    def pan_to(self, map_: Any, position: LatLng) -> None: ...

    def destroy_map(self, map_: Any) -> None: ...


@dataclasses.dataclass(slots=True)
class MapRenderState:
    """Live handles owned by the adapter for the current map instance."""

    map: Any
    marker: Any = None
    proximity: Any = None
    active_layer_key: str | None = None
    layers: dict[str, Any] = dataclasses.field(default_factory=dict)


def render_popup(status: VehicleStatus | None) -> str:
    """HTML popup summarizing *status*."""
    bus = html.escape(status.vehicle_id) if status is not None and status.vehicle_id else "Bus"
    driver = html.escape(status.operator_name) if status is not None and status.operator_name else "N/A"
    parts = [
        '<div style="text-align: center;">',
        f"<strong>&#x1F68C; {bus}</strong><br/>",
        f"<span>Driver: {driver}</span>",
    ]
    if status is not None and status.is_stale:
        parts.append("<br/><em>Location may be outdated</em>")
    parts.append("</div>")
    return "".join(parts)


class MapAdapter:
    """Render the tracked vehicle as a marker with a proximity circle."""

    def __init__(
        self,
        backend: MapBackend | None,
        *,
        container: str = DEFAULT_MAP_CONTAINER,
        zoom: int = DEFAULT_ZOOM,
        proximity_radius_m: float = PROXIMITY_RADIUS_M,
        layers: Mapping[str, BaseLayer] = BASE_LAYERS,
        default_layer: str = DEFAULT_LAYER,
    ) -> None:
        if default_layer not in layers:
            raise ValueError(f"default_layer {default_layer!r} is not one of {sorted(layers)}")
        self._backend = backend
        self._container = container
        self._zoom = zoom
        self._radius = proximity_radius_m
        self._layers = dict(layers)
        self._selected_layer = default_layer
        self._state: MapRenderState | None = None
        self._available = backend is not None

    @property
    def available(self) -> bool:
        """``False`` once the backend failed (or none was given)."""
        return self._available

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    @property
    def active_layer(self) -> str:
        if self._state is not None and self._state.active_layer_key is not None:
            return self._state.active_layer_key
        return self._selected_layer

    @property
    def layer_keys(self) -> list[str]:
        return list(self._layers)

    @property
    def state(self) -> MapRenderState | None:
        return self._state

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def project(self, location: LocationSample | None, status: VehicleStatus | None) -> bool:
        """Render or update the map for the latest sample.

        Returns ``True`` when the map shows *location*.  Without a
        location the marker and circle are removed from an existing map.
        Never raises for rendering failures; check :attr:`available`.
        """
        if not self._available or self._backend is None:
            return False
        try:
            if location is None:
                if self._state is not None:
                    self._clear_overlays(self._backend, self._state)
                return False
            if self._state is None:
                self._initialize(self._backend, location, status)
            else:
                self._update(self._backend, self._state, location, status)
        except BusTrackRenderError as exc:
            _logger.warning("Map unavailable: %s", exc)
            self._mark_unavailable()
            return False
        return True

    def _initialize(self, backend: MapBackend, location: LocationSample, status: VehicleStatus | None) -> None:
        position = location.position
        state = MapRenderState(map=backend.create_map(self._container, position, self._zoom))
        self._state = state
        self._attach_layer(backend, state, self._selected_layer)
        self._add_overlays(backend, state, position, status)
        _logger.debug("Map %r created at %s", self._container, position)

    def _update(
        self,
        backend: MapBackend,
        state: MapRenderState,
        location: LocationSample,
        status: VehicleStatus | None,
    ) -> None:
        position = location.position
        if state.marker is None:
            self._add_overlays(backend, state, position, status)
        else:
            backend.set_position(state.map, state.marker, position)
            if state.proximity is not None:
                backend.set_position(state.map, state.proximity, position)
            if status is not None:
                backend.bind_popup(state.map, state.marker, render_popup(status))
        backend.pan_to(state.map, position)

    def _add_overlays(
        self,
        backend: MapBackend,
        state: MapRenderState,
        position: LatLng,
        status: VehicleStatus | None,
    ) -> None:
        state.marker = backend.add_marker(state.map, position)
        state.proximity = backend.add_circle(state.map, position, self._radius)
        backend.bind_popup(state.map, state.marker, render_popup(status))

    def _clear_overlays(self, backend: MapBackend, state: MapRenderState) -> None:
        for overlay in (state.marker, state.proximity):
            if overlay is not None:
                backend.remove_layer(state.map, overlay)
        state.marker = None
        state.proximity = None

    # ------------------------------------------------------------------
    # Base layers
    # ------------------------------------------------------------------

    def set_layer(self, key: str) -> bool:
        """Make *key* the only attached base layer.

        Unknown keys are ignored and the current layer stays attached.
        Before the map exists this only selects the initial layer.
        """
        if key not in self._layers:
            _logger.debug("Ignoring unknown base layer %r", key)
            return False
        self._selected_layer = key
        state = self._state
        if state is None or self._backend is None:
            return True
        try:
            self._attach_layer(self._backend, state, key)
        except BusTrackRenderError as exc:
            _logger.warning("Map unavailable: %s", exc)
            self._mark_unavailable()
            return False
        return True

    def _attach_layer(self, backend: MapBackend, state: MapRenderState, key: str) -> None:
        for handle in state.layers.values():
            backend.remove_layer(state.map, handle)
        state.layers.clear()
        state.active_layer_key = None
        state.layers[key] = backend.add_tile_layer(state.map, self._layers[key])
        state.active_layer_key = key

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Destroy the map instance, if any, and forget all handles."""
        state = self._state
        self._state = None
        self._available = self._backend is not None
        if state is None or self._backend is None:
            return
        try:
            self._backend.destroy_map(state.map)
        except BusTrackRenderError:
            _logger.debug("Map teardown failed", exc_info=True)
        _logger.debug("Map %r disposed", self._container)

    def _mark_unavailable(self) -> None:
        self.dispose()
        self._available = False
