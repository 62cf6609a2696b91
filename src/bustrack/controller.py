"""Composition root wiring the tracking session to the map."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from yarl import URL

from bustrack.config import TrackerConfig
from bustrack.fetcher import LocationFetcher
from bustrack.folium_backend import FoliumMapBackend
from bustrack.map_adapter import MapAdapter, MapBackend
from bustrack.models.session import SessionError, TrackingSnapshot
from bustrack.models.vehicle import normalize_vehicle_id
from bustrack.session import LocationSource, SnapshotListener, TrackingSession

_logger = logging.getLogger(__name__)

_TRACK_PATH = re.compile(r"^/track/([^/]+)/?$")

ManualEntry = Callable[[], str | None]


def target_from_url(url: str | URL | None) -> str | None:
    """Extract the target vehicle id from a URL.

    The ``track`` query parameter wins over a ``/track/<id>`` path.
    Returns ``None`` when neither yields a non-empty id.
    """
    if url is None:
        return None
    parsed = url if isinstance(url, URL) else URL(url)

    candidate = normalize_vehicle_id(parsed.query.get("track"))
    if candidate:
        return candidate

    match = _TRACK_PATH.match(parsed.path)
    if match:
        candidate = normalize_vehicle_id(match.group(1))
        if candidate:
            return candidate
    return None


class SessionController:
    """Start/stop/switch commands for the surrounding UI.

    Owns no polling or rendering logic: session snapshots are forwarded
    to :meth:`MapAdapter.project`, and the map is disposed whenever the
    session goes idle or changes target.

    Usage::

        async with SessionController(config, manual_entry=ask_user) as controller:
            await controller.run(url)
    """

    def __init__(
        self,
        config: TrackerConfig,
        *,
        fetcher: LocationSource | None = None,
        map_backend: MapBackend | None = None,
        render_map: bool = True,
        manual_entry: ManualEntry | None = None,
    ) -> None:
        self._config = config
        self._owned_fetcher: LocationFetcher | None = None
        if fetcher is None:
            self._owned_fetcher = LocationFetcher(config)
            fetcher = self._owned_fetcher
        if map_backend is None and render_map:
            map_backend = FoliumMapBackend(config.output_dir)
        self._map = MapAdapter(
            map_backend,
            container=config.map_container,
            zoom=config.map_zoom,
            proximity_radius_m=config.proximity_radius_m,
            default_layer=config.default_layer,
        )
        self._session = TrackingSession(
            fetcher,
            interval=config.poll_interval,
            strict_ordering=config.strict_ordering,
            on_snapshot=self._on_snapshot,
        )
        self._manual_entry = manual_entry
        self._snapshot = TrackingSnapshot()
        self._dismissed_error: SessionError | None = None
        self._listeners: list[SnapshotListener] = []

    async def __aenter__(self) -> SessionController:
        if self._owned_fetcher is not None:
            await self._owned_fetcher.__aenter__()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        try:
            await self._session.aclose()
        finally:
            self._map.dispose()
            if self._owned_fetcher is not None:
                await self._owned_fetcher.close()

    # ------------------------------------------------------------------
    # State for the UI
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> TrackingSnapshot:
        return self._snapshot

    @property
    def session(self) -> TrackingSession:
        return self._session

    @property
    def map(self) -> MapAdapter:
        return self._map

    @property
    def map_available(self) -> bool:
        return self._map.available

    @property
    def visible_error(self) -> SessionError | None:
        """Current session error unless the user dismissed it."""
        error = self._snapshot.error
        if error is None or error is self._dismissed_error:
            return None
        return error

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def resolve_target(self, url: str | URL | None = None) -> str | None:
        """Initial target: the URL first, then manual entry."""
        target = target_from_url(url)
        if target is not None:
            _logger.debug("Target %s resolved from URL", target)
            return target
        if self._manual_entry is None:
            return None
        entered = self._manual_entry()
        return entered if entered and entered.strip() else None

    async def run(self, url: str | URL | None = None) -> TrackingSnapshot | None:
        """Resolve the initial target once and start tracking it."""
        target = self.resolve_target(url)
        if target is None:
            _logger.info("No bus selected")
            return None
        return await self.start(target)

    async def start(self, vehicle_id: str | None) -> TrackingSnapshot:
        return await self._session.start(vehicle_id)

    def stop(self) -> None:
        self._session.stop()

    def switch_layer(self, key: str) -> bool:
        return self._map.set_layer(key)

    def dismiss_error(self) -> None:
        """Hide the current error; tracking continues unchanged."""
        self._dismissed_error = self._snapshot.error

    # ------------------------------------------------------------------
    # Session → map projection
    # ------------------------------------------------------------------

    def _on_snapshot(self, snapshot: TrackingSnapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot

        if not snapshot.is_active or snapshot.vehicle_id != previous.vehicle_id:
            self._map.dispose()
        if snapshot.is_active and (
            snapshot.location != previous.location
            or snapshot.status != previous.status
            or not self._map.is_initialized
        ):
            self._map.project(snapshot.location, snapshot.status)

        for listener in list(self._listeners):
            listener(snapshot)
