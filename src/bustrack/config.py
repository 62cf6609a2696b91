"""Client configuration for bustrack."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from bustrack._constants import (
    BASE_LAYERS,
    DEFAULT_BASE_URL,
    DEFAULT_LAYER,
    DEFAULT_MAP_CONTAINER,
    DEFAULT_ZOOM,
    POLL_INTERVAL_S,
    PROXIMITY_RADIUS_M,
)
from bustrack.exceptions import BusTrackConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    base_url : str
        Location service endpoint; the vehicle id is appended as the
        last path segment.
    poll_interval : float
        Seconds between two polls of an active session.
    request_timeout : float or None
        Total timeout for one fetch.  ``None`` leaves the request
        without an explicit timeout; a slow response only delays its
        own tick.
    strict_ordering : bool
        Drop a fetch result when a newer request for the same target
        has already been applied.  By default the last response to
        complete wins.
    map_container : str
        Name of the container the map is bound to.  The folium backend
        uses it as the HTML file stem.
    map_zoom : int
        Initial zoom level.
    proximity_radius_m : float
        Radius of the proximity circle drawn around the vehicle.
    default_layer : str
        Base layer key selected when the map is created.
    output_dir : str
        Directory the rendered map is written to.
    """

    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = POLL_INTERVAL_S
    request_timeout: float | None = None
    strict_ordering: bool = False
    map_container: str = DEFAULT_MAP_CONTAINER
    map_zoom: int = DEFAULT_ZOOM
    proximity_radius_m: float = PROXIMITY_RADIUS_M
    default_layer: str = DEFAULT_LAYER
    output_dir: str = "."

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise BusTrackConfigError("base_url must not be empty")
        if self.poll_interval <= 0:
            raise BusTrackConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise BusTrackConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.default_layer not in BASE_LAYERS:
            raise BusTrackConfigError(
                f"default_layer must be one of {sorted(BASE_LAYERS)}, got {self.default_layer!r}"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from ``BUSTRACK_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "BUSTRACK_BASE_URL": "base_url",
            "BUSTRACK_MAP_CONTAINER": "map_container",
            "BUSTRACK_DEFAULT_LAYER": "default_layer",
            "BUSTRACK_OUTPUT_DIR": "output_dir",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            interval_env = env.get("BUSTRACK_POLL_INTERVAL")
            if interval_env is not None and "poll_interval" not in overrides:
                config_kwargs["poll_interval"] = float(interval_env)

            timeout_env = env.get("BUSTRACK_REQUEST_TIMEOUT")
            if timeout_env is not None and "request_timeout" not in overrides:
                config_kwargs["request_timeout"] = float(timeout_env) if timeout_env.strip() else None

            zoom_env = env.get("BUSTRACK_MAP_ZOOM")
            if zoom_env is not None and "map_zoom" not in overrides:
                config_kwargs["map_zoom"] = int(zoom_env)

            radius_env = env.get("BUSTRACK_PROXIMITY_RADIUS")
            if radius_env is not None and "proximity_radius_m" not in overrides:
                config_kwargs["proximity_radius_m"] = float(radius_env)
        except ValueError as exc:
            raise BusTrackConfigError(f"Invalid numeric BUSTRACK_* setting: {exc}") from exc

        if "strict_ordering" not in overrides:
            config_kwargs["strict_ordering"] = _env_bool(env.get("BUSTRACK_STRICT_ORDERING"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
