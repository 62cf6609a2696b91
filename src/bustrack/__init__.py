"""bustrack - Async passenger client that follows a bus on a live map."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bustrack")
except PackageNotFoundError:
    __version__ = "0+local"
from bustrack.config import TrackerConfig
from bustrack.controller import SessionController, target_from_url
from bustrack.exceptions import (
    BusTrackConfigError,
    BusTrackError,
    BusTrackFetchError,
    BusTrackRemoteError,
    BusTrackRenderError,
    BusTrackResponseError,
    BusTrackTransportError,
    BusTrackValidationError,
)
from bustrack.fetcher import LocationFetcher
from bustrack.folium_backend import FoliumMapBackend
from bustrack.map_adapter import MapAdapter, MapBackend
from bustrack.models import (
    ErrorKind,
    FetchResult,
    LocationSample,
    SessionError,
    SessionPhase,
    TrackingSnapshot,
    VehicleStatus,
    normalize_vehicle_id,
)
from bustrack.session import TrackingSession

__all__ = [
    "__version__",
    "BusTrackConfigError",
    "BusTrackError",
    "BusTrackFetchError",
    "BusTrackRemoteError",
    "BusTrackRenderError",
    "BusTrackResponseError",
    "BusTrackTransportError",
    "BusTrackValidationError",
    "ErrorKind",
    "FetchResult",
    "FoliumMapBackend",
    "LocationFetcher",
    "LocationSample",
    "MapAdapter",
    "MapBackend",
    "SessionController",
    "SessionError",
    "SessionPhase",
    "TrackerConfig",
    "TrackingSession",
    "TrackingSnapshot",
    "VehicleStatus",
    "normalize_vehicle_id",
    "target_from_url",
]
