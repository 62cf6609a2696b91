"""Data models for the bus location service and tracking sessions."""

from bustrack.models._base import BusTrackBaseModel, ServiceTimestamp, parse_service_timestamp
from bustrack.models.session import ErrorKind, SessionError, SessionPhase, TrackingSnapshot
from bustrack.models.vehicle import (
    BusLocationPayload,
    FetchResult,
    GeoPoint,
    LocationSample,
    VehicleStatus,
    normalize_vehicle_id,
)

__all__ = [
    "BusLocationPayload",
    "BusTrackBaseModel",
    "ErrorKind",
    "FetchResult",
    "GeoPoint",
    "LocationSample",
    "ServiceTimestamp",
    "SessionError",
    "SessionPhase",
    "TrackingSnapshot",
    "VehicleStatus",
    "normalize_vehicle_id",
    "parse_service_timestamp",
]
