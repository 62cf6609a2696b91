"""Vehicle status and location models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field

from bustrack.models._base import BusTrackBaseModel, ServiceTimestamp


def normalize_vehicle_id(raw: str | None) -> str:
    """Trim and uppercase a vehicle id.  ``None`` becomes ``""``."""
    if raw is None:
        return ""
    return raw.strip().upper()


class LocationSample(BusTrackBaseModel):
    """One observed vehicle position.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, within [-90, 90].
    longitude : float
        Longitude in degrees, within [-180, 180].
    captured_at : datetime
        When the service observed this position.  Successive samples
        are not guaranteed to be ordered.
    """

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    captured_at: ServiceTimestamp

    @property
    def position(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class VehicleStatus(BusTrackBaseModel):
    """Service-reported status of the tracked vehicle.

    ``is_stale`` is the service's own freshness verdict; it is never
    recomputed locally.
    """

    vehicle_id: str
    operator_name: str = ""
    last_updated_at: ServiceTimestamp
    is_stale: bool = False


class FetchResult(BusTrackBaseModel):
    """Status and location returned by one successful fetch."""

    status: VehicleStatus
    location: LocationSample


class GeoPoint(BusTrackBaseModel):
    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))
    timestamp: ServiceTimestamp | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "capturedAt", "time"),
    )


class BusLocationPayload(BusTrackBaseModel):
    """Bus object as returned by the location service.

    The service wraps it as ``{"bus": {...}}``; a bare bus object is
    accepted too.
    """

    bus_number: str = Field(validation_alias=AliasChoices("busNumber", "vehicleId", "id"))
    driver_name: str = Field(default="", validation_alias=AliasChoices("driverName", "operatorName"))
    last_updated: ServiceTimestamp = Field(validation_alias=AliasChoices("lastUpdated", "lastUpdatedAt"))
    is_stale: bool = False
    location: GeoPoint

    @classmethod
    def from_body(cls, body: Any) -> BusLocationPayload:
        """Validate a decoded response body."""
        if isinstance(body, dict):
            nested = body.get("bus")
            if isinstance(nested, dict):
                return cls.model_validate(nested)
        return cls.model_validate(body)

    def to_result(self) -> FetchResult:
        captured_at: datetime = self.location.timestamp or self.last_updated
        return FetchResult(
            status=VehicleStatus(
                vehicle_id=self.bus_number,
                operator_name=self.driver_name,
                last_updated_at=self.last_updated,
                is_stale=self.is_stale,
            ),
            location=LocationSample(
                latitude=self.location.latitude,
                longitude=self.location.longitude,
                captured_at=captured_at,
            ),
        )
