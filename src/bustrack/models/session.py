"""Immutable tracking session snapshots."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from bustrack.exceptions import (
    BusTrackError,
    BusTrackRemoteError,
    BusTrackResponseError,
    BusTrackTransportError,
    BusTrackValidationError,
)
from bustrack.models.vehicle import LocationSample, VehicleStatus


class SessionPhase(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    TRANSPORT = "transport"
    REMOTE = "remote"
    RESPONSE = "response"


class SessionError(BaseModel):
    """Error kept by the session for display."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, exc: BusTrackError) -> SessionError:
        if isinstance(exc, BusTrackValidationError):
            return cls(kind=ErrorKind.VALIDATION, message=str(exc))
        if isinstance(exc, BusTrackRemoteError):
            kind = ErrorKind.REMOTE
        elif isinstance(exc, BusTrackTransportError):
            kind = ErrorKind.TRANSPORT
        elif isinstance(exc, BusTrackResponseError):
            kind = ErrorKind.RESPONSE
        else:
            kind = ErrorKind.TRANSPORT
        message = getattr(exc, "display_message", None) or str(exc)
        return cls(kind=kind, message=message)


class TrackingSnapshot(BaseModel):
    """Value handed to listeners after every session state change."""

    model_config = ConfigDict(frozen=True)

    phase: SessionPhase = SessionPhase.IDLE
    vehicle_id: str | None = None
    status: VehicleStatus | None = None
    location: LocationSample | None = None
    error: SessionError | None = None
    is_fetching: bool = False

    @property
    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE
