"""Custom exception hierarchy for bustrack."""

from __future__ import annotations

from bustrack._constants import GENERIC_FETCH_ERROR


class BusTrackError(Exception):
    """Base exception for all bustrack errors."""


class BusTrackConfigError(BusTrackError):
    """Invalid or missing configuration."""


class BusTrackValidationError(BusTrackError, ValueError):
    """Target vehicle id is empty after normalization."""


class BusTrackFetchError(BusTrackError):
    """A location fetch failed.

    ``display_message`` is what the passenger sees; the exception text
    keeps the technical detail for logs.
    """

    def __init__(
        self,
        message: str,
        *,
        display_message: str = GENERIC_FETCH_ERROR,
        vehicle_id: str = "",
    ) -> None:
        self.display_message = display_message
        self.vehicle_id = vehicle_id
        super().__init__(message)


class BusTrackTransportError(BusTrackFetchError):
    """Network failure before any response was received."""


class BusTrackRemoteError(BusTrackFetchError):
    """The location service answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        display_message: str = GENERIC_FETCH_ERROR,
        vehicle_id: str = "",
    ) -> None:
        self.status_code = status_code
        super().__init__(message, display_message=display_message, vehicle_id=vehicle_id)


class BusTrackResponseError(BusTrackFetchError):
    """Response body could not be parsed into a status/location pair."""


class BusTrackRenderError(BusTrackError):
    """The mapping backend could not create or update the map."""
