"""Single-shot vehicle location fetches."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from bustrack._constants import GENERIC_FETCH_ERROR
from bustrack._transport import HttpTransport, Transport
from bustrack.config import TrackerConfig
from bustrack.exceptions import BusTrackError, BusTrackRemoteError, BusTrackResponseError
from bustrack.models.vehicle import BusLocationPayload, FetchResult

_logger = logging.getLogger(__name__)


def _remote_message(body: Any) -> str | None:
    """Extract the service's human-readable ``error`` text, if any."""
    if not isinstance(body, dict):
        return None
    message = body.get("error")
    if isinstance(message, str) and message.strip():
        return message
    return None


class LocationFetcher:
    """Fetch the current status and location of one vehicle.

    Every call is exactly one network round trip: no retry, no cache.
    The id is expected to be normalized already.

    Usage::

        async with LocationFetcher(config) as fetcher:
            result = await fetcher.fetch("TN01AB1234")
    """

    def __init__(
        self,
        config: TrackerConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._owns_transport = transport is None

    async def __aenter__(self) -> LocationFetcher:
        if self._owns_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if self._owns_transport:
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise BusTrackError("Fetcher not initialized. Use 'async with LocationFetcher(...) as fetcher:'")
        return self._transport

    async def fetch(self, vehicle_id: str) -> FetchResult:
        """Fetch status and location for *vehicle_id*.

        Raises
        ------
        BusTrackTransportError
            The request failed before a response arrived.
        BusTrackRemoteError
            The service answered with a non-success status.  The
            display message is the service's ``error`` text when given.
        BusTrackResponseError
            The body does not describe a bus with a location.
        """
        transport = self._require_transport()
        status, body = await transport.get_json(vehicle_id)

        if not 200 <= status < 300:
            remote = _remote_message(body)
            raise BusTrackRemoteError(
                f"Location service returned HTTP {status} for {vehicle_id}: {remote or 'no message'}",
                status_code=status,
                display_message=remote or GENERIC_FETCH_ERROR,
                vehicle_id=vehicle_id,
            )

        if body is None:
            raise BusTrackResponseError(
                f"Location service returned no JSON body for {vehicle_id}",
                vehicle_id=vehicle_id,
            )

        try:
            payload = BusLocationPayload.from_body(body)
            result = payload.to_result()
        except ValidationError as exc:
            raise BusTrackResponseError(
                f"Unexpected location payload for {vehicle_id}: {exc.error_count()} validation error(s)",
                vehicle_id=vehicle_id,
            ) from exc

        _logger.debug(
            "Fetched %s at (%.5f, %.5f) stale=%s",
            vehicle_id,
            result.location.latitude,
            result.location.longitude,
            result.status.is_stale,
        )
        return result
