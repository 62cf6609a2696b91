"""HTTP transport for the location service."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol
from urllib.parse import quote

import aiohttp

from bustrack._constants import USER_AGENT
from bustrack._redact import redact_for_log
from bustrack.config import TrackerConfig
from bustrack.exceptions import BusTrackTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the fetcher.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, path: str) -> tuple[int, Any]:
        """Return ``(status, decoded_body)``; the body is ``None`` when not JSON."""
        ...


class HttpTransport:
    """aiohttp transport issuing one GET per call."""

    def __init__(self, config: TrackerConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def url_for(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{quote(path, safe='')}"

    async def get_json(self, path: str) -> tuple[int, Any]:
        url = self.url_for(path)
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        kwargs: dict[str, Any] = {}
        if self._config.request_timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, **kwargs) as resp:
                status = resp.status
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise BusTrackTransportError(
                f"Request to {url} failed: {exc!r}",
                vehicle_id=path,
            ) from exc

        # undecodable bytes count as a non-JSON body
        try:
            body: Any = json.loads(raw) if raw.strip() else None
        except ValueError:
            text = raw.decode("utf-8", errors="replace")
            _logger.debug("Non-JSON body from %s: %s", url, redact_for_log(text, max_string=200))
            body = None

        _logger.debug("HTTP %d from %s: %s", status, url, redact_for_log(body))
        return status, body
