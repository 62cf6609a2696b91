"""Tracking session: the polling state machine for one target vehicle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from bustrack._constants import POLL_INTERVAL_S
from bustrack.exceptions import BusTrackFetchError, BusTrackValidationError
from bustrack.models.session import SessionError, SessionPhase, TrackingSnapshot
from bustrack.models.vehicle import FetchResult, normalize_vehicle_id

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[TrackingSnapshot], None]


class LocationSource(Protocol):
    """Anything that can fetch one status/location pair (see `LocationFetcher`)."""

    async def fetch(self, vehicle_id: str) -> FetchResult:
        ...


class TrackingSession:
    """Owns the tracked vehicle, the repeating fetch timer and the latest sample.

    States are ``idle`` and ``active``.  ``start`` while active switches
    target: the old timer is cancelled before the new one is scheduled,
    so at most one timer exists at any time.

    Fetches are never cancelled once issued.  Each one is tagged with the
    session generation (bumped by every ``start``/``stop``) and a request
    sequence number; a result is applied only while its generation is
    still current.  Within a generation the last response to complete
    wins, unless ``strict_ordering`` is set, in which case a response
    older than the last applied one is dropped.

    Whoever owns the session must call ``stop()`` or ``aclose()`` on every
    exit path; ``async with`` does this.
    """

    def __init__(
        self,
        fetcher: LocationSource,
        *,
        interval: float = POLL_INTERVAL_S,
        strict_ordering: bool = False,
        on_snapshot: SnapshotListener | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._interval = interval
        self._strict_ordering = strict_ordering
        self._listeners: list[SnapshotListener] = []
        if on_snapshot is not None:
            self._listeners.append(on_snapshot)
        self._snapshot = TrackingSnapshot()
        self._timer: asyncio.Task[None] | None = None
        self._generation = 0
        self._request_seq = 0
        self._applied_seq = 0
        self._pending = 0
        self._fetch_tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> TrackingSession:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> TrackingSnapshot:
        return self._snapshot

    @property
    def vehicle_id(self) -> str | None:
        return self._snapshot.vehicle_id

    @property
    def is_active(self) -> bool:
        return self._snapshot.is_active

    @property
    def has_timer(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(self, vehicle_id: str | None) -> TrackingSnapshot:
        """Start (or switch) tracking and perform one immediate fetch.

        Raises
        ------
        BusTrackValidationError
            *vehicle_id* is empty after normalization.  No request is made
            and an active session keeps tracking its current target.
        """
        normalized = normalize_vehicle_id(vehicle_id)
        if not normalized:
            error = BusTrackValidationError("Please enter a bus number to track")
            if not self._snapshot.is_active:
                self._publish(TrackingSnapshot(error=SessionError.from_exception(error)))
            raise error

        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        self._pending = 0
        _logger.info("Tracking %s every %.0fs", normalized, self._interval)
        self._publish(TrackingSnapshot(phase=SessionPhase.ACTIVE, vehicle_id=normalized))

        self._timer = asyncio.create_task(
            self._run_timer(generation),
            name=f"bustrack-poll-{normalized}",
        )
        try:
            await self._fetch_and_apply(generation, normalized)
        except BaseException:
            if generation == self._generation:
                self.stop()
            raise
        return self._snapshot

    def stop(self) -> None:
        """Cancel the timer and discard all session data.  No-op when idle."""
        if not self._snapshot.is_active and self._timer is None:
            return
        self._cancel_timer()
        self._generation += 1
        self._pending = 0
        _logger.info("Stopped tracking %s", self._snapshot.vehicle_id)
        self._publish(TrackingSnapshot())

    async def aclose(self) -> None:
        """Stop and cancel fetches still in flight."""
        self.stop()
        tasks = list(self._fetch_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done():
            timer.cancel()

    async def _run_timer(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if generation != self._generation:
                return
            self._tick()

    def _tick(self) -> asyncio.Task[None] | None:
        """Issue one background fetch for the current target.

        Does not wait for the fetch, so a slow response never delays the
        next tick.
        """
        vehicle_id = self._snapshot.vehicle_id
        if not self._snapshot.is_active or vehicle_id is None:
            return None
        task = asyncio.create_task(self._fetch_and_apply(self._generation, vehicle_id))
        self._fetch_tasks.add(task)
        task.add_done_callback(self._on_fetch_task_done)
        return task

    def _on_fetch_task_done(self, task: asyncio.Task[None]) -> None:
        self._fetch_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Location poll failed unexpectedly", exc_info=exc)

    async def _fetch_and_apply(self, generation: int, vehicle_id: str) -> None:
        self._request_seq += 1
        seq = self._request_seq
        self._pending += 1
        if self._pending == 1:
            self._publish(self._snapshot.model_copy(update={"is_fetching": True}))

        outcome: FetchResult | BusTrackFetchError
        try:
            outcome = await self._fetcher.fetch(vehicle_id)
        except BusTrackFetchError as exc:
            _logger.debug("Fetch #%d for %s failed: %s", seq, vehicle_id, exc)
            outcome = exc
        finally:
            if generation == self._generation:
                self._pending = max(0, self._pending - 1)

        if generation != self._generation:
            _logger.debug("Discarding fetch #%d for superseded target %s", seq, vehicle_id)
            return

        fetching = self._pending > 0
        if self._strict_ordering and seq < self._applied_seq:
            _logger.debug("Discarding out-of-order fetch #%d (applied #%d)", seq, self._applied_seq)
            self._publish(self._snapshot.model_copy(update={"is_fetching": fetching}))
            return
        self._applied_seq = seq

        if isinstance(outcome, FetchResult):
            update = {
                "status": outcome.status,
                "location": outcome.location,
                "error": None,
                "is_fetching": fetching,
            }
        else:
            update = {
                "status": None,
                "location": None,
                "error": SessionError.from_exception(outcome),
                "is_fetching": fetching,
            }
        self._publish(self._snapshot.model_copy(update=update))

    def _publish(self, snapshot: TrackingSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
