"""
Location providers for the safety check and escalation.

The device answers location requests, so the server side can only ask and
wait. Every wait is bounded: a device that never answers must not stall the
escalation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from domain.errors import LocationUnavailable
from models.motion import Location

logger = logging.getLogger(__name__)


class LocationProvider(ABC):
    """One-shot asynchronous location fetch."""

    @property
    def location_requested(self) -> bool:
        """Whether a fetch is waiting on the device."""
        return False

    @property
    def last_known(self) -> Optional[Location]:
        return None

    @abstractmethod
    async def fetch(self) -> Location:
        """Return a fix. May wait indefinitely; callers bound it with fetch_location()."""


class StaticLocationProvider(LocationProvider):
    """Fixed location from configuration (kiosk/dev deployments)."""

    def __init__(self, location: Location):
        self._location = location

    @property
    def last_known(self) -> Optional[Location]:
        return self._location

    async def fetch(self) -> Location:
        return self._location


class ClientLocationProvider(LocationProvider):
    """
    Location reported by the client over the API.

    A report younger than max_age_s is reused. Otherwise fetch() raises the
    location_requested flag (the client sees it when polling the session) and
    waits for the next report.
    """

    def __init__(self, max_age_s: float = 30.0, clock: Callable[[], float] = time.time):
        self._max_age_s = max_age_s
        self._clock = clock
        self._last: Optional[Location] = None
        self._last_at: Optional[float] = None
        self._waiters: List[asyncio.Future] = []

    @property
    def location_requested(self) -> bool:
        return any(not w.done() for w in self._waiters)

    @property
    def last_known(self) -> Optional[Location]:
        return self._last

    def report(self, location: Location) -> int:
        """
        Record a fix from the client and wake any pending fetches.

        Returns:
            Number of fetches that were waiting for it.
        """
        self._last = location
        self._last_at = self._clock()
        woken = 0
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(location)
                woken += 1
        self._waiters = []
        return woken

    async def fetch(self) -> Location:
        if self._last is not None and self._clock() - self._last_at <= self._max_age_s:
            return self._last
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.info("Location requested from client")
        try:
            return await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)


async def fetch_location(provider: LocationProvider, timeout_s: Optional[float]) -> Location:
    """
    Fetch with an optional upper bound on the wait.

    A timeout_s of None waits until the provider answers or the caller is
    cancelled (the countdown's own capture works this way).

    Raises:
        LocationUnavailable: The provider failed or did not answer within timeout_s.
    """
    try:
        return await asyncio.wait_for(provider.fetch(), timeout=timeout_s)
    except asyncio.TimeoutError:
        raise LocationUnavailable(f"No location fix within {timeout_s}s")
    except LocationUnavailable:
        raise
    except Exception as e:
        raise LocationUnavailable(f"Location fetch failed: {e}") from e
