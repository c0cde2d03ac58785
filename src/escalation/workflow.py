"""
Escalation workflow.

Runs once per escalation (countdown expiry or "trigger now"):
1. Resolve the location (captured fix, else a bounded one-shot fetch)
2. Look up nearby hospitals
3. Format one alert per emergency contact
4. Format one ambulance request per hospital
5. Persist the incident
6. Return the terminal "Emergency Triggered" result

No step aborts the workflow: an unknown location, a failed lookup and a
failed incident write all degrade into a completed result. Store calls run
in worker threads so a slow database never stalls other sessions' ticks.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Protocol

from domain.errors import LocationUnavailable, PersistenceFailure
from models.alert import EscalationOutcome, EscalationResult, HospitalLookupResult
from models.config import EscalationConfig
from models.countdown import CountdownState
from models.incident import Contact
from models.motion import Location
from .hospitals import HospitalLookup, lookup_error_result
from .location import LocationProvider, fetch_location
from .messages import (
    build_ambulance_requests,
    build_contact_alerts,
    format_contact_message,
    format_incident_details,
)
from .notifier import Notifier

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION_LOOKUP_TEXT = "Location unavailable; hospital lookup skipped."


class IncidentStore(Protocol):
    def create_incident(self, lat: Optional[float], lng: Optional[float], details: str) -> int:
        ...


class ContactStore(Protocol):
    def list_contacts(self) -> List[Contact]:
        ...


class EscalationWorkflow:
    """
    Orchestrates one escalation against the external collaborators.

    The workflow holds no per-session state; one instance serves every session.
    """

    def __init__(
        self,
        hospital_lookup: HospitalLookup,
        incident_store: IncidentStore,
        contact_store: ContactStore,
        notifier: Notifier,
        config: Optional[EscalationConfig] = None,
        location_timeout_s: float = 15.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.hospital_lookup = hospital_lookup
        self.incident_store = incident_store
        self.contact_store = contact_store
        self.notifier = notifier
        self.config = config or EscalationConfig()
        self.location_timeout_s = location_timeout_s
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        countdown: CountdownState,
        user_name: str,
        location_provider: LocationProvider,
    ) -> EscalationResult:
        """
        Execute the escalation for a countdown snapshot.

        Args:
            countdown: State of the countdown at the moment it expired or was forced.
            user_name: Display name used in alert messages.
            location_provider: Used only when the countdown captured no location.
        """
        logger.warning(f"Escalation started for {user_name} (countdown #{countdown.countdown_id})")

        location = await self._resolve_location(countdown, location_provider)
        lookup = await self._find_hospitals(location)

        contact_message = format_contact_message(user_name, location)
        contact_alerts = build_contact_alerts(await self._list_contacts(), contact_message)
        for alert in contact_alerts:
            self.notifier.send_contact_alert(alert)

        ambulance_requests = build_ambulance_requests(lookup.links, user_name, location)
        for request in ambulance_requests:
            self.notifier.send_ambulance_request(request)

        details = format_incident_details(user_name, contact_message, lookup)
        incident_id = await self._persist(location, details)

        outcome = EscalationOutcome.TRIGGERED if incident_id is not None else EscalationOutcome.TRIGGERED_DEGRADED
        logger.warning(
            f"Escalation complete: outcome={outcome.value} incident={incident_id} "
            f"contacts={len(contact_alerts)} hospitals={len(ambulance_requests)}"
        )
        return EscalationResult(
            outcome=outcome,
            countdown_id=countdown.countdown_id,
            location=location,
            incident_id=incident_id,
            contact_alerts=contact_alerts,
            ambulance_requests=ambulance_requests,
            hospital_text=lookup.text,
            hospital_links=list(lookup.links),
            details=details,
            triggered_at=self._clock(),
        )

    async def _resolve_location(self, countdown: CountdownState, provider: LocationProvider) -> Location:
        if countdown.captured_location is not None:
            return countdown.captured_location
        try:
            location = await fetch_location(provider, self.location_timeout_s)
        except LocationUnavailable as e:
            logger.error(f"Escalating with unknown location: {e}")
            return Location.unknown()
        logger.info(f"Location resolved at escalation time: {location.lat},{location.lng}")
        return location

    async def _find_hospitals(self, location: Location) -> HospitalLookupResult:
        if not location.is_known:
            return HospitalLookupResult(text=UNKNOWN_LOCATION_LOOKUP_TEXT, links=[])
        try:
            return await asyncio.wait_for(
                self.hospital_lookup.find(location.lat, location.lng),
                timeout=self.config.lookup_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error(f"Hospital lookup timed out after {self.config.lookup_timeout_s}s")
            return lookup_error_result()

    async def _list_contacts(self) -> List[Contact]:
        try:
            return list(await asyncio.to_thread(self.contact_store.list_contacts))
        except PersistenceFailure as e:
            logger.error(f"Could not load contacts, no contact alerts will be formatted: {e}")
            return []

    async def _persist(self, location: Location, details: str) -> Optional[int]:
        attempts = max(1, self.config.persist_retries)
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.to_thread(
                    self.incident_store.create_incident, location.lat, location.lng, details
                )
            except PersistenceFailure as e:
                logger.error(f"Incident write failed ({attempt}/{attempts}): {e}")
                if attempt < attempts:
                    await self._sleep(self.config.retry_delay_s)
        logger.error(f"Incident NOT persisted after {attempts} attempts; details: {details}")
        return None
