from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from escalation.hospitals import HospitalLookup, create_hospital_lookup
from escalation.location import ClientLocationProvider, LocationProvider, StaticLocationProvider
from escalation.notifier import LoggingNotifier, Notifier
from escalation.workflow import EscalationWorkflow
from models.config import Config
from models.motion import Location
from runtime.registry import SessionRegistry
from runtime.session import MonitoringSession
from safety.ticker import CountdownTicker


@dataclass
class RuntimeContext:
    """Holds runtime state and service references; avoids global singletons."""

    config: Config
    db: Any
    hospital_lookup: HospitalLookup
    notifier: Notifier
    workflow: EscalationWorkflow
    sessions: SessionRegistry = field(init=False)
    tick_interval_s: float = 1.0

    def __post_init__(self):
        self.sessions = SessionRegistry(
            self.new_session,
            idle_timeout_s=self.config.server.session_idle_timeout_s,
        )

    def new_location_provider(self) -> LocationProvider:
        loc = self.config.location
        if loc.static_lat is not None and loc.static_lng is not None:
            return StaticLocationProvider(Location(lat=loc.static_lat, lng=loc.static_lng))
        return ClientLocationProvider(max_age_s=loc.max_age_s)

    def new_session(self, session_id: str, user_name: str) -> MonitoringSession:
        return MonitoringSession(
            session_id=session_id,
            user_name=user_name or self.config.default_user_name,
            workflow=self.workflow,
            location_provider=self.new_location_provider(),
            ticker=CountdownTicker(interval_s=self.tick_interval_s),
        )


def build_context(
    config: Config,
    db: Any,
    hospital_lookup: Optional[HospitalLookup] = None,
    notifier: Optional[Notifier] = None,
    tick_interval_s: float = 1.0,
) -> RuntimeContext:
    """Wire the escalation collaborators around an initialized database."""
    hospital_lookup = hospital_lookup or create_hospital_lookup(config.hospital_lookup)
    notifier = notifier or LoggingNotifier()
    workflow = EscalationWorkflow(
        hospital_lookup=hospital_lookup,
        incident_store=db,
        contact_store=db,
        notifier=notifier,
        config=config.escalation,
        location_timeout_s=config.location.timeout_s,
    )
    return RuntimeContext(
        config=config,
        db=db,
        hospital_lookup=hospital_lookup,
        notifier=notifier,
        workflow=workflow,
        tick_interval_s=tick_interval_s,
    )
