"""
Typed models for the Rapid Rescue service.

Plain dataclasses shared by the detector, the countdown, the escalation
workflow and storage. Use the from_dict/from_row adapters to convert from
request bodies and database rows.
"""

from .motion import MotionSample, JerkEvent, Location
from .countdown import CountdownState, CountdownStatus
from .incident import Contact, Incident, INCIDENT_STATUS_PENDING
from .alert import (
    AmbulanceRequest,
    ContactAlert,
    EscalationOutcome,
    EscalationResult,
    HospitalLink,
    HospitalLookupResult,
)
from .config import (
    Config,
    ServerConfig,
    StorageConfig,
    LocationConfig,
    HospitalLookupConfig,
    EscalationConfig,
)

__all__ = [
    # Motion
    "MotionSample",
    "JerkEvent",
    "Location",
    # Countdown
    "CountdownState",
    "CountdownStatus",
    # Records
    "Contact",
    "Incident",
    "INCIDENT_STATUS_PENDING",
    # Escalation
    "AmbulanceRequest",
    "ContactAlert",
    "EscalationOutcome",
    "EscalationResult",
    "HospitalLink",
    "HospitalLookupResult",
    # Config
    "Config",
    "ServerConfig",
    "StorageConfig",
    "LocationConfig",
    "HospitalLookupConfig",
    "EscalationConfig",
]
