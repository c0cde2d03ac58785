"""
Escalation models: hospital lookup results, alert payloads and the final outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .motion import Location


@dataclass(frozen=True)
class HospitalLink:
    """A hospital returned by the lookup oracle."""
    title: str
    uri: str
    phone: str = "N/A"

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "uri": self.uri, "phone": self.phone}


@dataclass(frozen=True)
class HospitalLookupResult:
    """Free text from the oracle plus any hospitals it could link."""
    text: str
    links: List[HospitalLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "links": [link.to_dict() for link in self.links]}


@dataclass(frozen=True)
class ContactAlert:
    """Message for one emergency contact."""
    to: str
    name: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"to": self.to, "name": self.name, "message": self.message}


@dataclass(frozen=True)
class AmbulanceRequest:
    """Ambulance request for one hospital."""
    hospital: str
    phone: str
    uri: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"hospital": self.hospital, "phone": self.phone, "uri": self.uri, "message": self.message}


class EscalationOutcome(str, Enum):
    TRIGGERED = "TRIGGERED"
    # Alerts were formatted but the incident could not be persisted.
    TRIGGERED_DEGRADED = "TRIGGERED_DEGRADED"


@dataclass(frozen=True)
class EscalationResult:
    """Terminal "Emergency Triggered" state surfaced to the caller."""
    outcome: EscalationOutcome
    countdown_id: int
    location: Location
    incident_id: Optional[int]
    contact_alerts: List[ContactAlert]
    ambulance_requests: List[AmbulanceRequest]
    hospital_text: str
    hospital_links: List[HospitalLink]
    details: str
    triggered_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "countdown_id": self.countdown_id,
            "location": self.location.to_dict(),
            "incident_id": self.incident_id,
            "contact_alerts": [a.to_dict() for a in self.contact_alerts],
            "ambulance_requests": [r.to_dict() for r in self.ambulance_requests],
            "hospital_text": self.hospital_text,
            "hospital_links": [link.to_dict() for link in self.hospital_links],
            "details": self.details,
            "triggered_at": self.triggered_at,
        }
