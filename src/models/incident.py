"""
Persisted records: emergency contacts and incidents.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

INCIDENT_STATUS_PENDING = "PENDING"


@dataclass(frozen=True)
class Contact:
    """An emergency contact that receives alerts."""
    id: int
    name: str
    phone: str
    email: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Contact":
        """Adapter: create from a (id, name, phone, email) database row."""
        return cls(id=row[0], name=row[1], phone=row[2], email=row[3])

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "phone": self.phone, "email": self.email}


@dataclass(frozen=True)
class Incident:
    """
    A persisted record of one completed escalation.

    Attributes:
        id: Row ID.
        timestamp: Creation time as stored by SQLite (UTC, "YYYY-MM-DD HH:MM:SS").
        lat: Latitude, or None when the location was unknown.
        lng: Longitude, or None when the location was unknown.
        status: Review status ("PENDING" on creation).
        details: Alert message and hospital lookup text.
    """
    id: int
    timestamp: str
    lat: Optional[float]
    lng: Optional[float]
    status: str
    details: str

    @classmethod
    def from_row(cls, row) -> "Incident":
        return cls(
            id=row[0],
            timestamp=row[1],
            lat=row[2],
            lng=row[3],
            status=row[4],
            details=row[5],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "lat": self.lat,
            "lng": self.lng,
            "status": self.status,
            "details": self.details,
        }
