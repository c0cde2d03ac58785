"""
Escalation: location resolution, hospital lookup, alert formatting and incident persistence.
"""

from .hospitals import (
    GeminiHospitalLookup,
    HospitalLookup,
    StaticHospitalLookup,
    create_hospital_lookup,
)
from .location import ClientLocationProvider, LocationProvider, StaticLocationProvider, fetch_location
from .notifier import LoggingNotifier, Notifier
from .workflow import EscalationWorkflow

__all__ = [
    "GeminiHospitalLookup",
    "HospitalLookup",
    "StaticHospitalLookup",
    "create_hospital_lookup",
    "ClientLocationProvider",
    "LocationProvider",
    "StaticLocationProvider",
    "fetch_location",
    "LoggingNotifier",
    "Notifier",
    "EscalationWorkflow",
]
