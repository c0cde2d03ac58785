"""
Alert message formatting.

Producing these payloads is the observable contract; delivery is left to a
Notifier.
"""

from __future__ import annotations

from typing import Iterable, List

from models.alert import AmbulanceRequest, ContactAlert, HospitalLink, HospitalLookupResult
from models.incident import Contact
from models.motion import Location

MAP_LINK_TEMPLATE = "https://www.google.com/maps?q={lat},{lng}"
UNKNOWN_LOCATION_TEXT = "location unavailable"


def build_map_link(location: Location) -> str:
    if not location.is_known:
        return UNKNOWN_LOCATION_TEXT
    return MAP_LINK_TEMPLATE.format(lat=location.lat, lng=location.lng)


def format_contact_message(user_name: str, location: Location) -> str:
    return f"{user_name.upper()} IS IN EMERGENCY. Location: {build_map_link(location)}"


def format_ambulance_message(user_name: str, location: Location) -> str:
    return (
        f"EMERGENCY: Accident detected at {build_map_link(location)}. "
        f"Ambulance requested for {user_name}."
    )


def build_contact_alerts(contacts: Iterable[Contact], message: str) -> List[ContactAlert]:
    """One alert per contact, addressed to the contact's phone."""
    return [ContactAlert(to=c.phone, name=c.name, message=message) for c in contacts]


def build_ambulance_requests(
    links: Iterable[HospitalLink],
    user_name: str,
    location: Location,
) -> List[AmbulanceRequest]:
    """One ambulance request per hospital link."""
    message = format_ambulance_message(user_name, location)
    return [
        AmbulanceRequest(hospital=link.title, phone=link.phone, uri=link.uri, message=message)
        for link in links
    ]


def format_hospital_section(lookup: HospitalLookupResult) -> str:
    section = lookup.text
    if lookup.links:
        listed = "; ".join(f"{link.title} ({link.phone})" for link in lookup.links)
        section = f"{section} Hospitals: {listed}"
    return section


def format_incident_details(user_name: str, contact_message: str, lookup: HospitalLookupResult) -> str:
    return (
        f"Emergency triggered for {user_name}. {contact_message}. "
        f"Nearby hospitals: {format_hospital_section(lookup)}"
    )
