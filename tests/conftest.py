"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from domain.errors import PersistenceFailure  # noqa: E402
from escalation.hospitals import HospitalLookup  # noqa: E402
from escalation.notifier import LoggingNotifier  # noqa: E402
from escalation.workflow import EscalationWorkflow  # noqa: E402
from models.alert import HospitalLink, HospitalLookupResult  # noqa: E402
from models.config import EscalationConfig  # noqa: E402
from models.incident import Contact  # noqa: E402


class FakeStore:
    """In-memory incident and contact store that can fail the first N writes."""

    def __init__(self, contacts=None, fail_writes=0):
        self.contacts = list(contacts or [])
        self.incidents = []
        self.fail_writes = fail_writes
        self.create_calls = 0

    def list_contacts(self):
        return list(self.contacts)

    def create_incident(self, lat, lng, details):
        self.create_calls += 1
        if self.create_calls <= self.fail_writes:
            raise PersistenceFailure("database is locked")
        self.incidents.append({"lat": lat, "lng": lng, "details": details})
        return len(self.incidents)


class FakeLookup(HospitalLookup):
    """Scripted hospital lookup backend."""

    name = "fake"

    def __init__(self, result=None, error=None, delay_s=0.0):
        self.result = result or HospitalLookupResult(text="No hospital information found.", links=[])
        self.error = error
        self.delay_s = delay_s
        self.calls = []

    async def _query(self, lat, lng):
        self.calls.append((lat, lng))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def asha():
    return Contact(id=1, name="Asha", phone="9999999999", email="asha@example.com")


@pytest.fixture
def city_hospital_lookup():
    return FakeLookup(
        HospitalLookupResult(
            text="3 hospitals found",
            links=[HospitalLink(title="City Hospital", uri="https://maps.google.com/?cid=1", phone="123")],
        )
    )


@pytest.fixture
def make_workflow():
    """Build an EscalationWorkflow around fakes with fast retries and timeouts."""

    def _make(store=None, lookup=None, notifier=None, location_timeout_s=0.05, **escalation):
        cfg = EscalationConfig(
            lookup_timeout_s=escalation.get("lookup_timeout_s", 1.0),
            persist_retries=escalation.get("persist_retries", 3),
            retry_delay_s=escalation.get("retry_delay_s", 0.0),
        )
        return EscalationWorkflow(
            hospital_lookup=lookup or FakeLookup(),
            incident_store=store if store is not None else FakeStore(),
            contact_store=store if store is not None else FakeStore(),
            notifier=notifier or LoggingNotifier(),
            config=cfg,
            location_timeout_s=location_timeout_s,
        )

    return _make


@pytest.fixture
def fake_store_cls():
    return FakeStore


@pytest.fixture
def fake_lookup_cls():
    return FakeLookup


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "server": {
            "host": "127.0.0.1",
            "port": 3000,
            "cors_origins": ["http://localhost:5173"],
        },
        "storage": {
            "local_database_path": "data/test.sqlite",
        },
        "location": {
            "timeout_s": 15,
            "max_age_s": 30,
        },
        "hospital_lookup": {
            "backend": "static",
            "static_hospitals": [
                {"title": "City Hospital", "uri": "https://maps.google.com/?cid=1", "phone": "123"},
            ],
        },
        "escalation": {
            "lookup_timeout_s": 30,
            "persist_retries": 3,
            "retry_delay_s": 0.5,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
server:
  host: "0.0.0.0"
  port: 3000

storage:
  local_database_path: "data/test.sqlite"

hospital_lookup:
  backend: "gemini"
  model: "gemini-2.5-flash"

escalation:
  persist_retries: 3

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir
