"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    # Sessions untouched this long are closed (unless a countdown is running)
    session_idle_timeout_s: float = 3600.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServerConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 3000),
            cors_origins=d.get("cors_origins", ["http://localhost:5173"]),
            session_idle_timeout_s=d.get("session_idle_timeout_s", 3600.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "cors_origins": self.cors_origins,
            "session_idle_timeout_s": self.session_idle_timeout_s,
        }


@dataclass
class StorageConfig:
    """Storage configuration."""
    local_database_path: str = "data/rapid_rescue.sqlite"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StorageConfig":
        return cls(local_database_path=d.get("local_database_path", "data/rapid_rescue.sqlite"))

    def to_dict(self) -> Dict[str, Any]:
        return {"local_database_path": self.local_database_path}


@dataclass
class LocationConfig:
    """
    Location fetch configuration.

    Attributes:
        timeout_s: Longest the escalation waits for a fix before using the
            unknown-location sentinel.
        max_age_s: A client-reported fix younger than this is reused instead
            of asking the device again.
        static_lat: Fixed latitude for the static provider (no client needed).
        static_lng: Fixed longitude for the static provider.
    """
    timeout_s: float = 15.0
    max_age_s: float = 30.0
    static_lat: Optional[float] = None
    static_lng: Optional[float] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LocationConfig":
        return cls(
            timeout_s=d.get("timeout_s", 15.0),
            max_age_s=d.get("max_age_s", 30.0),
            static_lat=d.get("static_lat"),
            static_lng=d.get("static_lng"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"timeout_s": self.timeout_s, "max_age_s": self.max_age_s}
        if self.static_lat is not None and self.static_lng is not None:
            d["static_lat"] = self.static_lat
            d["static_lng"] = self.static_lng
        return d


@dataclass
class HospitalLookupConfig:
    """Hospital lookup oracle configuration."""
    backend: str = "gemini"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GEMINI_API_KEY"
    static_text: str = "Nearby hospitals from local configuration."
    static_hospitals: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HospitalLookupConfig":
        return cls(
            backend=d.get("backend", "gemini"),
            model=d.get("model", "gemini-2.5-flash"),
            api_key_env=d.get("api_key_env", "GEMINI_API_KEY"),
            static_text=d.get("static_text", "Nearby hospitals from local configuration."),
            static_hospitals=d.get("static_hospitals") or [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "model": self.model,
            "api_key_env": self.api_key_env,
            "static_text": self.static_text,
            "static_hospitals": self.static_hospitals,
        }


@dataclass
class EscalationConfig:
    """Escalation workflow timeouts and persistence retries."""
    lookup_timeout_s: float = 30.0
    persist_retries: int = 3
    retry_delay_s: float = 0.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EscalationConfig":
        return cls(
            lookup_timeout_s=d.get("lookup_timeout_s", 30.0),
            persist_retries=d.get("persist_retries", 3),
            retry_delay_s=d.get("retry_delay_s", 0.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lookup_timeout_s": self.lookup_timeout_s,
            "persist_retries": self.persist_retries,
            "retry_delay_s": self.retry_delay_s,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    hospital_lookup: HospitalLookupConfig = field(default_factory=HospitalLookupConfig)
    escalation: EscalationConfig = field(default_factory=EscalationConfig)
    default_user_name: str = "User"
    log_path: str = "logs/rapid_rescue.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        user = d.get("user", {}) or {}
        return cls(
            server=ServerConfig.from_dict(d.get("server", {}) or {}),
            storage=StorageConfig.from_dict(d.get("storage", {}) or {}),
            location=LocationConfig.from_dict(d.get("location", {}) or {}),
            hospital_lookup=HospitalLookupConfig.from_dict(d.get("hospital_lookup", {}) or {}),
            escalation=EscalationConfig.from_dict(d.get("escalation", {}) or {}),
            default_user_name=user.get("default_name", "User"),
            log_path=d.get("log_path", "logs/rapid_rescue.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "server": self.server.to_dict(),
            "storage": self.storage.to_dict(),
            "location": self.location.to_dict(),
            "hospital_lookup": self.hospital_lookup.to_dict(),
            "escalation": self.escalation.to_dict(),
            "user": {"default_name": self.default_user_name},
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
