"""
Motion models: raw accelerometer samples and the jerk events derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class MotionSample:
    """
    One accelerometer reading (acceleration including gravity).

    Attributes:
        ax: X-axis acceleration in m/s^2.
        ay: Y-axis acceleration in m/s^2.
        az: Z-axis acceleration in m/s^2.
    """
    ax: float = 0.0
    ay: float = 0.0
    az: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MotionSample":
        """Adapter: browsers report null for axes they cannot measure."""
        return cls(
            ax=float(d.get("ax") or 0.0),
            ay=float(d.get("ay") or 0.0),
            az=float(d.get("az") or 0.0),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"ax": self.ax, "ay": self.ay, "az": self.az}


@dataclass(frozen=True)
class JerkEvent:
    """A sample whose magnitude crossed the jerk threshold outside the cooldown."""
    magnitude: float
    occurred_at: float

    def to_dict(self) -> Dict[str, float]:
        return {"magnitude": self.magnitude, "occurred_at": self.occurred_at}


@dataclass(frozen=True)
class Location:
    """
    A latitude/longitude fix.

    Both fields are None for the "unknown location" sentinel used when the
    device never answered in time.
    """
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def is_known(self) -> bool:
        return self.lat is not None and self.lng is not None

    @classmethod
    def unknown(cls) -> "Location":
        return cls()

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"lat": self.lat, "lng": self.lng}
