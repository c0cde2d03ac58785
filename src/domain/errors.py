"""
Error taxonomy for the detection and escalation core.

PermissionDenied and MotionUnsupported stop a monitoring attempt and are shown
to the user. LookupFailure, LocationUnavailable and PersistenceFailure are
recovered inside the escalation workflow and never abort it.
"""

from __future__ import annotations


class RescueError(Exception):
    """Base class for all domain errors."""


class PermissionDenied(RescueError):
    """The user refused motion or location access."""

    def __init__(self, message: str = "Motion sensor access is required for accident detection."):
        super().__init__(message)
        self.user_message = message


class MotionUnsupported(RescueError):
    """The device exposes no motion sensor API."""


class LocationUnavailable(RescueError):
    """A location fix could not be obtained in time."""


class LookupFailure(RescueError):
    """The hospital lookup oracle failed."""


class PersistenceFailure(RescueError):
    """An incident could not be written to storage."""


class InvalidTransition(RescueError):
    """A countdown action was requested from a state that does not allow it."""

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} while countdown is {status}")
        self.action = action
        self.status = status
