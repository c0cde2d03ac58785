"""
Domain-level error contracts shared by sensors, the countdown and the escalation workflow.
"""

from .errors import (  # noqa: F401
    InvalidTransition,
    LocationUnavailable,
    LookupFailure,
    MotionUnsupported,
    PermissionDenied,
    PersistenceFailure,
    RescueError,
)
