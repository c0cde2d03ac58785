"""
Motion sources for jerk detection.
"""

from .base import MotionSource, MotionSourceConfig, PermissionState, SampleCallback
from .client_source import ClientMotionSource, ClientMotionSourceConfig

__all__ = [
    "MotionSource",
    "MotionSourceConfig",
    "PermissionState",
    "SampleCallback",
    "ClientMotionSource",
    "ClientMotionSourceConfig",
]
