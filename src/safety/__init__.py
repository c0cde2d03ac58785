"""
Safety-check countdown: state machine and tick source.
"""

from .timer import COUNTDOWN_SECONDS, SafetyCheckTimer
from .ticker import CountdownTicker

__all__ = ["COUNTDOWN_SECONDS", "SafetyCheckTimer", "CountdownTicker"]
