"""
Rapid Rescue - Detection Module

This module turns accelerometer samples into jerk events.
"""

from .jerk import JerkDetector, compute_magnitude, detect_jerk

__all__ = ['JerkDetector', 'compute_magnitude', 'detect_jerk']
